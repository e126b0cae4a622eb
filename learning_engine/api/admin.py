"""
Admin API endpoints - task setup and assignment
"""
from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from learning_engine.api.deps import require_admin
from learning_engine.database import get_db
from learning_engine.exceptions import InvalidInput, NotFound
from learning_engine.models import Task, TaskFile, TaskAssignment, QuizQuestion, User
from learning_engine.schemas.task import (
    TaskCreate, TaskResponse,
    TaskFileCreate, TaskFileResponse,
    QuestionCreate, QuestionResponse,
    AssignmentCreate, AssignmentResponse,
)

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


def _get_task(db: Session, task_id: UUID) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise NotFound("Task not found")
    return task


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(
    payload: TaskCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a learning task with its quiz pass policy"""
    task = Task(
        title=payload.title,
        description=payload.description,
        passing_score=payload.passing_score,
        strict_mode=payload.strict_mode,
        created_by=admin.id,
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info(f"Task created: {task.id} by {admin.id}")
    return TaskResponse.model_validate(task)


@router.post("/tasks/{task_id}/files", response_model=TaskFileResponse, status_code=201)
async def add_task_file(
    task_id: UUID,
    payload: TaskFileCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Attach learning material to a task

    Documents need totalPages, videos need duration
    """
    _get_task(db, task_id)

    if payload.file_type == "video" and not payload.duration:
        raise InvalidInput("Video files require a duration")
    if payload.file_type in ("pdf", "office") and not payload.total_pages:
        raise InvalidInput("Document files require totalPages")

    task_file = TaskFile(
        task_id=task_id,
        title=payload.title,
        file_type=payload.file_type,
        total_pages=payload.total_pages,
        duration=payload.duration,
        order=payload.order,
    )
    db.add(task_file)
    db.commit()
    db.refresh(task_file)

    logger.info(f"File {task_file.id} ({task_file.file_type}) added to task {task_id}")
    return TaskFileResponse.model_validate(task_file)


@router.post("/tasks/{task_id}/questions", response_model=QuestionResponse, status_code=201)
async def add_question(
    task_id: UUID,
    payload: QuestionCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Add a multiple-choice question to the task quiz"""
    _get_task(db, task_id)

    if payload.correct_answer >= len(payload.options):
        raise InvalidInput("correctAnswer must index one of the options")

    order = payload.order
    if order is None:
        order = db.query(func.count(QuizQuestion.id)).filter(
            QuizQuestion.task_id == task_id
        ).scalar()

    question = QuizQuestion(
        task_id=task_id,
        question=payload.question,
        options=payload.options,
        correct_answer=payload.correct_answer,
        order=order,
    )
    db.add(question)
    db.commit()
    db.refresh(question)

    return QuestionResponse.model_validate(question)


@router.post("/tasks/{task_id}/assignments", response_model=AssignmentResponse, status_code=201)
async def assign_task(
    task_id: UUID,
    payload: AssignmentCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Assign a task to users

    Users that already hold the assignment are reported back, not reassigned
    """
    _get_task(db, task_id)

    user_ids = list(dict.fromkeys(payload.user_ids))
    found = {
        row.id for row in db.query(User.id).filter(User.id.in_(user_ids)).all()
    }
    missing = [str(uid) for uid in user_ids if uid not in found]
    if missing:
        raise NotFound(f"Users not found: {', '.join(missing)}")

    existing = {
        row.user_id for row in db.query(TaskAssignment.user_id).filter(
            TaskAssignment.task_id == task_id,
            TaskAssignment.user_id.in_(user_ids)
        ).all()
    }

    assigned = []
    for user_id in user_ids:
        if user_id in existing:
            continue
        db.add(TaskAssignment(
            task_id=task_id,
            user_id=user_id,
            assignment_type="user",
            assigned_by=admin.id,
        ))
        assigned.append(user_id)
    db.commit()

    logger.info(f"Task {task_id} assigned to {len(assigned)} users ({len(existing)} already assigned)")

    return AssignmentResponse(
        task_id=task_id,
        assigned=assigned,
        already_assigned=[uid for uid in user_ids if uid in existing],
    )
