"""
Quiz answer and submission API endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging
from learning_engine.api.deps import get_current_user
from learning_engine.database import get_db
from learning_engine.models import User
from learning_engine.schemas.quiz import (
    AnswerRequest,
    AnswerAccepted,
    QuizSubmitRequest,
    QuizGradingResponse,
    QuizQuestionsResponse,
    QuizResultResponse,
)
from learning_engine.services.grading_service import grading_service


router = APIRouter(prefix="/quiz", tags=["quiz"])
logger = logging.getLogger(__name__)


@router.get("/tasks/{task_id}/questions", response_model=QuizQuestionsResponse)
async def list_questions(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Questions of a task in display order, without the answer key"""
    return QuizQuestionsResponse(
        **grading_service.list_questions(db, current_user.id, task_id, is_admin=current_user.is_admin)
    )


@router.post("/answer", response_model=AnswerAccepted, status_code=201)
async def answer_question(
    payload: AnswerRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Answer a single question

    Each question can be answered once. The response only confirms the
    answer was accepted; it never says whether it was correct.
    """
    grading_service.answer_one(db, current_user.id, payload.question_id, payload.answer)
    return AnswerAccepted()


@router.post("/submit", response_model=QuizGradingResponse)
async def submit_quiz(
    submission: QuizSubmitRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Submit and grade a whole quiz

    Grading strategy:
    - Exact match on the option index
    - score = round(100 * correct / total questions)
    - Strict mode passes only at 100; lenient mode at the task passing score

    At most 3 attempts per task; no further attempts once passed.

    Returns:
    - Score, pass flag and attempt budget
    - Per-question breakdown
    """
    logger.info(f"Grading quiz for task {submission.task_id}, user {current_user.id}")

    result = grading_service.submit_quiz(
        db,
        current_user.id,
        submission.task_id,
        [(a.question_id, a.answer) for a in submission.answers],
    )
    return QuizGradingResponse(**result)


@router.get("/{task_id}/result", response_model=QuizResultResponse)
async def get_quiz_result(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Attempt history and remaining attempts for the current user"""
    return QuizResultResponse(
        **grading_service.quiz_result(db, current_user.id, task_id, is_admin=current_user.is_admin)
    )
