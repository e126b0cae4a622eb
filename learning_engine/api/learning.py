"""
Learning progress API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from learning_engine.api.deps import get_current_user
from learning_engine.database import get_db
from learning_engine.exceptions import NotFound
from learning_engine.models import Task, TaskFile, User
from learning_engine.schemas.learning import (
    PdfProgressReport, VideoProgressReport, FileProgressResponse, TaskStatusResponse
)
from learning_engine.services.completion_service import completion_service
from learning_engine.services.progress_service import ProgressPosition, progress_service

router = APIRouter(prefix="/learning", tags=["learning"])
logger = logging.getLogger(__name__)


def _report(db: Session, user: User, report, position: ProgressPosition) -> FileProgressResponse:
    progress = progress_service.report(db, user.id, report.file_id, report.task_id, position)
    task_file = db.query(TaskFile).filter(TaskFile.id == report.file_id).first()
    return FileProgressResponse(**progress_service.to_snapshot(task_file, progress))


@router.post("/progress/pdf", response_model=FileProgressResponse)
async def report_pdf_progress(
    report: PdfProgressReport,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Record document reading progress

    - Position (page, scroll) is replaced by the latest report
    - effectiveTime is added to the stored total
    - Reaching the last page completes the file
    """
    return _report(db, current_user, report, ProgressPosition(
        kind="pdf",
        effective_time=report.effective_time,
        page_num=report.page_num,
        total_pages=report.total_pages,
        scroll_position=report.scroll_position,
        action=report.action,
    ))


@router.post("/progress/video", response_model=FileProgressResponse)
async def report_video_progress(
    report: VideoProgressReport,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Record video playback progress

    - Playback position is replaced by the latest report
    - effectiveTime is added to the stored total
    - Watching 95% of the duration completes the file
    """
    return _report(db, current_user, report, ProgressPosition(
        kind="video",
        effective_time=report.effective_time,
        current_time=report.current_time,
        duration=report.duration,
        action=report.action,
    ))


@router.get("/progress/{file_id}", response_model=FileProgressResponse)
async def get_file_progress(
    file_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Get the current user's progress on a file

    Returns a zero-valued snapshot when the file has not been opened yet
    """
    return FileProgressResponse(**progress_service.get_progress(db, current_user.id, file_id))


@router.get("/tasks/{task_id}/status", response_model=TaskStatusResponse)
async def get_task_status(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Completion status of a task for the current user"""
    if not db.query(Task.id).filter(Task.id == task_id).first():
        raise NotFound("Task not found")

    return TaskStatusResponse(**completion_service.get_task_status(db, current_user.id, task_id))
