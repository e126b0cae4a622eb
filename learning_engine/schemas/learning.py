"""
Pydantic schemas for learning progress requests and responses
"""
from pydantic import Field
from typing import Optional
from uuid import UUID
from datetime import datetime

from learning_engine.config import settings
from learning_engine.schemas.common import CamelModel


class PdfProgressReport(CamelModel):
    """Schema for a document viewer progress report"""
    file_id: UUID
    task_id: UUID
    page_num: int = Field(1, ge=1, description="Current page (1-based)")
    total_pages: Optional[int] = Field(None, ge=0, description="Page count, defaults to the stored value")
    scroll_position: float = Field(0.0, ge=0.0, le=1.0, description="Scroll offset within the page")
    action: str = Field("page_change", pattern="^(page_change|scroll|open|close)$")
    effective_time: int = Field(
        0, ge=0, le=settings.MAX_EFFECTIVE_TIME_DELTA,
        description="Actively engaged seconds since the previous report"
    )


class VideoProgressReport(CamelModel):
    """Schema for a video player progress report"""
    file_id: UUID
    task_id: UUID
    current_time: int = Field(..., ge=0, description="Playback position in seconds")
    duration: Optional[int] = Field(None, ge=0, description="Video length, defaults to the stored value")
    action: str = Field("time_update", pattern="^(time_update|play|pause|seek|ended)$")
    effective_time: int = Field(
        0, ge=0, le=settings.MAX_EFFECTIVE_TIME_DELTA,
        description="Actively engaged seconds since the previous report"
    )


class FileProgressResponse(CamelModel):
    """Progress projection for one file; zero-valued when not started"""
    file_id: UUID
    task_id: UUID
    file_type: str
    current_page: Optional[int] = None
    total_pages: Optional[int] = None
    current_time: Optional[int] = None
    duration: Optional[int] = None
    progress_percent: float
    effective_time: int
    is_completed: bool
    completed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    last_accessed: Optional[datetime] = None


class TaskStatusResponse(CamelModel):
    """Task completion status for the current user"""
    task_id: UUID
    total_files: int
    completed_files: int
    quiz_required: bool
    quiz_passed: bool
    is_complete: bool
    is_assigned: bool
    assignment_completed: bool
    submitted_at: Optional[datetime] = None
