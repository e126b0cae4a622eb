"""
Pydantic schemas for admin task setup
"""
from pydantic import Field
from typing import List, Optional
from uuid import UUID

from learning_engine.schemas.common import CamelModel


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    passing_score: Optional[int] = Field(None, ge=0, le=100, description="Lenient-mode threshold")
    strict_mode: bool = False


class TaskResponse(CamelModel):
    id: UUID
    title: str
    description: Optional[str] = None
    passing_score: Optional[int] = None
    strict_mode: bool


class TaskFileCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    file_type: str = Field(..., pattern="^(pdf|video|office)$")
    total_pages: Optional[int] = Field(None, ge=1)
    duration: Optional[int] = Field(None, ge=1, description="Video length in seconds")
    order: int = Field(0, ge=0)


class TaskFileResponse(CamelModel):
    id: UUID
    task_id: UUID
    title: str
    file_type: str
    total_pages: Optional[int] = None
    duration: Optional[int] = None
    order: int


class QuestionCreate(CamelModel):
    question: str = Field(..., min_length=1, max_length=500)
    options: List[str] = Field(..., min_length=2, max_length=6)
    correct_answer: int = Field(..., ge=0)
    order: Optional[int] = Field(None, ge=0)


class QuestionResponse(CamelModel):
    id: UUID
    task_id: UUID
    question: str
    options: List[str]
    order: int


class AssignmentCreate(CamelModel):
    user_ids: List[UUID] = Field(..., min_length=1)


class AssignmentResponse(CamelModel):
    task_id: UUID
    assigned: List[UUID]
    already_assigned: List[UUID]
