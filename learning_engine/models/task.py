"""
Task models - learning tasks, their files and per-user assignments
"""
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid, func
)
from learning_engine.database import Base
import uuid


class Task(Base):
    """
    Tasks table - a unit of assigned learning with its quiz pass policy
    """
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    passing_score = Column(Integer)  # 0-100, NULL means the configured default
    strict_mode = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Task(id={self.id}, title={self.title}, strict={self.strict_mode})>"


class TaskFile(Base):
    """
    Task files table - learning material attached to a task
    """
    __tablename__ = "task_files"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    file_type = Column(String(20), nullable=False)  # pdf | video | office
    total_pages = Column(Integer)
    duration = Column(Integer)  # seconds
    order = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<TaskFile(id={self.id}, task_id={self.task_id}, type={self.file_type})>"


class TaskAssignment(Base):
    """
    Task assignments table - one row per (task, user); is_completed never reverts
    """
    __tablename__ = "task_assignments"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_assignment_task_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assignment_type = Column(String(20), nullable=False, default="user")  # user | department
    assigned_by = Column(Uuid, ForeignKey("users.id"))
    assigned_at = Column(DateTime(timezone=True), server_default=func.now())
    submitted_at = Column(DateTime(timezone=True))
    is_completed = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return (
            f"<TaskAssignment(task_id={self.task_id}, user_id={self.user_id}, "
            f"completed={self.is_completed})>"
        )
