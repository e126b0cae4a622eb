"""
FileProgress model - tracks per-file consumption, plus the raw learning log
"""
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, ForeignKey, UniqueConstraint, Uuid, func
)
from learning_engine.database import Base
import uuid


class FileProgress(Base):
    """
    File progress table - one row per (user, file), upserted on every report
    """
    __tablename__ = "file_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "file_id", name="uq_file_progress_user_file"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(Uuid, ForeignKey("task_files.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    current_page = Column(Integer)
    total_pages = Column(Integer)
    scroll_position = Column(Float)  # 0.0 to 1.0
    current_time = Column(Integer)  # seconds
    duration = Column(Integer)  # seconds
    progress = Column(Float, nullable=False, default=0.0)  # 0.00 to 100.00
    effective_time = Column(Integer, nullable=False, default=0)  # seconds, additive
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    last_accessed = Column(DateTime(timezone=True))

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def __repr__(self):
        return (
            f"<FileProgress(user_id={self.user_id}, file_id={self.file_id}, "
            f"progress={self.progress}, completed={self.is_completed})>"
        )


class LearningLog(Base):
    """
    Learning logs table - append-only record of every progress report
    """
    __tablename__ = "learning_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(Uuid, ForeignKey("task_files.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    log_type = Column(String(10), nullable=False)  # pdf | video
    page_num = Column(Integer)
    current_time = Column(Integer)
    action = Column(String(20), nullable=False)
    session_duration = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<LearningLog(user_id={self.user_id}, file_id={self.file_id}, action={self.action})>"
