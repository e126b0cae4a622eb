"""
File progress tracking service

Every report is a single INSERT ... ON CONFLICT DO UPDATE: position fields
are replaced by the latest report, effective time is added to the stored
total, and completed_at is kept once set.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from learning_engine.config import settings
from learning_engine.exceptions import InvalidInput, NotFound, Unauthorized
from learning_engine.models import FileProgress, LearningLog, TaskAssignment, TaskFile
from learning_engine.services.completion_service import completion_service

logger = logging.getLogger(__name__)

VIDEO = "video"


@dataclass
class ProgressPosition:
    """
    Position reported by a viewer

    Documents send page_num (plus optional total_pages / scroll_position),
    videos send current_time (plus optional duration). effective_time is the
    actively-engaged seconds since the previous report.
    """
    kind: str  # pdf | video
    effective_time: int = 0
    page_num: Optional[int] = None
    total_pages: Optional[int] = None
    scroll_position: float = 0.0
    current_time: Optional[int] = None
    duration: Optional[int] = None
    action: Optional[str] = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressService:
    """Service for per-(user, file) learning progress"""

    def __init__(
        self,
        video_completion_ratio: float = settings.VIDEO_COMPLETION_RATIO,
        max_effective_time_delta: int = settings.MAX_EFFECTIVE_TIME_DELTA,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.video_completion_ratio = video_completion_ratio
        self.max_effective_time_delta = max_effective_time_delta
        self._clock = clock

    def calculate_pdf_progress(self, page_num: int, total_pages: int) -> float:
        """Page-based percentage, clamped to [0, 100]"""
        if not total_pages or total_pages <= 0:
            return 0.0
        return max(0.0, min(page_num / total_pages * 100, 100.0))

    def calculate_video_progress(self, current_time: int, duration: int) -> float:
        """
        Time-based percentage, clamped to [0, 100]

        Playing past VIDEO_COMPLETION_RATIO of the duration counts as 100 so
        trailing credits do not block completion.
        """
        if not duration or duration <= 0:
            return 0.0
        if current_time >= duration * self.video_completion_ratio:
            return 100.0
        return max(0.0, min(current_time / duration * 100, 100.0))

    def _get_file(self, db: Session, file_id: UUID) -> TaskFile:
        task_file = db.query(TaskFile).filter(TaskFile.id == file_id).first()
        if not task_file:
            raise NotFound("File not found")
        return task_file

    def _insert(self, db: Session):
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise RuntimeError(f"Progress upsert is not supported on {dialect}")

    def report(
        self,
        db: Session,
        user_id: UUID,
        file_id: UUID,
        task_id: UUID,
        position: ProgressPosition,
    ) -> FileProgress:
        """
        Record a progress report and re-evaluate task completion

        Raises:
            InvalidInput: effective time out of bounds or wrong report kind
            NotFound: file missing or not attached to the task
            Unauthorized: user holds no assignment for the task
        """
        if position.effective_time < 0 or position.effective_time > self.max_effective_time_delta:
            raise InvalidInput(
                f"effectiveTime must be between 0 and {self.max_effective_time_delta} seconds"
            )

        task_file = self._get_file(db, file_id)
        if task_file.task_id != task_id:
            raise NotFound("File not found in this task")

        is_video = task_file.file_type == VIDEO
        if is_video != (position.kind == VIDEO):
            raise InvalidInput(f"Cannot report {position.kind} progress for a {task_file.file_type} file")

        assignment = db.query(TaskAssignment).filter(
            TaskAssignment.task_id == task_id,
            TaskAssignment.user_id == user_id
        ).first()
        if not assignment:
            raise Unauthorized("You are not assigned to this task")

        now = self._clock()
        values: Dict[str, Any] = {
            "id": uuid.uuid4(),
            "user_id": user_id,
            "file_id": file_id,
            "task_id": task_id,
            "effective_time": position.effective_time,
            "started_at": now,
            "last_accessed": now,
        }

        if is_video:
            duration = position.duration or task_file.duration or 0
            current_time = position.current_time or 0
            percent = self.calculate_video_progress(current_time, duration)
            values.update(current_time=current_time, duration=duration)
            replaced = ["current_time", "duration"]
        else:
            total_pages = position.total_pages or task_file.total_pages or 0
            page_num = position.page_num or 1
            percent = self.calculate_pdf_progress(page_num, total_pages)
            values.update(
                current_page=page_num,
                total_pages=total_pages,
                scroll_position=position.scroll_position,
            )
            replaced = ["current_page", "total_pages", "scroll_position"]

        values["progress"] = percent
        values["completed_at"] = now if percent >= 100 else None

        stmt = self._insert(db)(FileProgress).values(**values)
        excluded = stmt.excluded
        update = {name: excluded[name] for name in replaced}
        update.update(
            # Completed rows stay at 100 even if a later report computes less
            progress=case(
                (FileProgress.completed_at.is_not(None), FileProgress.progress),
                else_=excluded.progress,
            ),
            effective_time=FileProgress.effective_time + excluded.effective_time,
            last_accessed=excluded.last_accessed,
            completed_at=func.coalesce(FileProgress.completed_at, excluded.completed_at),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "file_id"],
            set_=update,
        ).returning(FileProgress)

        progress = db.scalars(stmt, execution_options={"populate_existing": True}).one()

        db.add(LearningLog(
            user_id=user_id,
            file_id=file_id,
            task_id=task_id,
            log_type=VIDEO if is_video else "pdf",
            page_num=values.get("current_page"),
            current_time=values.get("current_time"),
            action=position.action or ("time_update" if is_video else "page_change"),
            session_duration=position.effective_time,
        ))
        db.commit()

        logger.info(
            f"Progress updated: user={user_id}, file={file_id}, "
            f"progress={progress.progress:.2f}, effective_time={progress.effective_time}, "
            f"completed={progress.is_completed}"
        )

        completion_service.mark_completed_if_eligible(db, user_id, task_id)

        return progress

    def get_progress(self, db: Session, user_id: UUID, file_id: UUID) -> Dict[str, Any]:
        """
        Get a user's progress on a file

        A missing row is the normal not-started state and yields a zero
        snapshot rather than an error.
        """
        task_file = self._get_file(db, file_id)
        is_video = task_file.file_type == VIDEO

        progress = db.query(FileProgress).filter(
            FileProgress.user_id == user_id,
            FileProgress.file_id == file_id
        ).first()

        if not progress:
            return {
                "file_id": file_id,
                "task_id": task_file.task_id,
                "file_type": task_file.file_type,
                "current_page": None if is_video else 0,
                "total_pages": None if is_video else task_file.total_pages,
                "current_time": 0 if is_video else None,
                "duration": task_file.duration if is_video else None,
                "progress_percent": 0.0,
                "effective_time": 0,
                "is_completed": False,
                "completed_at": None,
                "started_at": None,
                "last_accessed": None,
            }

        return self.to_snapshot(task_file, progress)

    def to_snapshot(self, task_file: TaskFile, progress: FileProgress) -> Dict[str, Any]:
        is_video = task_file.file_type == VIDEO
        return {
            "file_id": progress.file_id,
            "task_id": progress.task_id,
            "file_type": task_file.file_type,
            "current_page": None if is_video else progress.current_page,
            "total_pages": None if is_video else progress.total_pages,
            "current_time": progress.current_time if is_video else None,
            "duration": progress.duration if is_video else None,
            "progress_percent": round(float(progress.progress or 0), 2),
            "effective_time": progress.effective_time or 0,
            "is_completed": progress.is_completed,
            "completed_at": progress.completed_at,
            "started_at": progress.started_at,
            "last_accessed": progress.last_accessed,
        }


# Global instance
progress_service = ProgressService()
