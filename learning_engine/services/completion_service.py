"""
Task completion detection service
Derives task completion from file progress and quiz outcome
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from learning_engine.models import FileProgress, QuizQuestion, QuizSubmission, TaskAssignment, TaskFile

logger = logging.getLogger(__name__)


class CompletionService:
    """
    Service for detecting task completion

    A task is complete for a user when:
    - every file of the task has a progress row with completed_at set, and
    - the task has no quiz, or the user has at least one passing submission

    Completion is recomputed from those two facts on every progress report
    and quiz submission; the assignment flag only ever moves false -> true.
    """

    def get_task_status(self, db: Session, user_id: UUID, task_id: UUID) -> Dict[str, Any]:
        """
        Collect the facts completion is derived from

        Returns:
            Dictionary with file counts, quiz state and the assignment flag
        """
        file_ids = [
            row[0] for row in db.query(TaskFile.id).filter(TaskFile.task_id == task_id).all()
        ]

        completed_files = 0
        if file_ids:
            completed_files = db.query(func.count(FileProgress.id)).filter(
                FileProgress.user_id == user_id,
                FileProgress.file_id.in_(file_ids),
                FileProgress.completed_at.is_not(None)
            ).scalar() or 0

        quiz_required = db.query(QuizQuestion.id).filter(
            QuizQuestion.task_id == task_id
        ).first() is not None

        quiz_passed = db.query(QuizSubmission.id).filter(
            QuizSubmission.task_id == task_id,
            QuizSubmission.user_id == user_id,
            QuizSubmission.passed.is_(True)
        ).first() is not None

        assignment = db.query(TaskAssignment).filter(
            TaskAssignment.task_id == task_id,
            TaskAssignment.user_id == user_id
        ).first()

        files_done = completed_files == len(file_ids)
        quiz_done = quiz_passed or not quiz_required
        # Nothing to consume means nothing to complete
        has_content = bool(file_ids) or quiz_required

        return {
            "task_id": task_id,
            "total_files": len(file_ids),
            "completed_files": completed_files,
            "quiz_required": quiz_required,
            "quiz_passed": quiz_passed,
            "is_complete": has_content and files_done and quiz_done,
            "is_assigned": assignment is not None,
            "assignment_completed": bool(assignment and assignment.is_completed),
            "submitted_at": assignment.submitted_at if assignment else None,
        }

    def is_task_complete(self, db: Session, user_id: UUID, task_id: UUID) -> bool:
        return self.get_task_status(db, user_id, task_id)["is_complete"]

    def mark_completed_if_eligible(self, db: Session, user_id: UUID, task_id: UUID) -> bool:
        """
        Flip the assignment to completed when the task is complete

        Idempotent: an already-completed or missing assignment is left alone.

        Returns:
            True if this call completed the assignment
        """
        if not self.is_task_complete(db, user_id, task_id):
            return False

        updated = db.query(TaskAssignment).filter(
            TaskAssignment.task_id == task_id,
            TaskAssignment.user_id == user_id,
            TaskAssignment.is_completed.is_(False)
        ).update(
            {
                TaskAssignment.is_completed: True,
                TaskAssignment.submitted_at: datetime.now(timezone.utc),
            },
            synchronize_session="fetch"
        )
        db.commit()

        if updated:
            logger.info(f"Task completed: user={user_id}, task={task_id}")
        return bool(updated)


# Global instance
completion_service = CompletionService()
