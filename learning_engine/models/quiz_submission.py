"""
QuizSubmission model - one row per graded batch attempt
"""
from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid, func
from learning_engine.database import Base, JSONDocument
import uuid


class QuizSubmission(Base):
    """
    Quiz submissions table - attempt history per (task, user), never overwritten
    """
    __tablename__ = "quiz_submissions"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", "attempt_count", name="uq_quiz_submission_attempt"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=False)  # 0-100
    passed = Column(Boolean, nullable=False)
    total_questions = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    attempt_count = Column(Integer, nullable=False)  # 1-based ordinal
    answers = Column(JSONDocument)  # Submitted answers
    breakdown = Column(JSONDocument)  # Per-question grading
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return (
            f"<QuizSubmission(task_id={self.task_id}, user_id={self.user_id}, "
            f"attempt={self.attempt_count}, score={self.score})>"
        )
