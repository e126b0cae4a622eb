"""
Quiz models - question bank per task and immediate per-question answers
"""
from sqlalchemy import (
    Column, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, Uuid, func
)
from learning_engine.database import Base, JSONDocument
import uuid


class QuizQuestion(Base):
    """
    Quiz questions table - options are an ordered list, correct_answer indexes into it
    """
    __tablename__ = "quiz_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSONDocument, nullable=False)  # ["Option A", "Option B", ...]
    correct_answer = Column(Integer, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def has_option(self, index: int) -> bool:
        return 0 <= index < len(self.options or [])

    def __repr__(self):
        return f"<QuizQuestion(id={self.id}, task_id={self.task_id}, order={self.order})>"


class QuizAnswer(Base):
    """
    Quiz answers table - at most one answer per (user, question)
    """
    __tablename__ = "quiz_answers"
    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_quiz_answer_user_question"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False)
    answer = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    answered_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<QuizAnswer(user_id={self.user_id}, question_id={self.question_id})>"
