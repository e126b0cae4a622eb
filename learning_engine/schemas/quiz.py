"""
Pydantic schemas for quiz-related requests and responses
"""
from pydantic import Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from learning_engine.schemas.common import CamelModel


class AnswerRequest(CamelModel):
    """Schema for answering a single question"""
    question_id: UUID
    answer: int = Field(..., ge=0, description="Chosen option index")


class AnswerAccepted(CamelModel):
    """Acknowledgement for a single answer; carries no correctness field"""
    success: bool = True


class SubmittedAnswer(CamelModel):
    question_id: UUID
    answer: int = Field(..., ge=0)


class QuizSubmitRequest(CamelModel):
    """Schema for a whole-quiz submission"""
    task_id: UUID
    answers: List[SubmittedAnswer] = Field(..., min_length=1)


class QuestionGrading(CamelModel):
    """Grading details for a single question"""
    question_id: UUID
    user_answer: Optional[int] = None
    correct_answer: int
    is_correct: bool


class QuizGradingResponse(CamelModel):
    """Response after quiz grading"""
    score: int
    passed: bool
    total: int
    correct_answers: int
    passing_score: int
    strict_mode: bool
    attempt: int
    attempts_remaining: int
    breakdown: List[QuestionGrading]


class QuizQuestionView(CamelModel):
    """Question as shown to a learner, without the answer key"""
    id: UUID
    question: str
    options: List[str]
    order: int


class QuizQuestionsResponse(CamelModel):
    task_id: UUID
    passing_score: int
    strict_mode: bool
    max_attempts: int
    questions: List[QuizQuestionView]


class SubmissionSummary(CamelModel):
    id: UUID
    score: int
    passed: bool
    total_questions: int
    correct_answers: int
    attempt: int
    submitted_at: Optional[datetime] = None


class QuizResultResponse(CamelModel):
    """Submission history for a task"""
    task_id: UUID
    task_title: str
    total_questions: int
    attempts_used: int
    attempts_remaining: int
    has_passed: bool
    best_score: Optional[int] = None
    submissions: List[SubmissionSummary]
