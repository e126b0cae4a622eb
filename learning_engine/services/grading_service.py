"""
Quiz grading service
Immediate per-question answers and graded whole-quiz submissions
"""
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from learning_engine.config import settings
from learning_engine.exceptions import (
    AlreadyAnswered,
    AlreadyPassed,
    AttemptsExhausted,
    InvalidInput,
    InvalidOption,
    NotFound,
    SubmissionConflict,
    Unauthorized,
)
from learning_engine.models import QuizAnswer, QuizQuestion, QuizSubmission, Task, TaskAssignment
from learning_engine.services.completion_service import completion_service

logger = logging.getLogger(__name__)


class GradingService:
    """
    Service for quiz answers and submissions

    Two flows:
    - answer_one: records a single answer and never reveals correctness
    - submit_quiz: grades every answer at once, applies the task's pass
      policy and returns the full breakdown

    Pass policy:
    - strict mode: score must be 100
    - lenient mode (default): score >= task passing score (default 60)
    """

    def __init__(
        self,
        max_attempts: int = settings.QUIZ_MAX_ATTEMPTS,
        default_passing_score: int = settings.DEFAULT_PASSING_SCORE,
    ):
        self.max_attempts = max_attempts
        self.default_passing_score = default_passing_score

    def _get_assignment(
        self,
        db: Session,
        user_id: UUID,
        task_id: UUID,
        for_update: bool = False
    ) -> Optional[TaskAssignment]:
        query = db.query(TaskAssignment).filter(
            TaskAssignment.task_id == task_id,
            TaskAssignment.user_id == user_id
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def _get_task(self, db: Session, task_id: UUID) -> Task:
        task = db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise NotFound("Task not found")
        return task

    def _get_questions(self, db: Session, task_id: UUID) -> List[QuizQuestion]:
        return db.query(QuizQuestion).filter(
            QuizQuestion.task_id == task_id
        ).order_by(QuizQuestion.order, QuizQuestion.created_at).all()

    def passing_score_for(self, task: Task) -> int:
        if task.strict_mode:
            return 100
        if task.passing_score is None:
            return self.default_passing_score
        return task.passing_score

    def is_passing(self, task: Task, score: int) -> bool:
        if task.strict_mode:
            return score == 100
        return score >= self.passing_score_for(task)

    @staticmethod
    def calculate_score(correct: int, total: int) -> int:
        """Percentage rounded half up to an integer"""
        if total <= 0:
            return 0
        return (200 * correct + total) // (2 * total)

    def answer_one(self, db: Session, user_id: UUID, question_id: UUID, answer: int) -> None:
        """
        Record one answer for a question

        The caller learns only that the answer was accepted. Correctness is
        stored but never returned from this flow.

        Raises:
            NotFound, InvalidOption, Unauthorized, AlreadyAnswered
        """
        question = db.query(QuizQuestion).filter(QuizQuestion.id == question_id).first()
        if not question:
            raise NotFound("Question not found")

        if not question.has_option(answer):
            raise InvalidOption()

        if not self._get_assignment(db, user_id, question.task_id):
            raise Unauthorized("You are not assigned to this task")

        existing = db.query(QuizAnswer.id).filter(
            QuizAnswer.user_id == user_id,
            QuizAnswer.question_id == question_id
        ).first()
        if existing:
            raise AlreadyAnswered()

        db.add(QuizAnswer(
            user_id=user_id,
            question_id=question_id,
            answer=answer,
            is_correct=self._grade_mcq(question, answer),
        ))
        try:
            db.commit()
        except IntegrityError:
            # Lost a race against a concurrent answer for the same question
            db.rollback()
            raise AlreadyAnswered()

        logger.info(f"Answer recorded: user={user_id}, question={question_id}")

    def _grade_mcq(self, question: QuizQuestion, user_answer: int) -> bool:
        """Exact match against the stored option index"""
        return user_answer == question.correct_answer

    def grade_quiz(
        self,
        questions: List[QuizQuestion],
        answers: Dict[UUID, int]
    ) -> Tuple[int, List[Dict[str, Any]]]:
        """
        Grade a complete quiz submission

        Args:
            questions: Every question of the task, in display order
            answers: User's answers {question_id: option index}

        Returns:
            Tuple of (correct_count, breakdown)
        """
        correct_count = 0
        breakdown = []

        for question in questions:
            user_answer = answers.get(question.id)
            is_correct = user_answer is not None and self._grade_mcq(question, user_answer)
            if is_correct:
                correct_count += 1

            breakdown.append({
                "question_id": str(question.id),
                "user_answer": user_answer,
                "correct_answer": question.correct_answer,
                "is_correct": is_correct,
            })

        return correct_count, breakdown

    def submit_quiz(
        self,
        db: Session,
        user_id: UUID,
        task_id: UUID,
        answers: List[Tuple[UUID, int]]
    ) -> Dict[str, Any]:
        """
        Grade and store one attempt at a task's quiz

        The pass/attempt checks and the insert share one transaction with the
        assignment row locked, and (task, user, attempt) is unique, so racing
        submissions cannot exceed the attempt cap.

        Raises:
            InvalidInput, NotFound, InvalidOption, Unauthorized,
            AlreadyPassed, AttemptsExhausted, SubmissionConflict
        """
        task = self._get_task(db, task_id)

        if not answers:
            raise InvalidInput("No answers submitted")

        answer_map = dict(answers)
        if len(answer_map) != len(answers):
            raise InvalidInput("Each question may only be answered once per submission")

        questions = self._get_questions(db, task_id)
        if not questions:
            raise InvalidInput("This task has no quiz")

        question_map = {q.id: q for q in questions}
        unknown = [q_id for q_id in answer_map if q_id not in question_map]
        if unknown:
            raise InvalidInput("Some questions do not belong to this task")

        for q_id, answer in answer_map.items():
            if not question_map[q_id].has_option(answer):
                raise InvalidOption()

        if not self._get_assignment(db, user_id, task_id, for_update=True):
            raise Unauthorized("You are not assigned to this task")

        prior = db.query(QuizSubmission).filter(
            QuizSubmission.task_id == task_id,
            QuizSubmission.user_id == user_id
        ).all()

        if any(s.passed for s in prior):
            db.rollback()
            raise AlreadyPassed()

        if len(prior) >= self.max_attempts:
            db.rollback()
            raise AttemptsExhausted(f"Maximum of {self.max_attempts} attempts reached")

        correct_count, breakdown = self.grade_quiz(questions, answer_map)
        total = len(questions)
        score = self.calculate_score(correct_count, total)
        passed = self.is_passing(task, score)
        attempt_count = len(prior) + 1

        submission = QuizSubmission(
            task_id=task_id,
            user_id=user_id,
            score=score,
            passed=passed,
            total_questions=total,
            correct_answers=correct_count,
            attempt_count=attempt_count,
            answers=[{"question_id": str(q_id), "answer": a} for q_id, a in answers],
            breakdown=breakdown,
        )
        db.add(submission)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise SubmissionConflict()

        logger.info(
            f"Quiz graded: user={user_id}, task={task_id}, attempt={attempt_count}, "
            f"score={score}, passed={passed}"
        )

        completion_service.mark_completed_if_eligible(db, user_id, task_id)

        return {
            "score": score,
            "passed": passed,
            "total": total,
            "correct_answers": correct_count,
            "passing_score": self.passing_score_for(task),
            "strict_mode": bool(task.strict_mode),
            "attempt": attempt_count,
            "attempts_remaining": 0 if passed else self.max_attempts - attempt_count,
            "breakdown": breakdown,
        }

    def list_questions(self, db: Session, user_id: UUID, task_id: UUID, is_admin: bool = False) -> Dict[str, Any]:
        """Questions of a task without their answer key"""
        task = self._get_task(db, task_id)
        if not is_admin and not self._get_assignment(db, user_id, task_id):
            raise Unauthorized("You are not assigned to this task")

        return {
            "task_id": task.id,
            "passing_score": self.passing_score_for(task),
            "strict_mode": bool(task.strict_mode),
            "max_attempts": self.max_attempts,
            "questions": [
                {
                    "id": q.id,
                    "question": q.question,
                    "options": q.options,
                    "order": q.order,
                }
                for q in self._get_questions(db, task_id)
            ],
        }

    def quiz_result(self, db: Session, user_id: UUID, task_id: UUID, is_admin: bool = False) -> Dict[str, Any]:
        """Submission history and attempt budget for a user on a task"""
        task = self._get_task(db, task_id)
        if not is_admin and not self._get_assignment(db, user_id, task_id):
            raise Unauthorized("You are not assigned to this task")

        submissions = db.query(QuizSubmission).filter(
            QuizSubmission.task_id == task_id,
            QuizSubmission.user_id == user_id
        ).order_by(QuizSubmission.attempt_count.desc()).all()

        has_passed = any(s.passed for s in submissions)
        best = max(submissions, key=lambda s: s.score) if submissions else None

        return {
            "task_id": task.id,
            "task_title": task.title,
            "total_questions": len(self._get_questions(db, task_id)),
            "attempts_used": len(submissions),
            "attempts_remaining": 0 if has_passed else max(0, self.max_attempts - len(submissions)),
            "has_passed": has_passed,
            "best_score": best.score if best else None,
            "submissions": [
                {
                    "id": s.id,
                    "score": s.score,
                    "passed": s.passed,
                    "total_questions": s.total_questions,
                    "correct_answers": s.correct_answers,
                    "attempt": s.attempt_count,
                    "submitted_at": s.submitted_at,
                }
                for s in submissions
            ],
        }


# Global instance
grading_service = GradingService()
