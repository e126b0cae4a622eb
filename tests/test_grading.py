"""
Tests for quiz answers, grading and attempt rules.
"""
import uuid

import pytest

from conftest import questions_of, run_concurrently
from learning_engine.exceptions import (
    AlreadyAnswered,
    AlreadyPassed,
    AttemptsExhausted,
    InvalidInput,
    InvalidOption,
    NotFound,
    Unauthorized,
)
from learning_engine.models import QuizAnswer, QuizSubmission
from learning_engine.services.grading_service import GradingService

OPTIONS = ["A", "B", "C", "D"]


@pytest.fixture
def service():
    return GradingService(max_attempts=3, default_passing_score=60)


@pytest.fixture
def learner(make_user):
    return make_user()


def build_quiz(make_task, learner, count, **task_kwargs):
    return make_task(questions=[(OPTIONS, 0)] * count, assign=[learner], **task_kwargs)


def answers_with(db, task, correct):
    """Answer the first `correct` questions right and the rest wrong"""
    questions = questions_of(db, task)
    return [
        (q.id, q.correct_answer if i < correct else q.correct_answer + 1)
        for i, q in enumerate(questions)
    ]


class TestScore:

    @pytest.mark.parametrize("correct,total,expected", [
        (0, 5, 0),
        (3, 5, 60),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),  # 12.5 rounds half up
        (5, 5, 100),
    ])
    def test_calculate_score(self, correct, total, expected):
        assert GradingService.calculate_score(correct, total) == expected


class TestAnswerOne:

    def test_answer_is_recorded(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 2)
        question = questions_of(db, task)[0]

        assert service.answer_one(db, learner.id, question.id, 0) is None

        stored = db.query(QuizAnswer).one()
        assert stored.answer == 0
        assert stored.is_correct is True

    def test_duplicate_keeps_first_answer(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 1)
        question = questions_of(db, task)[0]

        service.answer_one(db, learner.id, question.id, 2)
        with pytest.raises(AlreadyAnswered):
            service.answer_one(db, learner.id, question.id, 0)

        stored = db.query(QuizAnswer).one()
        assert stored.answer == 2
        assert stored.is_correct is False

    def test_option_out_of_range(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 1)
        question = questions_of(db, task)[0]

        with pytest.raises(InvalidOption):
            service.answer_one(db, learner.id, question.id, 4)
        assert db.query(QuizAnswer).count() == 0

    def test_unknown_question(self, db, service, learner):
        with pytest.raises(NotFound):
            service.answer_one(db, learner.id, uuid.uuid4(), 0)

    def test_unassigned_user(self, db, service, make_task, make_user, learner):
        task = build_quiz(make_task, learner, 1)
        outsider = make_user()

        with pytest.raises(Unauthorized):
            service.answer_one(db, outsider.id, questions_of(db, task)[0].id, 0)


class TestPassPolicy:

    def test_lenient_sixty_passes(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 5)
        result = service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 3))
        assert result["score"] == 60
        assert result["passed"] is True
        assert result["passing_score"] == 60

    def test_lenient_fifty_nine_fails(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 22)
        result = service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 13))
        assert result["score"] == 59
        assert result["passed"] is False
        assert result["attempts_remaining"] == 2

    def test_custom_passing_score(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 5, passing_score=80)
        result = service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 3))
        assert result["passed"] is False
        assert result["passing_score"] == 80

    def test_strict_requires_perfect_score(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 5, strict_mode=True)
        assert service.is_passing(task, 99) is False
        assert service.is_passing(task, 100) is True

        result = service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 4))
        assert result["score"] == 80
        assert result["passed"] is False
        assert result["strict_mode"] is True

        result = service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 5))
        assert result["score"] == 100
        assert result["passed"] is True

    def test_missing_answers_count_as_wrong(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 4)
        first = questions_of(db, task)[0]

        result = service.submit_quiz(db, learner.id, task.id, [(first.id, first.correct_answer)])

        assert result["total"] == 4
        assert result["correct_answers"] == 1
        assert result["score"] == 25
        assert [b["user_answer"] for b in result["breakdown"]] == [0, None, None, None]


class TestAttempts:

    def test_fourth_attempt_after_three_failures(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 5)

        remaining = []
        for _ in range(3):
            result = service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 1))
            remaining.append(result["attempts_remaining"])
        assert remaining == [2, 1, 0]

        with pytest.raises(AttemptsExhausted):
            service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 5))
        assert db.query(QuizSubmission).count() == 3

    def test_no_attempt_after_pass(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 5)

        result = service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 5))
        assert result["attempt"] == 1
        assert result["attempts_remaining"] == 0

        with pytest.raises(AlreadyPassed):
            service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 5))

    def test_pass_on_last_attempt(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 5)
        for _ in range(2):
            service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 0))

        result = service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 3))
        assert result["attempt"] == 3
        assert result["passed"] is True

    def test_result_history(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 5)
        service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 2))
        service.submit_quiz(db, learner.id, task.id, answers_with(db, task, 4))

        history = service.quiz_result(db, learner.id, task.id)

        assert history["attempts_used"] == 2
        assert history["attempts_remaining"] == 0
        assert history["has_passed"] is True
        assert history["best_score"] == 80
        assert [s["attempt"] for s in history["submissions"]] == [2, 1]


class TestSubmissionValidation:

    def test_duplicate_question_in_submission(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 2)
        question = questions_of(db, task)[0]
        with pytest.raises(InvalidInput):
            service.submit_quiz(db, learner.id, task.id, [(question.id, 0), (question.id, 1)])

    def test_question_from_other_task(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 2)
        other = build_quiz(make_task, learner, 1)
        foreign = questions_of(db, other)[0]
        with pytest.raises(InvalidInput):
            service.submit_quiz(db, learner.id, task.id, [(foreign.id, 0)])

    def test_invalid_option(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 2)
        question = questions_of(db, task)[0]
        with pytest.raises(InvalidOption):
            service.submit_quiz(db, learner.id, task.id, [(question.id, 9)])
        assert db.query(QuizSubmission).count() == 0

    def test_empty_submission(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 2)
        with pytest.raises(InvalidInput):
            service.submit_quiz(db, learner.id, task.id, [])

    def test_task_without_quiz(self, db, service, make_task, learner):
        task = make_task(files=[{"file_type": "pdf", "total_pages": 1}], assign=[learner])
        with pytest.raises(InvalidInput):
            service.submit_quiz(db, learner.id, task.id, [(uuid.uuid4(), 0)])

    def test_unknown_task(self, db, service, learner):
        with pytest.raises(NotFound):
            service.submit_quiz(db, learner.id, uuid.uuid4(), [(uuid.uuid4(), 0)])

    def test_unassigned_user(self, db, service, make_task, make_user, learner):
        task = build_quiz(make_task, learner, 1)
        outsider = make_user()
        with pytest.raises(Unauthorized):
            service.submit_quiz(db, outsider.id, task.id, answers_with(db, task, 1))


class TestConcurrency:

    def test_racing_answers_keep_one(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 1)
        question_id = questions_of(db, task)[0].id
        user_id = learner.id

        def answer(session):
            service.answer_one(session, user_id, question_id, 1)
            return "ok"

        outcomes = run_concurrently(answer, 4)

        assert outcomes.count("ok") == 1
        assert outcomes.count("AlreadyAnswered") == 3
        db.expire_all()
        assert db.query(QuizAnswer).count() == 1

    def test_racing_submissions_stay_within_attempt_cap(self, db, service, make_task, learner):
        task = build_quiz(make_task, learner, 5)
        task_id, user_id = task.id, learner.id
        failing = answers_with(db, task, 1)

        def submit(session):
            return service.submit_quiz(session, user_id, task_id, failing)["attempt"]

        outcomes = run_concurrently(submit, 6)

        attempts = [o for o in outcomes if isinstance(o, int)]
        rejected = [o for o in outcomes if not isinstance(o, int)]
        assert attempts
        assert len(attempts) == len(set(attempts))
        assert set(rejected) <= {"SubmissionConflict", "AttemptsExhausted"}

        db.expire_all()
        rows = db.query(QuizSubmission).filter(QuizSubmission.user_id == user_id).all()
        assert len(rows) == len(attempts) <= 3
        assert sorted(r.attempt_count for r in rows) == sorted(attempts)
