"""
pytest configuration - throw-away SQLite database, clean rows and rate
limiter between tests, and factories for users and tasks.
"""
import os
import threading
from contextlib import contextmanager

os.environ["DATABASE_URL"] = "sqlite:///./test_learning_engine.db"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from learning_engine.database import Base, SessionLocal, engine
from learning_engine import models  # noqa: F401 - registers ORM mappings with Base.metadata
from learning_engine.main import app
from learning_engine.models import QuizQuestion, Task, TaskAssignment, TaskFile, User
from learning_engine.utils.rate_limiter import rate_limiter
from learning_engine.utils.security import create_access_token, hash_password

TEST_PASSWORD = "correct-horse-42"


class FakeClock:
    """Manually advanced clock returning epoch seconds"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@contextmanager
def db_session():
    """Session outside the request cycle with commit/rollback"""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def run_concurrently(worker, count: int) -> list:
    """
    Start `count` threads that call worker(session) at the same moment

    Each thread gets its own session. Returns the outcome per thread: the
    worker result, or the name of the exception it raised.
    """
    barrier = threading.Barrier(count)
    outcomes = [None] * count

    def _run(index: int):
        session = SessionLocal()
        try:
            barrier.wait()
            outcomes[index] = worker(session)
        except Exception as exc:
            outcomes[index] = type(exc).__name__
        finally:
            session.close()

    threads = [threading.Thread(target=_run, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return outcomes


@pytest.fixture(autouse=True, scope="session")
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists("./test_learning_engine.db"):
        os.remove("./test_learning_engine.db")


@pytest.fixture(autouse=True)
def clean_state():
    with db_session() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
    rate_limiter.reset_all()
    yield


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(username: str = None, role: str = "user", password: str = TEST_PASSWORD) -> User:
        counter["n"] += 1
        user = User(
            username=username or f"learner{counter['n']}",
            password_hash=hash_password(password),
            name=f"Learner {counter['n']}",
            role=role,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_task(db):
    """
    Build a task with files, questions and assignments in one call

    files: list of dicts, e.g. {"file_type": "pdf", "total_pages": 10}
    questions: list of (options, correct_answer) tuples
    """

    def _make(files=(), questions=(), assign=(), strict_mode=False, passing_score=None) -> Task:
        task = Task(title="Security awareness", strict_mode=strict_mode, passing_score=passing_score)
        db.add(task)
        db.flush()

        for i, attrs in enumerate(files):
            db.add(TaskFile(task_id=task.id, title=f"File {i + 1}", order=i, **attrs))
        for i, (options, correct) in enumerate(questions):
            db.add(QuizQuestion(
                task_id=task.id,
                question=f"Question {i + 1}",
                options=list(options),
                correct_answer=correct,
                order=i,
            ))
        for user in assign:
            db.add(TaskAssignment(task_id=task.id, user_id=user.id))
        db.commit()
        return task

    return _make


def files_of(db, task):
    return db.query(TaskFile).filter(TaskFile.task_id == task.id).order_by(TaskFile.order).all()


def questions_of(db, task):
    return db.query(QuizQuestion).filter(QuizQuestion.task_id == task.id).order_by(QuizQuestion.order).all()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id), user.role)}"}
