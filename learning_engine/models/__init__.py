"""
Database models package
"""
from learning_engine.models.user import User
from learning_engine.models.task import Task, TaskFile, TaskAssignment
from learning_engine.models.quiz import QuizQuestion, QuizAnswer
from learning_engine.models.quiz_submission import QuizSubmission
from learning_engine.models.file_progress import FileProgress, LearningLog
from learning_engine.models.login_attempt import LoginAttempt

__all__ = [
    "User",
    "Task",
    "TaskFile",
    "TaskAssignment",
    "QuizQuestion",
    "QuizAnswer",
    "QuizSubmission",
    "FileProgress",
    "LearningLog",
    "LoginAttempt",
]
