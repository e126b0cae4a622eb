"""
Account lockout tracking for credential-guessing protection
"""
import logging
import time
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from learning_engine.config import settings
from learning_engine.models import LoginAttempt

logger = logging.getLogger(__name__)


class LockoutService:
    """
    Durable failed-login counter per username

    Policy: MAX_ATTEMPTS failures inside a WINDOW of activity lock the
    account for LOCK_DURATION. A lock that has run out, or a failure window
    that went stale, starts the count over. Works independently of request
    rate limiting: spacing requests out does not avoid the lock.
    """

    def __init__(
        self,
        max_attempts: int = settings.LOCKOUT_MAX_ATTEMPTS,
        window_seconds: int = settings.LOCKOUT_WINDOW_MINUTES * 60,
        lock_seconds: int = settings.LOCKOUT_DURATION_MINUTES * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.lock_seconds = lock_seconds
        self._clock = clock

    @staticmethod
    def normalize(username: str) -> str:
        return (username or "").strip().lower()

    def _get_record(self, db: Session, username: str, for_update: bool = False) -> Optional[LoginAttempt]:
        query = db.query(LoginAttempt).filter(LoginAttempt.username == username)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def is_locked(self, db: Session, username: str) -> bool:
        """True only while the lock is running; an expired lock is cleaned up"""
        key = self.normalize(username)
        record = self._get_record(db, key)

        if not record or record.locked_until is None:
            return False

        if self._clock() < record.locked_until:
            return True

        db.delete(record)
        db.commit()
        logger.info(f"Lock expired, cleared login attempts for {key}")
        return False

    def remaining_lock_seconds(self, db: Session, username: str) -> int:
        record = self._get_record(db, self.normalize(username))
        if not record or record.locked_until is None:
            return 0
        return max(0, int(record.locked_until - self._clock()))

    def record_failure(self, db: Session, username: str, _retry: bool = True) -> bool:
        """
        Record one failed login

        Returns:
            True when this failure locked the account
        """
        key = self.normalize(username)
        now = self._clock()
        record = self._get_record(db, key, for_update=True)

        if record is None:
            record = LoginAttempt(username=key, count=0, first_attempt=now, locked_until=None)
            db.add(record)
        elif record.locked_until is not None and record.locked_until <= now:
            record.count = 0
            record.first_attempt = now
            record.locked_until = None
        elif record.locked_until is None and now - record.first_attempt > self.window_seconds:
            record.count = 0
            record.first_attempt = now

        record.count += 1
        locked_now = record.count >= self.max_attempts
        if locked_now:
            record.locked_until = now + self.lock_seconds

        try:
            db.commit()
        except IntegrityError:
            # A concurrent first failure created the row; count against it
            db.rollback()
            if not _retry:
                raise
            return self.record_failure(db, username, _retry=False)

        if locked_now:
            logger.warning(f"Account locked after {record.count} failed attempts: {key}")
        return locked_now

    def reset_on_success(self, db: Session, username: str) -> None:
        db.query(LoginAttempt).filter(LoginAttempt.username == self.normalize(username)).delete()
        db.commit()


# Global instance
lockout_service = LockoutService()
