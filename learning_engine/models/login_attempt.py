"""
LoginAttempt model - durable failed-login counter per normalized username
"""
from sqlalchemy import Column, String, Integer, Float
from learning_engine.database import Base


class LoginAttempt(Base):
    """
    Login attempts table - timestamps are epoch seconds so the tracker can run on an injected clock
    """
    __tablename__ = "login_attempts"

    username = Column(String(64), primary_key=True)
    count = Column(Integer, nullable=False, default=0)
    first_attempt = Column(Float, nullable=False)
    locked_until = Column(Float)

    def __repr__(self):
        return f"<LoginAttempt(username={self.username}, count={self.count}, locked_until={self.locked_until})>"
