"""
User model - accounts that log in and hold task assignments
"""
from sqlalchemy import Column, String, DateTime, Uuid, func
from learning_engine.database import Base
import uuid


class User(Base):
    """
    Users table - credentials and role (admin | user)
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(64), unique=True, nullable=False, index=True)
    password_hash = Column(String(128), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
