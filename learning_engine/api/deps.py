"""
Authentication dependencies shared by the routers
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from learning_engine.database import get_db
from learning_engine.exceptions import Unauthenticated, Unauthorized
from learning_engine.models import User
from learning_engine.utils.security import decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the user from an `Authorization: Bearer <jwt>` header or raise 401"""
    if not bearer or not bearer.credentials:
        raise Unauthenticated("No credentials provided", headers={"WWW-Authenticate": "Bearer"})

    try:
        payload = decode_token(bearer.credentials)
        user_id = UUID(payload.get("sub", ""))
    except (JWTError, ValueError):
        raise Unauthenticated("Invalid or expired token", headers={"WWW-Authenticate": "Bearer"})

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise Unauthenticated("User not found")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Unauthorized("Admin access required")
    return current_user
