"""
Authentication API endpoints
"""
import math
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from learning_engine.api.deps import get_current_user
from learning_engine.config import settings
from learning_engine.database import get_db
from learning_engine.exceptions import AccountLocked, InvalidInput, Unauthenticated
from learning_engine.models import User
from learning_engine.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from learning_engine.services.lockout_service import lockout_service
from learning_engine.utils.rate_limiter import rate_limiter
from learning_engine.utils.security import create_access_token, hash_password, verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

LOGIN_WINDOW_MS = settings.LOGIN_RATE_WINDOW_MINUTES * 60 * 1000
REGISTER_WINDOW_MS = settings.REGISTER_RATE_WINDOW_MINUTES * 60 * 1000
INVALID_CREDENTIALS = "Invalid username or password"


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Register a learner account

    Throttled per client address (REGISTER_RATE_LIMIT per window)
    """
    limit = rate_limiter.enforce(
        rate_limiter.get_client_id(request),
        settings.REGISTER_RATE_LIMIT,
        REGISTER_WINDOW_MS,
        scope="register"
    )
    response.headers.update(limit.headers())

    username = lockout_service.normalize(payload.username)
    if db.query(User.id).filter(User.username == username).first():
        raise InvalidInput("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(payload.password),
        name=payload.name,
        role="user",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration of the same name
        db.rollback()
        raise InvalidInput("Username already exists")
    db.refresh(user)

    logger.info(f"User registered: {user.id}")

    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Exchange credentials for a bearer token

    - Request volume is throttled per client address
    - Failed attempts are counted per username; 5 within 30 minutes lock
      the account for 30 minutes
    """
    limit = rate_limiter.enforce(
        rate_limiter.get_client_id(request),
        settings.LOGIN_RATE_LIMIT,
        LOGIN_WINDOW_MS,
        scope="login"
    )
    response.headers.update(limit.headers())

    username = lockout_service.normalize(payload.username)

    if lockout_service.is_locked(db, username):
        remaining = lockout_service.remaining_lock_seconds(db, username)
        raise AccountLocked(
            f"Too many login attempts, try again in {max(1, math.ceil(remaining / 60))} minutes",
            retryAfter=remaining,
        )

    user = db.query(User).filter(User.username == username).first()

    # Unknown usernames count too, so lockout behaviour does not reveal which accounts exist
    if not user or not verify_password(payload.password, user.password_hash):
        if lockout_service.record_failure(db, username):
            raise AccountLocked(
                f"Too many login attempts, account locked for {settings.LOCKOUT_DURATION_MINUTES} minutes",
                retryAfter=settings.LOCKOUT_DURATION_MINUTES * 60,
            )
        raise Unauthenticated(INVALID_CREDENTIALS)

    lockout_service.reset_on_success(db, username)

    token = create_access_token(str(user.id), user.role)
    logger.info(f"User logged in: {user.id}")

    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    """Return the user behind the current token"""
    return UserResponse.model_validate(current_user)
