"""Account registration, login and bearer-token validation."""
from datetime import datetime, timedelta
from typing import Dict, Optional

import bcrypt
import secrets
from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from . import schemas
from .config import LOCKOUT_MINUTES, MAX_FAILED_LOGINS, TOKEN_EXPIRY_MINUTES
from .database import get_db
from .logging_config import configure_logging
from .models import User
from ..shared.utils import is_password_strong

router = APIRouter(prefix="/auth", tags=["auth"])
logger = configure_logging()

# In-memory token store: token -> {"user_id": int, "expires": datetime}
TOKEN_STORE: Dict[str, Dict[str, datetime | int]] = {}


def issue_token(user: User) -> str:
    token = secrets.token_urlsafe(32)
    TOKEN_STORE[token] = {"user_id": user.id, "expires": datetime.utcnow() + timedelta(minutes=TOKEN_EXPIRY_MINUTES)}
    return token


def resolve_token(token: str) -> Optional[int]:
    """Return the user id behind ``token``, or None if it is unknown or expired."""
    token_data = TOKEN_STORE.get(token)
    if not token_data:
        return None
    if token_data["expires"] < datetime.utcnow():
        TOKEN_STORE.pop(token, None)
        return None
    return int(token_data["user_id"])


def _bearer_token(header: str | None) -> str:
    if not header or not header.startswith("Bearer "):
        logger.warning("UNAUTHORIZED_ACCESS reason=missing_token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    return header.split(" ", 1)[1]


def get_current_user_id(authorization: str | None = Header(default=None)) -> int:
    """FastAPI dependency returning authenticated user's id."""
    user_id = resolve_token(_bearer_token(authorization))
    if user_id is None:
        logger.warning("UNAUTHORIZED_ACCESS reason=invalid_or_expired_token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return user_id


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=10)).decode()


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
    existing = (
        db.query(User)
        .filter(or_(User.email == payload.email, User.username == payload.username))
        .first()
    )
    if existing:
        raise HTTPException(status_code=400, detail="A user with this email or username already exists")
    if not is_password_strong(payload.password):
        raise HTTPException(status_code=400, detail="Password too weak")

    user = User(username=payload.username, email=payload.email, password_hash=hash_password(payload.password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("REGISTER_SUCCESS username=%s user_id=%s", user.username, user.id)
    return schemas.AuthResponse(
        message="Registration successful",
        user=schemas.UserOut.model_validate(user),
        token=issue_token(user),
    )


@router.post("/login", response_model=schemas.AuthResponse)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    user: Optional[User] = db.query(User).filter(User.email == payload.email).first()
    if not user:
        logger.info("LOGIN_FAIL email=%s reason=not_found", payload.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if user.lock_until and user.lock_until > datetime.utcnow():
        logger.warning("ACCOUNT_BLOCKED email=%s locked_until=%s", payload.email, user.lock_until)
        raise HTTPException(status_code=403, detail=f"Account locked until {user.lock_until}")
    if user.lock_until:
        # Lock has run out: start counting failures afresh.
        user.failed_login_attempts = 0
        user.lock_until = None

    if not bcrypt.checkpw(payload.password.encode(), user.password_hash.encode()):
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= MAX_FAILED_LOGINS:
            user.lock_until = datetime.utcnow() + timedelta(minutes=LOCKOUT_MINUTES)
            logger.warning("ACCOUNT_BLOCKED email=%s locked_until=%s", payload.email, user.lock_until)
        db.commit()
        logger.info("LOGIN_FAIL email=%s reason=bad_password", payload.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user.failed_login_attempts = 0
    user.lock_until = None
    db.commit()

    logger.info("LOGIN_SUCCESS email=%s user_id=%s", user.email, user.id)
    return schemas.AuthResponse(
        message="Login successful",
        user=schemas.UserOut.model_validate(user),
        token=issue_token(user),
    )


@router.post("/logout")
def logout(authorization: str | None = Header(default=None)):
    token = _bearer_token(authorization)
    user_id = resolve_token(token)
    TOKEN_STORE.pop(token, None)
    logger.info("LOGOUT user_id=%s", user_id)
    return {"message": "Logged out"}
