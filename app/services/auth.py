"""
Authentication helpers: bcrypt password hashing, short-lived JWT access
tokens, and opaque refresh tokens stored in the database and handed to the
browser as an httpOnly cookie.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.refresh_token import RefreshToken
from app.models.user import User

logger = logging.getLogger(__name__)

REFRESH_COOKIE_NAME = "refreshToken"
REFRESH_TOKEN_LENGTH = 128

bearer_scheme = HTTPBearer(auto_error=False)


# ── Passwords ────────────────────────────────────────────────────────────────

def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ── Access tokens ────────────────────────────────────────────────────────────

def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {"sub": str(user_id), "type": "access", "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id in a valid access token; raises 401 otherwise."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Access token expired")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid access token")

    if payload.get("type") != "access" or payload.get("sub") is None:
        raise HTTPException(status_code=401, detail="Invalid access token")
    try:
        return int(payload["sub"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid access token")


# ── Refresh tokens ───────────────────────────────────────────────────────────

def generate_refresh_token() -> str:
    return secrets.token_hex(REFRESH_TOKEN_LENGTH // 2)


def is_well_formed_refresh_token(token: Optional[str]) -> bool:
    return bool(token) and len(token) == REFRESH_TOKEN_LENGTH


def issue_refresh_token(db: Session, user: User, request: Request, keep_logged_in: bool = False) -> RefreshToken:
    days = settings.REFRESH_TOKEN_REMEMBER_DAYS if keep_logged_in else settings.REFRESH_TOKEN_EXPIRE_DAYS
    token = RefreshToken(
        token=generate_refresh_token(),
        user_id=user.id,
        expires_at=datetime.utcnow() + timedelta(days=days),
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    db.add(token)
    db.commit()
    db.refresh(token)
    return token


def find_active_refresh_token(db: Session, token: str) -> Optional[RefreshToken]:
    return (
        db.query(RefreshToken)
        .filter(
            RefreshToken.token == token,
            RefreshToken.is_revoked.is_(False),
            RefreshToken.expires_at > datetime.utcnow(),
        )
        .first()
    )


def revoke_user_tokens(db: Session, user_id: int) -> int:
    count = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
        .update({RefreshToken.is_revoked: True}, synchronize_session=False)
    )
    db.commit()
    logger.info("Revoked %d refresh tokens for user %s", count, user_id)
    return count


def cleanup_refresh_tokens(db: Session) -> int:
    """Delete expired or revoked tokens."""
    count = (
        db.query(RefreshToken)
        .filter((RefreshToken.expires_at < datetime.utcnow()) | RefreshToken.is_revoked.is_(True))
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Removed %d expired or revoked refresh tokens", count)
    return count


def set_refresh_cookie(response: Response, token: RefreshToken) -> None:
    max_age = int((token.expires_at - datetime.utcnow()).total_seconds())
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=token.token,
        max_age=max_age,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict" if settings.COOKIE_SECURE else "lax",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict" if settings.COOKIE_SECURE else "lax",
    )


# ── Dependencies ─────────────────────────────────────────────────────────────

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Access token required")

    user_id = decode_access_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user
