"""
FastAPI dependencies for authentication and service wiring
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt, ExpiredSignatureError
from pydantic import ValidationError

from .config import settings
from .database.core import AsyncSessionLocal
from .schemas.auth import TokenPayload
from .schemas.enums import UserRole
from .services.notification_service import NotificationService, notification_service
from .services.post_commit import PostCommitRunner, post_commit_runner
from .services.reminder_service import ReminderService, reminder_service
from .services.status_engine import StatusTransitionEngine, status_engine
from .utils.errors import AuthorizationError

ALLOWED_JWT_ALGORITHMS = ("HS256",)

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str) -> TokenPayload:
    """Verify JWT token and return token data"""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=list(ALLOWED_JWT_ALGORITHMS),
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "require_exp": True,
            },
        )
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except JWTError:
        raise _unauthorized("Invalid token")

    username = payload.get("sub")
    user_id = payload.get("user_id")
    jti = payload.get("jti")
    exp = payload.get("exp")

    # Require all critical claims to be present and non-empty
    if not username or not user_id or not jti or not exp:
        raise _unauthorized("Invalid token - missing required claims")

    try:
        return TokenPayload(
            username=username,
            user_id=user_id,
            role=payload.get("role") or UserRole.USER.value,
            jti=jti,
            exp=exp,
        )
    except ValidationError:
        raise _unauthorized("Invalid token - malformed claims")


async def get_current_active_user(
    token: HTTPAuthorizationCredentials = Depends(security),
) -> TokenPayload:
    """Authenticated caller from the bearer token"""
    return verify_token(token.credentials)


async def require_admin(
    current_user: TokenPayload = Depends(get_current_active_user),
) -> TokenPayload:
    """Only ADMIN callers pass"""
    if not current_user.is_admin:
        raise AuthorizationError()
    return current_user


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token with a jti"""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({
        "exp": expire,
        "jti": str(uuid.uuid4()),
        "iat": now,
    })
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.algorithm)


# Service providers; tests override these to wire services to their own store.

def get_status_engine() -> StatusTransitionEngine:
    return status_engine


def get_notification_service() -> NotificationService:
    return notification_service


def get_reminder_service() -> ReminderService:
    return reminder_service


def get_post_commit_runner() -> PostCommitRunner:
    return post_commit_runner


def get_session_factory():
    return AsyncSessionLocal
