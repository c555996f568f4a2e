"""
Bearer-token authentication

Tokens are HS256 JWTs carrying the user id in "sub" and the email in
"email". A user seen for the first time is provisioned from those claims.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hamexam.config import settings
from hamexam.database import get_db
from hamexam.models import User

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def create_token(user_id: str, email: str, ttl_minutes: int = 120) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _unauthorized(detail: str = "Invalid or expired token") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _provision(db: Session, user_id: uuid.UUID, email: str) -> User:
    user = User(id=user_id, email=email, ai_quota_limit=settings.DEFAULT_AI_QUOTA_LIMIT)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"User {email} provisioned concurrently")
        return db.query(User).filter(User.id == user_id).first()
    logger.info(f"Provisioned user {email}")
    return user


def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the bearer token to an active user, or 401"""
    if creds is None:
        raise _unauthorized("Authentication required")

    try:
        payload = jwt.decode(
            creds.credentials, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
        )
        user_id = uuid.UUID(str(payload["sub"]))
    except (jwt.PyJWTError, KeyError, ValueError):
        raise _unauthorized()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None and payload.get("email"):
        user = _provision(db, user_id, payload["email"])

    if user is None or not user.is_active:
        raise _unauthorized("Unknown or inactive user")

    return user


def is_admin(user: User) -> bool:
    admins = {email.lower() for email in settings.ADMIN_EMAILS}
    return (user.email or "").lower() in admins


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
