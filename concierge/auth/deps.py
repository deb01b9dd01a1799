"""Authentication dependencies for FastAPI routes."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from concierge.db.session import get_db
from concierge.models.user import User
from concierge.auth import jwt

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the authenticated user from the Authorization bearer token."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
        )

    payload = jwt.get_current_user_from_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    subject = str(payload["sub"])
    qry = db.query(User)
    if "@" in subject:
        user = qry.filter(User.email == subject).first()
    else:
        user = qry.filter(User.id == subject).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


def require_provider(user: User = Depends(get_current_user)) -> User:
    if (getattr(user, "role", None) or "").lower() != "provider":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Provider access required",
        )
    return user


def get_rate_limited_user(request: Request, user: User = Depends(get_current_user)) -> User:
    """Resolve the caller and record it for the per-user rate-limit key.

    Dependencies run before the route's ``@limiter.limit`` check, so the key
    function sees ``request.state.user_id``.
    """
    request.state.user_id = str(user.id)
    return user
