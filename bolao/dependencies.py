from typing import Optional
from fastapi import Request, Depends, HTTPException, status
from sqlmodel import Session

from .config import USER_ID_HEADER
from .database import get_session
from .models.user import User


async def get_current_user(
    request: Request,
    db: Session = Depends(get_session)
) -> Optional[User]:
    """Get the calling user from the identity header set by the gateway."""
    raw_user_id = request.headers.get(USER_ID_HEADER)
    if not raw_user_id or not raw_user_id.isdigit():
        return None

    user = db.get(User, int(raw_user_id))
    if not user or not user.active:
        return None

    return user


async def require_user(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """Require a known user."""
    if not current_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return current_user


async def require_admin(
    current_user: User = Depends(require_user)
) -> User:
    """Require an admin user."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
