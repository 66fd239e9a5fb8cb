"""Header-based caller identity.

``X-User-Id`` carries a raw user id with no signature, so any client can
claim any identity. It is a placeholder boundary for the front-end, not a
security mechanism.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from servicefinder.models import UserPublic
from servicefinder.services.user_store import user_store

USER_ID_HEADER = "X-User-Id"


def resolve_request_user(x_user_id: Optional[str]) -> Optional[UserPublic]:
    if not x_user_id:
        return None
    try:
        user_id = int(x_user_id.strip())
    except ValueError:
        return None
    return user_store.get_user(user_id)


def require_authenticated_user(x_user_id: Optional[str] = Header(default=None)) -> UserPublic:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = resolve_request_user(x_user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user")
    return user


def require_provider(user: UserPublic = Depends(require_authenticated_user)) -> UserPublic:
    if user.role != "ServiceProvider":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only service providers can manage listings",
        )
    return user
