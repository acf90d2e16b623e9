"""Shared FastAPI dependencies for storage access and authentication."""

from typing import Iterator, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlmodel import Session

from mocktest.database import get_session
from mocktest.models import User
from mocktest.storage import SqlStorage, Storage


def get_storage(session: Session = Depends(get_session)) -> Iterator[Storage]:
    """Yield the storage backend for this request (SQL by default)."""
    yield SqlStorage(session)


def get_current_user(
    request: Request, storage: Storage = Depends(get_storage)
) -> Optional[User]:
    """Return the currently logged-in user based on the session cookie, if any."""
    user_id = request.session.get("user_id")
    if not user_id:
        return None

    user = storage.get_user(user_id)
    if not user:
        # Clear any stale session
        request.session.clear()
        return None
    return user


def require_login(current_user: Optional[User] = Depends(get_current_user)) -> User:
    """Ensure that a user is logged in; otherwise answer 401."""
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )
    return current_user
