"""Test-attempt recording and read-back routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from mocktest.deps import get_storage, require_login
from mocktest.models import User
from mocktest.schemas import AttemptCreate, AttemptRead
from mocktest.services.attempt_service import record_attempt
from mocktest.storage import Storage

router = APIRouter()


@router.post("", response_model=AttemptRead, status_code=status.HTTP_201_CREATED)
def create_attempt(
    payload: AttemptCreate,
    current_user: User = Depends(require_login),
    storage: Storage = Depends(get_storage),
):
    """Record a completed quiz session. The user comes from the session cookie."""
    return record_attempt(storage, current_user, payload)


@router.get("", response_model=List[AttemptRead])
def list_attempts(
    mock_test_id: Optional[int] = Query(None, alias="mockTestId"),
    current_user: User = Depends(require_login),
    storage: Storage = Depends(get_storage),
):
    """The caller's attempts, most recently recorded first."""
    return storage.list_attempts(current_user.id, mock_test_id=mock_test_id)
