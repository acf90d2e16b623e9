"""Course catalog routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from mocktest.deps import get_storage, require_login
from mocktest.models import User
from mocktest.schemas import CourseCreate, CourseRead
from mocktest.services import catalog_service
from mocktest.storage import Storage

router = APIRouter()


@router.get("", response_model=List[CourseRead])
def list_courses(
    search: Optional[str] = Query(None, max_length=100),
    featured: Optional[bool] = Query(None),
    storage: Storage = Depends(get_storage),
):
    """List courses, optionally filtered by a title/description search."""
    search_clean = (search or "").strip() or None
    return storage.list_courses(search=search_clean, featured=featured)


@router.get("/{course_id}", response_model=CourseRead)
def get_course(course_id: int, storage: Storage = Depends(get_storage)):
    course = storage.get_course(course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


@router.post("", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(require_login),
):
    return catalog_service.create_course(storage, current_user, payload)
