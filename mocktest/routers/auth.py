"""Session-cookie authentication routes (register / login / logout / current user)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from mocktest.auth_utils import hash_password, verify_password
from mocktest.deps import get_storage, require_login
from mocktest.errors import ValidationFailure
from mocktest.models import User
from mocktest.schemas import UserCredentials, UserRead
from mocktest.storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(
    request: Request,
    payload: UserCredentials,
    storage: Storage = Depends(get_storage),
):
    if storage.get_user_by_username(payload.username):
        raise ValidationFailure(
            [{"field": "username", "message": "Username already exists."}]
        )

    user = storage.create_user(
        User(username=payload.username, password_hash=hash_password(payload.password))
    )
    # Registering logs the new user in, replacing any previous session
    request.session.clear()
    request.session["user_id"] = user.id
    logger.info("Registered user %s (%s)", user.id, user.username)
    return user


@router.post("/login", response_model=UserRead)
def login(
    request: Request,
    payload: UserCredentials,
    storage: Storage = Depends(get_storage),
):
    user = storage.get_user_by_username(payload.username)
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("Failed login for username %r", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    request.session.clear()
    request.session["user_id"] = user.id
    logger.info("User %s logged in", user.id)
    return user


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(request: Request):
    request.session.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/user", response_model=UserRead)
def current_user_view(current_user: User = Depends(require_login)):
    return current_user
