from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from portfolio_consultant.core.auth import (
    SESSION_COOKIE_NAME,
    create_session_token,
    decode_session_token,
    hash_password,
    verify_password,
)
from portfolio_consultant.core.config import Settings, get_settings
from portfolio_consultant.db.session import get_db
from portfolio_consultant.models import User
from portfolio_consultant.schemas.auth import (
    AdminStatusRead,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserRead,
)
from portfolio_consultant.services.users import get_user_by_email, get_user_by_username

# ruff: noqa: B008  # FastAPI dependency injection pattern

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookie(
    response: Response,
    token: str,
    settings: Settings,
) -> None:
    secure = settings.environment.lower() == "prod"
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=settings.session_ttl_seconds,
        path="/",
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated.",
        )

    try:
        user_id, _payload = decode_session_token(settings, token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session.",
        ) from exc

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found for this session.",
        )
    if user.disabled:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled.",
        )
    return user


def get_current_user_optional(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """Return the current user or None for anonymous requests."""

    try:
        return get_current_user(request, db=db, settings=settings)
    except HTTPException:
        return None


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(
    payload: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserRead:
    """Register a free-tier member and start a session for them."""

    if get_user_by_username(db, payload.username) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username is already taken.",
        )
    if get_user_by_email(db, payload.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email is already registered.",
        )

    user = User(
        username=payload.username.strip(),
        email=payload.email.strip().lower(),
        name=payload.name.strip(),
        password_hash=hash_password(payload.password),
        tier="free",
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    _set_session_cookie(response, create_session_token(settings, user_id=user.id), settings)
    logger.info("User registered", extra={"extra": {"user_id": user.id}})
    return UserRead.model_validate(user)


@router.post("/login", response_model=UserRead)
def login(
    payload: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> UserRead:
    """Authenticate a user and issue a session cookie."""

    user = get_user_by_username(db, payload.username)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
        )
    if user.disabled:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled.",
        )

    token = create_session_token(settings, user_id=user.id)
    _set_session_cookie(response, token, settings)

    return UserRead.model_validate(user)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
def logout(response: Response) -> None:
    """Clear the current session cookie."""

    _clear_session_cookie(response)


@router.get("/me", response_model=UserRead)
def read_current_user(user: User = Depends(get_current_user)) -> UserRead:
    """Return the currently authenticated user."""

    return UserRead.model_validate(user)


@router.get("/is-admin", response_model=AdminStatusRead)
def read_admin_status(user: User | None = Depends(get_current_user_optional)) -> AdminStatusRead:
    return AdminStatusRead(is_admin=bool(user is not None and user.is_admin))


@router.patch("/profile", response_model=UserRead)
def update_profile(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserRead:
    """Update contact details for the current user."""

    if "phone" in payload.model_fields_set:
        user.phone = payload.phone.strip() if payload.phone else None
    db.add(user)
    db.commit()
    db.refresh(user)
    return UserRead.model_validate(user)


@router.post(
    "/change-password",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> None:
    """Change the password for the currently authenticated user."""

    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect.",
        )

    user.password_hash = hash_password(payload.new_password)
    db.add(user)
    db.commit()


__all__: list[str] = ["router", "get_current_user", "get_current_user_optional"]
