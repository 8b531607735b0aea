from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class UserRead(BaseModel):
    id: int
    username: str
    email: str
    name: str
    tier: str
    is_admin: bool = False
    admin_roles: List[str] = Field(default_factory=list, validation_alias="admin_role_list")
    phone: Optional[str] = None
    disabled: bool = False
    subscription_status: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegisterRequest(BaseModel):
    username: constr(min_length=3, max_length=64)  # type: ignore[valid-type]
    email: constr(  # type: ignore[valid-type]
        min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
    )
    password: constr(min_length=6, max_length=128)  # type: ignore[valid-type]
    name: constr(min_length=1, max_length=128)  # type: ignore[valid-type]


class LoginRequest(BaseModel):
    username: constr(min_length=1, max_length=64)  # type: ignore[valid-type]
    password: constr(min_length=1, max_length=128)  # type: ignore[valid-type]


class ChangePasswordRequest(BaseModel):
    current_password: constr(min_length=1, max_length=128)  # type: ignore[valid-type]
    new_password: constr(min_length=6, max_length=128)  # type: ignore[valid-type]


class ProfileUpdateRequest(BaseModel):
    phone: Optional[
        constr(pattern=r"^\+?[0-9\s()\-]{8,20}$")  # type: ignore[valid-type]
    ] = None


class AdminStatusRead(BaseModel):
    is_admin: bool


__all__ = [
    "UserRead",
    "RegisterRequest",
    "LoginRequest",
    "ChangePasswordRequest",
    "ProfileUpdateRequest",
    "AdminStatusRead",
]
