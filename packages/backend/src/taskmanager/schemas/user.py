"""Pydantic schemas for registration and login.

Field-level rules (email shape, password strength) are checked by the
validator table in UserService, so these only describe the shape.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    token: str


class UserRead(BaseModel):
    id: int
    email: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
