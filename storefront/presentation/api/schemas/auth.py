from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ....domain.models import SignInMethod


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    method: SignInMethod
    email: EmailStr
    password: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=120)
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber", max_length=32)


class SignInRequest(BaseModel):
    method: SignInMethod
    email: EmailStr
    password: Optional[str] = None
