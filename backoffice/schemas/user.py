"""
Back Office — User schemas
"""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from backoffice.models.user import Role


class Address(BaseModel):
    street: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str = "France"


class UserBase(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=32)
    address: Address | None = None


class RegisterRequest(UserBase):
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")


class UserCreateRequest(RegisterRequest):
    roles: list[Role] = Field(default_factory=lambda: [Role.EMPLOYEE], min_length=1)


class UserUpdateRequest(BaseModel):
    email: EmailStr | None = None
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, max_length=32)
    address: Address | None = None
    roles: list[Role] | None = Field(None, min_length=1)


class UserStatusUpdate(BaseModel):
    is_active: bool


class PasswordSetRequest(BaseModel):
    token: str
    password: str = Field(..., min_length=8, max_length=128)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


class UserResponse(BaseModel):
    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    phone: str | None
    street: str | None
    city: str | None
    postal_code: str | None
    country: str
    roles: list[str]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
