"""Request and response bodies for the HTTP API."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, condecimal, conint, constr, field_validator

from .models.sweet import PLACEHOLDER_IMAGE

NonEmptyStr = constr(strip_whitespace=True, min_length=1)


class SweetCreate(BaseModel):
    """Fields of a new sweet; also the invariant check for any stored sweet."""

    name: NonEmptyStr
    description: NonEmptyStr
    # matches the NUMERIC(10, 2) price column
    price: condecimal(ge=0, max_digits=10, decimal_places=2, allow_inf_nan=False)
    quantity: conint(ge=0)
    category: NonEmptyStr
    image: Optional[str] = None

    @field_validator("image")
    @classmethod
    def default_image(cls, value: Optional[str]) -> str:
        if value is None or not value.strip():
            return PLACEHOLDER_IMAGE
        return value.strip()


class SweetUpdate(BaseModel):
    """Partial update; only the fields sent by the client are applied."""

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[int] = None
    category: Optional[str] = None
    image: Optional[str] = None


class SweetResponse(BaseModel):
    """Serialized sweet."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    price: float
    quantity: int
    category: str
    image: str
    created_at: datetime
    updated_at: datetime


class RestockRequest(BaseModel):
    """Optional restock amount; unusable values fall back to the default."""

    amount: Any = None


class InventoryResponse(BaseModel):
    message: str
    sweet: SweetResponse


class MessageResponse(BaseModel):
    message: str


class RegisterRequest(BaseModel):
    """Request body for registering a new account."""

    email: EmailStr
    password: constr(min_length=1)
    name: Optional[NonEmptyStr] = None
    role: Optional[Literal["user", "admin"]] = None


class LoginRequest(BaseModel):
    """Request body for login.

    The email is not format-checked so every failed login gets the same answer.
    """

    email: str
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    token: str
    token_type: str = Field("bearer")
    user: UserResponse
