from pydantic import AfterValidator, EmailStr, Field
from typing import Annotated, Optional
from uuid import UUID

from schemas.common import CamelModel, SuccessResponse


def _validate_pin(value: str) -> str:
    value = (value or "").strip()
    if len(value) != 4 or not value.isdigit():
        raise ValueError("PIN must be exactly 4 digits")
    return value


PinCode = Annotated[str, AfterValidator(_validate_pin)]


class UserCreate(CamelModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=80)
    last_name: str = Field(..., min_length=1, max_length=80)
    password: str = Field(..., min_length=8)
    role: str = "INSPECTOR"
    permissions: list[str] = []
    phone: Optional[str] = None


class UserResponse(CamelModel):
    id: UUID
    email: EmailStr
    first_name: str
    last_name: str
    role: str
    permissions: list[str] = []
    is_active: bool


class SessionUser(CamelModel):
    """User payload handed to the app after a successful login."""
    id: UUID
    email: str
    name: str
    role: str
    permissions: list[str] = []
    phone: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(SuccessResponse):
    user: SessionUser
    access_token: str
    token_type: str = "bearer"


class PinLoginRequest(CamelModel):
    device_id: str = Field(..., min_length=1)
    pin: PinCode


class PinSetupRequest(CamelModel):
    user_id: UUID
    device_id: str = Field(..., min_length=1)
    pin: PinCode
    device_name: Optional[str] = None


class PinDeviceRequest(CamelModel):
    user_id: UUID
    device_id: str = Field(..., min_length=1)


class PinCheckResponse(SuccessResponse):
    has_pin_setup: bool


class ChangePasswordRequest(CamelModel):
    user_id: UUID
    current_password: str
    new_password: str = Field(..., min_length=8)
