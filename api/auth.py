from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from api.dependencies import require_admin
from core.database import get_db
from core.security import get_current_user
from models.user import User
from services.auth_service import AuthService
from schemas.common import SuccessResponse
from schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    PinCheckResponse,
    PinDeviceRequest,
    PinLoginRequest,
    PinSetupRequest,
    UserCreate,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["authentication"])

PRIVILEGED_ROLES = {"ADMIN", "SUPERUSER"}


def _session_response(user: User) -> JSONResponse:
    payload = LoginResponse(**AuthService.issue_session(user))
    response = JSONResponse(content=payload.model_dump(mode="json", by_alias=True))
    response.set_cookie(
        key="access_token",
        value=payload.access_token,
        max_age=7*24*60*60,
        httponly=True,
        samesite="lax",
        secure=False  # Set to True when served over HTTPS
    )
    return response


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate with email and password."""
    user = AuthService.authenticate_user(payload.email, payload.password, db)
    return _session_response(user)


@router.post("/login-pin", response_model=LoginResponse)
def login_with_pin(payload: PinLoginRequest, db: Session = Depends(get_db)):
    """Quick login with the 4-digit PIN bound to this device."""
    user = AuthService.login_with_pin(payload.device_id, payload.pin, db)
    return _session_response(user)


@router.post("/check-pin", response_model=PinCheckResponse)
def check_pin(payload: PinDeviceRequest, db: Session = Depends(get_db)):
    return {"has_pin_setup": AuthService.check_pin(payload.user_id, payload.device_id, db)}


@router.post("/setup-pin", response_model=SuccessResponse)
def setup_pin(
    payload: PinSetupRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Register a PIN for the logged-in user on this device."""
    if str(current_user.id) != str(payload.user_id):
        raise HTTPException(status_code=403, detail="Cannot set up a PIN for another user")
    AuthService.setup_pin(payload.user_id, payload.device_id, payload.pin, payload.device_name, db)
    return {"message": "PIN set up successfully"}


@router.post("/remove-pin", response_model=SuccessResponse)
def remove_pin(
    payload: PinDeviceRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if str(current_user.id) != str(payload.user_id):
        raise HTTPException(status_code=403, detail="Cannot remove another user's PIN")
    AuthService.remove_pin(payload.user_id, payload.device_id, db)
    return {"message": "PIN removed successfully"}


@router.post("/change-password", response_model=SuccessResponse)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if str(current_user.id) != str(payload.user_id):
        raise HTTPException(status_code=403, detail="Cannot change another user's password")
    AuthService.change_password(payload.user_id, payload.current_password, payload.new_password, db)
    return {"message": "Password Changed Successfully"}


@router.post("/register", response_model=UserResponse)
def register_user(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Create an inspector account (administrators only)."""
    requested_role = str(user_in.role).strip().upper()
    if requested_role in PRIVILEGED_ROLES and str(current_user.role).upper() != "SUPERUSER":
        raise HTTPException(
            status_code=403,
            detail="Only SUPERUSER can create privileged accounts."
        )
    user_in.role = requested_role
    return AuthService.register_user(user_in, db)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user profile."""
    return current_user
