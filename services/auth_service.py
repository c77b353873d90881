import logging
import math
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status

from core import config
from models.user import PinDevice, User
from schemas.user import UserCreate

log = logging.getLogger(__name__)

# CryptContext with bcrypt configured to avoid 72-byte truncation
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=12
)


def _utcnow() -> datetime:
    return datetime.utcnow()


def _naive(moment: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes, Postgres aware ones
    if moment is not None and moment.tzinfo is not None:
        return moment.replace(tzinfo=None)
    return moment


class AuthService:
    """Service layer for authentication and authorization."""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify plain password against hashed password."""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a plain password."""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token."""
        to_encode = data.copy()
        expire = _utcnow() + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> dict:
        """Verify JWT token and return payload."""
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
        try:
            payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
            if payload.get("sub") is None:
                raise credentials_exception
            return payload
        except JWTError:
            raise credentials_exception

    @staticmethod
    def issue_session(user: User) -> dict:
        """Login payload shared by password and PIN login."""
        token = AuthService.create_access_token(data={"sub": user.email, "role": user.role})
        return {
            "user": {
                "id": user.id,
                "email": user.email,
                "name": user.full_name,
                "role": user.role,
                "permissions": list(user.permissions or []),
                "phone": user.phone,
            },
            "access_token": token,
        }

    @staticmethod
    def register_user(user_in: UserCreate, db: Session) -> User:
        """Register a new user."""
        existing = db.query(User).filter(User.email == user_in.email.lower()).first()  # type: ignore
        if existing:
            raise HTTPException(status_code=400, detail="User with this email already exists.")

        new_user = User(
            email=user_in.email.lower(),
            first_name=user_in.first_name.strip(),
            last_name=user_in.last_name.strip(),
            hashed_password=AuthService.get_password_hash(user_in.password),
            role=user_in.role.upper(),
            permissions=list(user_in.permissions),
            phone=user_in.phone,
        )

        db.add(new_user)
        db.commit()
        db.refresh(new_user)
        log.info("Registered user %s with role %s", new_user.email, new_user.role)
        return new_user

    @staticmethod
    def authenticate_user(email: Optional[str], password: Optional[str], db: Session) -> User:
        """Authenticate user by email and password."""
        if not email or not password:
            raise HTTPException(status_code=400, detail="Email and password are required")

        user = db.query(User).filter(User.email == email.strip().lower()).first()  # type: ignore
        if not user:
            raise HTTPException(status_code=401, detail="Invalid email address")

        if not user.is_active:
            raise HTTPException(status_code=401, detail="Account is deactivated. Please contact administrator.")

        if not AuthService.verify_password(password, str(user.hashed_password)):
            raise HTTPException(status_code=401, detail="Invalid password")
        return user

    @staticmethod
    def get_user_from_token(token: str, db: Session) -> User:
        """Get user from JWT token."""
        payload = AuthService.verify_token(token)
        email = str(payload.get("sub"))

        user = db.query(User).filter(User.email == email).first()  # type: ignore
        if user is None:
            raise HTTPException(status_code=401, detail="User not found")
        if not user.is_active:
            raise HTTPException(status_code=401, detail="Account is deactivated")
        return user

    @staticmethod
    def get_user(user_id: UUID, db: Session) -> User:
        user = db.query(User).filter(User.id == user_id).first()  # type: ignore
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    @staticmethod
    def change_password(user_id: UUID, current_password: str, new_password: str, db: Session) -> None:
        user = AuthService.get_user(user_id, db)
        if not AuthService.verify_password(current_password, str(user.hashed_password)):
            raise HTTPException(status_code=401, detail="Current password is incorrect")
        if current_password == new_password:
            raise HTTPException(status_code=400, detail="New password must differ from the current password")

        user.hashed_password = AuthService.get_password_hash(new_password)  # type: ignore[assignment]
        db.commit()
        log.info("Password changed for %s", user.email)

    # ==================== DEVICE PIN ====================

    @staticmethod
    def check_pin(user_id: UUID, device_id: str, db: Session) -> bool:
        device = db.query(PinDevice).filter(
            PinDevice.user_id == user_id,
            PinDevice.device_id == device_id
        ).first()
        return device is not None

    @staticmethod
    def setup_pin(
        user_id: UUID,
        device_id: str,
        pin: str,
        device_name: Optional[str],
        db: Session
    ) -> PinDevice:
        """Bind ``device_id`` to the user with a fresh PIN, replacing any previous binding."""
        user = AuthService.get_user(user_id, db)
        if not user.is_active:
            raise HTTPException(status_code=403, detail="Account is deactivated")

        device = db.query(PinDevice).filter(PinDevice.device_id == device_id).first()
        if device is None:
            device = PinDevice(device_id=device_id)
            db.add(device)

        device.user_id = user.id
        device.pin_hash = AuthService.get_password_hash(pin)
        device.device_name = (device_name or "").strip() or "Unknown Device"
        device.created_at = _utcnow()
        device.last_used = _utcnow()
        device.failed_attempts = 0
        device.locked_until = None
        device.last_failed_attempt = None

        db.commit()
        db.refresh(device)
        log.info("PIN registered for %s on device %s", user.email, device_id)
        return device

    @staticmethod
    def remove_pin(user_id: UUID, device_id: str, db: Session) -> None:
        device = db.query(PinDevice).filter(
            PinDevice.user_id == user_id,
            PinDevice.device_id == device_id
        ).first()
        if device is None:
            raise HTTPException(status_code=404, detail="No PIN registered for this device")
        db.delete(device)
        db.commit()

    @staticmethod
    def login_with_pin(device_id: str, pin: str, db: Session) -> User:
        """PIN login with per-device brute force lockout."""
        device = db.query(PinDevice).filter(PinDevice.device_id == device_id).first()
        if device is None:
            raise HTTPException(status_code=401, detail="PIN not set up for this device. Please log in with your password.")

        now = _utcnow()
        locked_until = _naive(device.locked_until)
        if locked_until and locked_until > now:
            remaining = math.ceil((locked_until - now).total_seconds() / 60)
            raise HTTPException(
                status_code=429,
                detail={
                    "error": f"Too many failed attempts. Try again in {remaining} minute(s).",
                    "lockoutMinutes": remaining,
                },
            )

        if not AuthService.verify_password(pin, str(device.pin_hash)):
            AuthService._record_failed_pin(device, now, db)

        user = device.user
        if not user.is_active:
            raise HTTPException(status_code=401, detail="Account is deactivated. Please contact administrator.")

        device.failed_attempts = 0
        device.locked_until = None
        device.last_used = now
        db.commit()
        return user

    @staticmethod
    def _record_failed_pin(device: PinDevice, now: datetime, db: Session) -> None:
        attempts = int(device.failed_attempts or 0) + 1
        device.failed_attempts = attempts
        device.last_failed_attempt = now

        if attempts >= config.PIN_MAX_ATTEMPTS:
            device.failed_attempts = 0
            device.locked_until = now + timedelta(minutes=config.PIN_LOCKOUT_MINUTES)
            db.commit()
            log.warning("Device %s locked after %d failed PIN attempts", device.device_id, attempts)
            raise HTTPException(
                status_code=429,
                detail={
                    "error": f"Too many failed attempts. Try again in {config.PIN_LOCKOUT_MINUTES} minute(s).",
                    "lockoutMinutes": config.PIN_LOCKOUT_MINUTES,
                },
            )

        db.commit()
        raise HTTPException(
            status_code=401,
            detail={
                "error": "Invalid PIN",
                "attemptsRemaining": config.PIN_MAX_ATTEMPTS - attempts,
            },
        )
