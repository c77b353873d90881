from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.dependencies import require_admin
from core.database import get_db
from models.user import User
from schemas.user import UserResponse

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])


@router.get("", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)):
    """List all user accounts."""
    return db.query(User).order_by(User.email).all()
