from typing import List, Optional
from fastapi import Depends, HTTPException, status
from models.user import User
from core.security import get_current_user


class RoleChecker:
    """Lets a user through on role, or on an explicit grant in ``permissions``."""

    def __init__(self, allowed_roles: List[str], permission: Optional[str] = None):
        self.allowed_roles = allowed_roles
        self.permission = permission

    def __call__(self, user: User = Depends(get_current_user)) -> User:
        user_role = str(user.role).upper()
        if user_role in self.allowed_roles:
            return user

        granted = getattr(user, "permissions", None) or []
        if self.permission and self.permission in granted:
            return user

        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Operation not permitted. Required roles: {self.allowed_roles}"
        )


require_admin = RoleChecker(["ADMIN", "SUPERUSER"])
require_inspector = RoleChecker(["INSPECTOR", "SUPERVISOR", "ADMIN", "SUPERUSER"], permission="inspection")
