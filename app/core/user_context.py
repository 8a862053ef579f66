"""
DocuMind - User Context
The per-request view of the authenticated user.

Design Principles:
- User ID is stable (issued by the external identity provider)
- Role decides admin access, user type decides team visibility
- Department and superior drive summary routing and the team task view
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class UserRole(str, Enum):
    """Access level."""
    USER = "user"
    ADMIN = "admin"


class UserType(str, Enum):
    """Position in the org chart."""
    USER = "user"
    DEPARTMENT_HEAD = "department_head"


@dataclass
class UserContext:
    """Authenticated user, detached from the database session."""
    user_id: str
    role: UserRole = UserRole.USER
    user_type: UserType = UserType.USER
    department_id: Optional[int] = None
    superior_id: Optional[str] = None
    display_name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_department_head(self) -> bool:
        return self.user_type == UserType.DEPARTMENT_HEAD

    @classmethod
    def from_user(cls, user) -> "UserContext":
        return cls(
            user_id=user.id,
            role=UserRole(user.role),
            user_type=UserType(user.user_type),
            department_id=user.department_id,
            superior_id=user.superior_id,
            display_name=user.display_name,
        )
