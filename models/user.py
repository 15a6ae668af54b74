from enum import Enum
from typing import Optional

from pydantic import BaseModel, ValidationError

from core.config import MANAGER_ROLES
from core.errors import MalformedDocument


class Role(str, Enum):
    STAFF = "staff"
    MANAGER = "manager"
    ADMIN = "admin"

    @classmethod
    def from_stored(cls, value) -> "Role":
        """Case-insensitive; anything that is not manager or admin is staff."""
        try:
            return cls(str(value or cls.STAFF.value).strip().lower())
        except ValueError:
            return cls.STAFF


# Profile stored at users/{uid}; only ever read by the attendance engine
class UserProfile(BaseModel):
    uid: str
    name: str = ""
    email: str = ""
    branch_id: Optional[str] = None
    branch_name: Optional[str] = None
    role: Role = Role.STAFF
    timezone: Optional[str] = None

    @property
    def is_manager(self) -> bool:
        return self.role.value in MANAGER_ROLES

    @classmethod
    def from_document(cls, uid: str, data: dict) -> "UserProfile":
        try:
            return cls(
                uid=uid,
                name=data.get("name") or data.get("displayName") or "",
                email=data.get("email") or "",
                # An empty string is as good as unassigned
                branch_id=data.get("branchId") or None,
                branch_name=data.get("branchName"),
                role=Role.from_stored(data.get("role")),
                timezone=data.get("timezone") or None,
            )
        except ValidationError as e:
            raise MalformedDocument(f"User profile '{uid}' has invalid data. Contact admin.") from e
