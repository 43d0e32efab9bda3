"""Data models for the team roster and the contact form."""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass
class TeamMember:
    """Row of the `team_members` collection."""
    id: str
    name: str
    role: str = ""
    specialization: str = ""
    description: str = ""
    image_url: Optional[str] = None
    github_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    email: Optional[str] = None
    display_order: int = 0
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TeamMember":
        known = {k: row[k] for k in cls.__dataclass_fields__ if k in row}
        known["id"] = str(known.get("id", ""))
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ContactMessage:
    """Row of the `contact_messages` collection."""
    name: str
    email: str
    message: str
    status: str = "unread"  # unread, read, replied
    user_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "message": self.message,
            "status": self.status,
            "user_id": self.user_id,
        }
