# internhub/models/notification.py
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


class NotificationType(str, Enum):
    USER_APPROVAL = "user_approval"
    INTERNSHIP_APPROVAL = "internship_approval"
    APPLICATION_STATUS = "application_status"
    NEW_APPLICATION = "new_application"


class Role(str, Enum):
    ADMIN = "admin"
    SOFTWARE_HOUSE = "software_house"
    UNIVERSITY = "university"
    STUDENT = "student"
    GUEST = "guest"


class Actor(BaseModel):
    """The authenticated identity a request acts on behalf of."""
    id: str
    role: Optional[str] = None


class Notification(BaseModel):
    id: str
    user_id: str
    # kept as a plain string: rows with a type outside the enum are simply never visible
    type: str
    title: str = ""
    message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    related_id: Optional[str] = None
    related_type: Optional[str] = None
    is_read: bool = False
    created_at: datetime

    @field_validator("metadata", mode="before")
    @classmethod
    def _decode_metadata(cls, v):
        # Table Storage keeps metadata as a JSON string
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            return json.loads(v)
        return v

    @property
    def status(self) -> Optional[str]:
        return self.metadata.get("status")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Notification":
        return cls.model_validate(row)

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump()
        row["status"] = self.status
        return row


class NotificationFilters(BaseModel):
    type: Optional[str] = None
    is_read: Optional[bool] = None
    limit: int = Field(default=100, ge=1, le=1000)


def new_created_at() -> datetime:
    return datetime.now(timezone.utc)
