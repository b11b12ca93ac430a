# internhub/models/queue_message.py
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class QueueMessage(BaseModel):
    """Notification request published by the marketplace backend."""
    type: str
    userId: str
    data: Dict[str, Any] = Field(default_factory=dict)
    title: Optional[str] = None
    message: Optional[str] = None
    relatedId: Optional[str] = None
    relatedType: Optional[str] = None
