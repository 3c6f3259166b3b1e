"""
Notification schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from schoolhub.schemas.common.base import BaseSchema

__all__ = ["NotificationMessage", "OutboxItem"]


class NotificationMessage(BaseSchema):
    """Payload accepted by the notification sink's create operation."""

    title: str = Field(..., min_length=1)
    msg: str = Field(..., description="Message body")
    to: List[str] = Field(..., min_length=1, description="Recipient ids")
    sender: str = Field(..., min_length=1, description="Sender id")
    valid: str = Field(..., description="Expiry date (AD, YYYY-MM-DD)")
    date: str = Field(..., description="Issued at, YYYY-MM-DD HH:MM:SS")


class OutboxItem(BaseSchema):
    """A message that could not be delivered yet."""

    message: NotificationMessage
    attempts: int = Field(default=0, ge=0)
    last_error: Optional[str] = None
    queued_at: datetime
