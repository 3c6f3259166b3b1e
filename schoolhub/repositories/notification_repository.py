"""
Notification sink: the create operation of the notifications collection.
"""

import threading
import uuid
from typing import List, Optional, Protocol

from schoolhub.repositories.http import RestClient, optional_json_body
from schoolhub.schemas.notification import NotificationMessage


class NotificationSink(Protocol):
    """Accepts notification documents; returns the created document id."""

    def create(self, message: NotificationMessage, timeout: Optional[float] = None) -> str:
        ...


class InMemoryNotificationSink:
    """Collects messages in memory."""

    def __init__(self):
        self.messages: List[NotificationMessage] = []
        self._lock = threading.Lock()

    def create(self, message: NotificationMessage, timeout: Optional[float] = None) -> str:
        with self._lock:
            self.messages.append(message.model_copy())
        return uuid.uuid4().hex


class RestNotificationSink:
    """Notification sink reached over the document store's REST API."""

    def __init__(self, client: RestClient, collection: str):
        self.client = client
        self.collection = collection

    def create(self, message: NotificationMessage, timeout: Optional[float] = None) -> str:
        """
        Create the notification document.

        Any 2xx response means the document was created; the id is read
        from the body when it has one and is empty otherwise.
        """
        response = self.client.request(
            "POST",
            f"/collections/{self.collection}/documents",
            operation="create_notification",
            timeout=timeout,
            json={"documentId": "unique()", "data": message.model_dump()},
        )
        body = optional_json_body(response)
        if isinstance(body, dict):
            return str(body.get("$id") or body.get("id") or "")
        return ""
