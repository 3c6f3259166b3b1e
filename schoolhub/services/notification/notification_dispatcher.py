"""
Notification dispatcher.

Delivery is a side effect of a committed state change: it is retried a
bounded number of times and, when it still fails, the message is kept in
an outbox for :meth:`NotificationDispatcher.flush_outbox`. Nothing here
raises into the caller.
"""

import threading
from datetime import timedelta
from typing import List, Optional

from schoolhub.config.settings import Settings
from schoolhub.core.exceptions import BaseAppException, ErrorCode
from schoolhub.repositories.notification_repository import NotificationSink
from schoolhub.schemas.notification import NotificationMessage, OutboxItem
from schoolhub.services.base.base_service import BaseService, Clock
from schoolhub.services.base.service_result import ErrorSeverity, ServiceError, ServiceResult
from schoolhub.utils.date_utils import format_timestamp, get_timezone


class NotificationDispatcher(BaseService):
    """
    Create notification documents with retry and an in-memory outbox.
    """

    def __init__(
        self,
        sink: NotificationSink,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize notification dispatcher.

        Args:
            sink: Notification sink the messages are created in
            settings: Application settings
            clock: Callable returning the current UTC datetime
            timeout: Per-attempt timeout (defaults to the store timeout)
        """
        super().__init__(settings, clock)
        self.sink = sink
        self.timeout = timeout if timeout is not None else self.settings.store.STORE_TIMEOUT_SECONDS
        self.max_attempts = self.settings.leave.NOTIFICATION_MAX_ATTEMPTS
        self._outbox: List[OutboxItem] = []
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Dispatching
    # -------------------------------------------------------------------------

    def build_message(
        self,
        recipient_id: str,
        sender_id: str,
        title: str,
        body: str,
    ) -> NotificationMessage:
        """Message valid until the next AD day (configurable), stamped in local time."""
        now = self._now()
        local_now = now.astimezone(get_timezone(self.settings.calendar.LOCAL_TIMEZONE))
        valid_until = now.date() + timedelta(days=self.settings.leave.NOTIFICATION_VALIDITY_DAYS)
        return NotificationMessage(
            title=title,
            msg=body,
            to=[str(recipient_id)],
            sender=str(sender_id),
            valid=valid_until.isoformat(),
            date=format_timestamp(local_now),
        )

    def dispatch(
        self,
        recipient_id: Optional[str],
        sender_id: Optional[str],
        title: str,
        body: str,
        timeout: Optional[float] = None,
    ) -> ServiceResult[NotificationMessage]:
        """
        Send one notification.

        A missing recipient or sender skips the message. Delivery failures
        queue it in the outbox. Both come back as failed results with
        WARNING severity; neither raises.

        Args:
            recipient_id: Recipient id
            sender_id: Sender id
            title: Notification title
            body: Notification text
            timeout: Per-attempt timeout in seconds

        Returns:
            ServiceResult containing the delivered message or the reason it was not
        """
        missing = [name for name, value in (("recipient", recipient_id), ("sender", sender_id)) if not value]
        if missing:
            self._logger.warning(
                f"Notification '{title}' skipped: missing {', '.join(missing)}",
                extra={"recipient_id": recipient_id, "sender_id": sender_id},
            )
            return ServiceResult.failure(
                ServiceError(
                    code=ErrorCode.VALIDATION_ERROR,
                    message=f"Notification skipped: missing {', '.join(missing)}",
                    severity=ErrorSeverity.WARNING,
                    details={"recipient_id": recipient_id, "sender_id": sender_id},
                )
            )

        message = self.build_message(recipient_id, sender_id, title, body)
        item = OutboxItem(message=message, queued_at=self._now())
        if self._deliver(item, timeout):
            return ServiceResult.success(message, message="Notification sent")

        with self._lock:
            self._outbox.append(item)
        self._logger.warning(
            f"Notification to {recipient_id} queued after {item.attempts} failed attempt(s)",
            extra={"recipient_id": recipient_id, "attempts": item.attempts, "error": item.last_error},
        )
        return ServiceResult.failure(
            ServiceError(
                code=ErrorCode.NOTIFICATION_FAILED,
                message=f"Notification could not be delivered: {item.last_error}",
                severity=ErrorSeverity.WARNING,
                details={"recipient_id": recipient_id, "attempts": item.attempts, "queued": True},
                retryable=True,
            )
        )

    def _deliver(self, item: OutboxItem, timeout: Optional[float]) -> bool:
        """Try up to max_attempts times; only retryable errors are retried."""
        effective_timeout = timeout if timeout is not None else self.timeout
        for _ in range(self.max_attempts):
            item.attempts += 1
            try:
                self.sink.create(item.message, timeout=effective_timeout)
            except BaseAppException as e:
                item.last_error = e.message
                self._logger.debug(
                    f"Notification attempt {item.attempts} failed: {e.message}",
                    extra={"retryable": e.retryable},
                )
                if not e.retryable:
                    return False
                continue
            self._logger.info(
                f"Notification '{item.message.title}' sent to {', '.join(item.message.to)}",
                extra={"recipient_ids": item.message.to, "attempts": item.attempts},
            )
            return True
        return False

    # -------------------------------------------------------------------------
    # Outbox
    # -------------------------------------------------------------------------

    @property
    def outbox(self) -> List[OutboxItem]:
        with self._lock:
            return list(self._outbox)

    def flush_outbox(self, timeout: Optional[float] = None) -> ServiceResult[int]:
        """
        Retry every queued message once more.

        Returns:
            ServiceResult containing the number of messages delivered
        """
        with self._lock:
            pending, self._outbox = self._outbox, []

        delivered = 0
        remaining = []
        for item in pending:
            if self._deliver(item, timeout):
                delivered += 1
            else:
                remaining.append(item)

        with self._lock:
            self._outbox = remaining + self._outbox

        self._logger.info(
            f"Outbox flush: {delivered} delivered, {len(remaining)} still queued",
            extra={"delivered": delivered, "remaining": len(remaining)},
        )
        return ServiceResult.success(
            delivered,
            message=f"{delivered}/{len(pending)} queued notification(s) delivered",
            metadata={"remaining": len(remaining)},
        )
