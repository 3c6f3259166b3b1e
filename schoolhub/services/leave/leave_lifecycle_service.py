"""
Leave lifecycle service.

Moves leave entries through their statuses:

    pending --validate--> validated --approve--> approved
    pending --reject----> rejected
    pending/validated --cancel--> cancelled

Validation and rejection are the parent's decisions, approval is made
elsewhere by an administrator, and only the applicant may cancel.

The store cannot address one leave record inside the student document,
so every transition rewrites the whole ``leave`` array. The write carries
the version that was read; on a version conflict the document is read
again and the transition re-checked before retrying.
"""

from typing import Callable, Dict, FrozenSet, List, Optional, Tuple, Union

from schoolhub.config.settings import Settings
from schoolhub.core.exceptions import (
    AuthorizationError,
    ConcurrencyConflictError,
    InvalidTransitionError,
    LeaveNotFoundError,
)
from schoolhub.core.logging import actor_id as actor_id_var, operation_id as operation_id_var
from schoolhub.schemas.common.enums import LeaveStatus, LeaveTransition
from schoolhub.schemas.leave import DateRangeLeave, LeaveEntry
from schoolhub.schemas.student import StudentAggregate
from schoolhub.repositories.student_repository import StudentRepository
from schoolhub.services.base.base_service import BaseService, Clock
from schoolhub.services.base.service_result import ServiceResult
from schoolhub.services.calendar.conversion_service import CalendarConversionService
from schoolhub.services.leave.leave_codec import DecodedCollection, LeaveRecordCodec, applied_at_key
from schoolhub.services.notification.notification_dispatcher import NotificationDispatcher


# transition -> (statuses it may start from, resulting status)
TRANSITIONS: Dict[LeaveTransition, Tuple[FrozenSet[LeaveStatus], LeaveStatus]] = {
    LeaveTransition.VALIDATE: (frozenset({LeaveStatus.PENDING}), LeaveStatus.VALIDATED),
    LeaveTransition.REJECT: (frozenset({LeaveStatus.PENDING}), LeaveStatus.REJECTED),
    LeaveTransition.APPROVE: (frozenset({LeaveStatus.VALIDATED}), LeaveStatus.APPROVED),
    LeaveTransition.CANCEL: (
        frozenset({LeaveStatus.PENDING, LeaveStatus.VALIDATED}),
        LeaveStatus.CANCELLED,
    ),
}

ACTIONABLE_STATUSES = frozenset({
    LeaveStatus.PENDING,
    LeaveStatus.VALIDATED,
    LeaveStatus.REJECTED,
    LeaveStatus.APPROVED,
})

StudentRef = Union[str, StudentAggregate]
Mutation = Callable[[LeaveEntry], Dict[str, object]]


def compose_decision_message(title: str, decision: str, reason: Optional[str] = None) -> Tuple[str, str]:
    """Notification title and body for a parent's decision."""
    body = f'Your leave application for "{title}" has been {decision} by your parent.'
    if decision == LeaveStatus.REJECTED.value:
        if reason:
            body += f" Reason: {reason}"
        else:
            body += " Please see details or contact them."
    return f"Leave Application {decision.capitalize()}", body


class LeaveLifecycleService(BaseService):
    """Validate, reject and cancel leave entries of a student."""

    def __init__(
        self,
        student_repository: StudentRepository,
        conversion: CalendarConversionService,
        dispatcher: NotificationDispatcher,
        codec: Optional[LeaveRecordCodec] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(settings, clock)
        self.student_repository = student_repository
        self.conversion = conversion
        self.dispatcher = dispatcher
        self.codec = codec or LeaveRecordCodec()
        self.timeout = timeout if timeout is not None else self.settings.store.STORE_TIMEOUT_SECONDS
        self.max_conflict_retries = self.settings.leave.LIFECYCLE_MAX_CONFLICT_RETRIES

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def list_actionable(
        self,
        student: StudentAggregate,
        search: Optional[str] = None,
    ) -> List[LeaveEntry]:
        """
        Entries a reviewer can see, newest application first.

        Cancelled entries are left out. ``search`` keeps only entries whose
        title or reason contains it, ignoring case.
        """
        decoded = self.codec.decode_collection(student.leave)
        self._report_dropped(student, decoded)
        entries = [e for e in decoded.entries if e.status in ACTIONABLE_STATUSES]
        if search and search.strip():
            needle = search.strip().lower()
            entries = [e for e in entries if needle in e.title.lower() or needle in e.reason.lower()]
        return sorted(entries, key=applied_at_key, reverse=True)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def validate(
        self,
        student: StudentRef,
        leave_id: str,
        actor_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ServiceResult[StudentAggregate]:
        """
        Mark a pending entry as validated and notify the applicant.

        Args:
            student: Student aggregate, or its document id
            leave_id: Entry to validate
            actor_id: Parent performing the action; checked when given
            timeout: Store timeout in seconds for this call

        Returns:
            ServiceResult containing the updated aggregate
        """
        def mutate(entry: LeaveEntry) -> Dict[str, object]:
            return {"validated_at": self._now()}

        return self._run(
            LeaveTransition.VALIDATE, student, leave_id, mutate,
            actor_id=actor_id, timeout=timeout,
        )

    def reject(
        self,
        student: StudentRef,
        leave_id: str,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ServiceResult[StudentAggregate]:
        """
        Mark a pending entry as rejected and notify the applicant.

        A blank reason clears any rejection reason already on the entry.
        """
        cleaned = reason.strip() if reason else None

        def mutate(entry: LeaveEntry) -> Dict[str, object]:
            return {
                "rejected_at": self._now(),
                "rejection_reason": cleaned or None,
            }

        return self._run(
            LeaveTransition.REJECT, student, leave_id, mutate,
            actor_id=actor_id, timeout=timeout, reason=cleaned or None,
        )

    def cancel(
        self,
        student: StudentRef,
        leave_id: str,
        actor_id: str,
        timeout: Optional[float] = None,
    ) -> ServiceResult[StudentAggregate]:
        """Withdraw a pending or validated entry; only the applicant may do this."""
        def mutate(entry: LeaveEntry) -> Dict[str, object]:
            return {"cancelled_at": self._now()}

        return self._run(
            LeaveTransition.CANCEL, student, leave_id, mutate,
            actor_id=actor_id, timeout=timeout,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _run(
        self,
        transition: LeaveTransition,
        student: StudentRef,
        leave_id: str,
        mutate: Mutation,
        actor_id: Optional[str] = None,
        timeout: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> ServiceResult[StudentAggregate]:
        operation_token = operation_id_var.set(f"{transition.value}:{leave_id}")
        actor_token = actor_id_var.set(actor_id)
        try:
            return self._execute(transition, student, leave_id, mutate, actor_id, timeout, reason)
        finally:
            actor_id_var.reset(actor_token)
            operation_id_var.reset(operation_token)

    def _execute(
        self,
        transition: LeaveTransition,
        student: StudentRef,
        leave_id: str,
        mutate: Mutation,
        actor_id: Optional[str],
        timeout: Optional[float],
        reason: Optional[str],
    ) -> ServiceResult[StudentAggregate]:
        context = {"leave_id": leave_id, "transition": transition.value}
        try:
            updated, entry, decoded, retries = self._apply(
                transition, student, leave_id, mutate, actor_id, timeout
            )
        except Exception as e:
            return self._handle_exception(
                e, f"{transition.value} leave", leave_id, additional_context=context
            )

        self._log_operation(
            f"leave {transition.value}",
            leave_id,
            extra={
                "document_id": updated.document_id,
                "status": entry.status.value,
                "version": updated.version,
                "conflict_retries": retries,
            },
        )

        result = ServiceResult.success(
            updated,
            message=f"Leave {entry.status.value}",
            metadata={
                **context,
                "entry": entry,
                "dropped_records": decoded.dropped_count,
                "conflict_retries": retries,
                "warnings": [],
            },
        )
        if decoded.dropped_count:
            result.add_warning(
                f"{decoded.dropped_count} leave record(s) could not be read and were kept unchanged"
            )

        if transition in (LeaveTransition.VALIDATE, LeaveTransition.REJECT):
            self._notify(result, updated, entry, reason, timeout)
        return result

    def _notify(
        self,
        result: ServiceResult[StudentAggregate],
        updated: StudentAggregate,
        entry: LeaveEntry,
        reason: Optional[str],
        timeout: Optional[float],
    ) -> None:
        """Tell the applicant about the decision; failures only add a warning."""
        title, body = compose_decision_message(entry.title, entry.status.value, reason)
        try:
            sent = self.dispatcher.dispatch(
                updated.student_id, updated.parent_id, title, body, timeout=timeout
            )
        except Exception as e:
            # The transition is already stored.
            self._logger.warning(
                f"Notification for leave {entry.leave_id} failed: {e}",
                exc_info=True,
                extra={"leave_id": entry.leave_id, "document_id": updated.document_id},
            )
            result.add_metadata("notification_sent", False)
            result.add_warning(f"Notification was not sent: {getattr(e, 'message', e)}")
            return
        result.add_metadata("notification_sent", sent.is_success)
        if not sent.is_success:
            result.add_warning(sent.message or "Notification was not sent")

    def _apply(
        self,
        transition: LeaveTransition,
        student: StudentRef,
        leave_id: str,
        mutate: Mutation,
        actor_id: Optional[str],
        timeout: Optional[float],
    ) -> Tuple[StudentAggregate, LeaveEntry, DecodedCollection, int]:
        """Read-modify-write loop; returns (aggregate, new entry, decoded, retries)."""
        effective_timeout = timeout if timeout is not None else self.timeout
        if isinstance(student, StudentAggregate):
            aggregate = student
        else:
            aggregate = self.student_repository.get_by_id(student, timeout=effective_timeout)

        retries = 0
        while True:
            self._authorize(transition, aggregate, leave_id, actor_id)
            decoded = self.codec.decode_collection(aggregate.leave)
            self._report_dropped(aggregate, decoded)
            current = self._find(decoded, leave_id, transition)

            allowed, target = TRANSITIONS[transition]
            if current.status not in allowed:
                raise InvalidTransitionError(leave_id, current.status.value, transition.value)

            changes = {"status": target, **mutate(current)}
            changes.update(self._ad_stamp(current))
            changed = current.model_copy(update=changes)
            leave = self.codec.rewrite(aggregate.leave, changed)

            try:
                updated = self.student_repository.update(
                    aggregate.document_id,
                    {"leave": leave},
                    expected_version=aggregate.version,
                    timeout=effective_timeout,
                )
            except ConcurrencyConflictError:
                if retries >= self.max_conflict_retries:
                    raise
                retries += 1
                self._logger.warning(
                    f"Version conflict on student {aggregate.document_id}; retrying {transition.value} ({retries}/{self.max_conflict_retries})",
                    extra={"leave_id": leave_id, "document_id": aggregate.document_id},
                )
                aggregate = self.student_repository.get_by_id(
                    aggregate.document_id, timeout=effective_timeout
                )
                continue
            return updated, changed, decoded, retries

    def _authorize(
        self,
        transition: LeaveTransition,
        aggregate: StudentAggregate,
        leave_id: str,
        actor_id: Optional[str],
    ) -> None:
        if transition == LeaveTransition.CANCEL:
            if not actor_id or actor_id != aggregate.student_id:
                raise AuthorizationError(
                    "Only the applicant may cancel a leave application",
                    leave_id, transition.value, actor_id,
                )
        elif actor_id is not None and aggregate.parent_id and actor_id != aggregate.parent_id:
            raise AuthorizationError(
                "Only the student's parent may review this leave application",
                leave_id, transition.value, actor_id,
            )

    @staticmethod
    def _find(decoded: DecodedCollection, leave_id: str, transition: LeaveTransition) -> LeaveEntry:
        for entry in decoded.entries:
            if entry.leave_id == leave_id:
                return entry
        raise LeaveNotFoundError(leave_id, transition.value)

    def _ad_stamp(self, entry: LeaveEntry) -> Dict[str, object]:
        """AD equivalents of the entry's BS dates, where convertible."""
        if isinstance(entry, DateRangeLeave):
            return {
                "ad_from_date": self.conversion.try_bs_to_ad_string(entry.from_date),
                "ad_to_date": self.conversion.try_bs_to_ad_string(entry.to_date),
            }
        return {"ad_date": self.conversion.try_bs_to_ad_string(entry.date)}

    def _report_dropped(self, student: StudentAggregate, decoded: DecodedCollection) -> None:
        if decoded.dropped_count:
            self._logger.warning(
                f"{decoded.dropped_count} unreadable leave record(s) on student {student.document_id}",
                extra={"document_id": student.document_id, "dropped": decoded.dropped_count},
            )
