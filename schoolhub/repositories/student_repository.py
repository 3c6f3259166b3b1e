"""
Student aggregate store.

The store offers only whole-document get and update. Updates carry the
version that was read; the store rejects the write when the document
has moved on, which surfaces concurrent edits instead of silently
keeping the last writer's copy.
"""

import threading
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from schoolhub.core.exceptions import (
    ConcurrencyConflictError,
    ParseError,
    StudentNotFoundError,
)
from schoolhub.core.logging import get_logger
from schoolhub.repositories.http import RestClient, json_body, optional_json_body
from schoolhub.schemas.student import StudentAggregate

logger = get_logger(__name__)

# Fields a caller may change through update()
UPDATABLE_FIELDS = frozenset({"leave", "absent"})


class StudentRepository(Protocol):
    """Read and write student aggregates by document id."""

    def get_by_id(self, document_id: str, timeout: Optional[float] = None) -> StudentAggregate:
        ...

    def update(
        self,
        document_id: str,
        changes: Dict[str, Any],
        expected_version: int,
        timeout: Optional[float] = None,
    ) -> StudentAggregate:
        ...


def _check_fields(changes: Dict[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {sorted(unknown)}")


class InMemoryStudentRepository:
    """Process-local store used by tests and local runs."""

    def __init__(self):
        self._documents: Dict[str, StudentAggregate] = {}
        self._lock = threading.Lock()

    def add(self, student: StudentAggregate) -> StudentAggregate:
        with self._lock:
            self._documents[student.document_id] = student.model_copy(deep=True)
        return student

    def get_by_id(self, document_id: str, timeout: Optional[float] = None) -> StudentAggregate:
        with self._lock:
            student = self._documents.get(document_id)
            if student is None:
                raise StudentNotFoundError(document_id)
            return student.model_copy(deep=True)

    def update(
        self,
        document_id: str,
        changes: Dict[str, Any],
        expected_version: int,
        timeout: Optional[float] = None,
    ) -> StudentAggregate:
        _check_fields(changes)
        with self._lock:
            current = self._documents.get(document_id)
            if current is None:
                raise StudentNotFoundError(document_id)
            if current.version != expected_version:
                raise ConcurrencyConflictError(document_id, expected_version, current.version)
            updated = current.model_copy(
                update={**changes, "version": current.version + 1},
                deep=True,
            )
            self._documents[document_id] = updated
            logger.debug(
                f"Student {document_id} updated to version {updated.version}",
                extra={"document_id": document_id, "fields": sorted(changes)},
            )
            return updated.model_copy(deep=True)


class RestStudentRepository:
    """Student store reached over the document store's REST API."""

    def __init__(self, client: RestClient, collection: str):
        self.client = client
        self.collection = collection

    def _path(self, document_id: str) -> str:
        return f"/collections/{self.collection}/documents/{document_id}"

    def get_by_id(self, document_id: str, timeout: Optional[float] = None) -> StudentAggregate:
        response = self.client.request(
            "GET",
            self._path(document_id),
            operation="get_student",
            timeout=timeout,
            on_status={404: lambda r: StudentNotFoundError(document_id)},
        )
        return self._parse(json_body(response), document_id)

    def update(
        self,
        document_id: str,
        changes: Dict[str, Any],
        expected_version: int,
        timeout: Optional[float] = None,
    ) -> StudentAggregate:
        _check_fields(changes)

        def conflict(response: httpx.Response) -> ConcurrencyConflictError:
            actual = None
            try:
                actual = response.json().get("version")
            except (ValueError, AttributeError):
                actual = None
            return ConcurrencyConflictError(document_id, expected_version, actual)

        response = self.client.request(
            "PATCH",
            self._path(document_id),
            operation="update_student",
            timeout=timeout,
            json={"data": changes, "expectedVersion": expected_version},
            on_status={
                404: lambda r: StudentNotFoundError(document_id),
                409: conflict,
                412: conflict,
            },
        )
        payload = optional_json_body(response)
        if payload is None:
            # The write is committed; read back the stored document.
            logger.warning(
                f"Update of student {document_id} returned no document; re-reading",
                extra={"document_id": document_id, "status_code": response.status_code},
            )
            return self.get_by_id(document_id, timeout=timeout)
        return self._parse(payload, document_id)

    @staticmethod
    def _parse(payload: Any, document_id: str) -> StudentAggregate:
        try:
            return StudentAggregate.model_validate(payload)
        except PydanticValidationError as e:
            raise ParseError(
                f"Student document {document_id} has an unexpected shape",
                errors=e.errors(include_url=False, include_context=False),
            ) from e
