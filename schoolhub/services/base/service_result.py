"""
Service result patterns for standardized response handling.
"""

from typing import TypeVar, Generic, Optional, Any, Dict, List
from dataclasses import dataclass
from enum import Enum
from datetime import datetime, timezone

from schoolhub.core.exceptions import BaseAppException, ErrorCode


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServiceError:
    """Represents a service operation error with context."""

    code: ErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    field: Optional[str] = None
    retryable: bool = False
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)


TData = TypeVar("TData")


@dataclass
class ServiceResult(Generic[TData]):
    """
    Standardized service operation result with success/failure pattern.

    Attributes:
        is_success: Operation success indicator
        data: Result data (if successful)
        error: Error information (if failed)
        message: Human-readable status message
        metadata: Additional context information; non-fatal problems of a
            successful operation are listed under ``metadata["warnings"]``
    """

    is_success: bool
    data: Optional[TData] = None
    error: Optional[ServiceError] = None
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def success(
        cls,
        data: Optional[TData] = None,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """Create a successful result."""
        return cls(
            is_success=True,
            data=data,
            message=message,
            metadata=metadata or {},
        )

    @classmethod
    def failure(
        cls,
        error: ServiceError,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """Create a failed result."""
        return cls(
            is_success=False,
            error=error,
            message=error.message,
            metadata=metadata or {},
        )

    @classmethod
    def from_exception(
        cls,
        exception: Exception,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """
        Create a failed result from an exception.

        Application exceptions keep their code, message, details and
        retryable flag, with ``context`` merged into the details. Anything
        else is reported as an internal error.
        """
        if isinstance(exception, BaseAppException):
            details = dict(exception.details)
            details.update(context or {})
            return cls.failure(
                ServiceError(
                    code=exception.error_code,
                    message=exception.message,
                    severity=severity,
                    details=details,
                    retryable=exception.retryable,
                )
            )
        return cls.failure(
            ServiceError(
                code=ErrorCode.INTERNAL_ERROR,
                message=f"Failed to {operation}",
                severity=severity,
                details={
                    "exception_type": type(exception).__name__,
                    "error": str(exception),
                    **(context or {}),
                },
            )
        )

    @property
    def warnings(self) -> List[str]:
        """Non-fatal problems reported alongside a successful result."""
        return list((self.metadata or {}).get("warnings", []))

    def add_warning(self, warning: str) -> "ServiceResult[TData]":
        """Append a non-fatal warning."""
        if self.metadata is None:
            self.metadata = {}
        self.metadata.setdefault("warnings", []).append(warning)
        return self

    def add_metadata(self, key: str, value: Any) -> "ServiceResult[TData]":
        """Add metadata to the result."""
        if self.metadata is None:
            self.metadata = {}
        self.metadata[key] = value
        return self

    def __bool__(self) -> bool:
        """Allow boolean evaluation of the result."""
        return self.is_success


__all__ = [
    "ErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]
