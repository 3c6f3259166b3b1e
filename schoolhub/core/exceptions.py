"""
Custom Exceptions for the School Management Core

This module defines the exception classes raised by the calendar, leave
and attendance layers. Every exception carries a machine-readable error
code and a details dictionary so callers can render useful context.
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    OPERATION_FAILED = "OPERATION_FAILED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FORMAT = "INVALID_FORMAT"
    OUT_OF_RANGE = "OUT_OF_RANGE"

    # Resource errors
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    LEAVE_NOT_FOUND = "LEAVE_NOT_FOUND"

    # Workflow errors
    INVALID_TRANSITION = "INVALID_TRANSITION"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"

    # Persistence errors
    PARSE_ERROR = "PARSE_ERROR"

    # External service errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"

    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__,
                "retryable": self.retryable,
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# Validation Exceptions
# ========================================

class ValidationError(BaseAppException):
    """Exception raised when data validation fails"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 422
    ):
        merged = dict(details or {})
        if field_errors:
            merged["field_errors"] = field_errors
        super().__init__(message, error_code, merged, status_code)


class InvalidFormatError(ValidationError):
    """Exception raised when a date string or calendar date is malformed"""

    def __init__(
        self,
        value: Any = None,
        message: Optional[str] = None,
        calendar: Optional[str] = None,
    ):
        if not message:
            message = f"Invalid date format: {value!r}"
        super().__init__(
            message,
            error_code=ErrorCode.INVALID_FORMAT,
            details={"value": value, "calendar": calendar},
        )


class OutOfRangeError(BaseAppException):
    """Exception raised when a date falls outside the calendar coverage"""

    def __init__(
        self,
        value: Any = None,
        message: Optional[str] = None,
        calendar: Optional[str] = None,
    ):
        if not message:
            message = f"Date outside calendar coverage: {value!r}"
        super().__init__(
            message,
            ErrorCode.OUT_OF_RANGE,
            {"value": value, "calendar": calendar},
            422,
        )


# ========================================
# Resource Not Found Exceptions
# ========================================

class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details, 404)


class StudentNotFoundError(ResourceNotFoundError):
    """Exception raised when a student aggregate is not found"""

    def __init__(
        self,
        student_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = "Student not found"
            if student_id:
                message += f" (ID: {student_id})"
        super().__init__("Student", student_id, message)
        self.error_code = ErrorCode.STUDENT_NOT_FOUND


class LeaveNotFoundError(ResourceNotFoundError):
    """Exception raised when a leave entry is not found in the collection"""

    def __init__(
        self,
        leave_id: Optional[str] = None,
        transition: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = "Leave entry not found"
            if leave_id:
                message += f" (ID: {leave_id})"
        super().__init__("Leave", leave_id, message)
        self.error_code = ErrorCode.LEAVE_NOT_FOUND
        self.details.update({"leave_id": leave_id, "transition": transition})


# ========================================
# Workflow Exceptions
# ========================================

class InvalidTransitionError(BaseAppException):
    """Exception raised when a leave status change violates the state machine"""

    def __init__(
        self,
        leave_id: Optional[str] = None,
        current_status: Optional[str] = None,
        transition: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"Cannot {transition or 'change'} leave in status '{current_status}'"
        details = {
            "leave_id": leave_id,
            "current_status": current_status,
            "transition": transition,
        }
        super().__init__(message, ErrorCode.INVALID_TRANSITION, details, 409)


class AuthorizationError(BaseAppException):
    """Exception raised when an actor may not perform a transition"""

    def __init__(
        self,
        message: str = "Access denied",
        leave_id: Optional[str] = None,
        transition: Optional[str] = None,
        actor_id: Optional[str] = None,
    ):
        details = {"leave_id": leave_id, "transition": transition, "actor_id": actor_id}
        super().__init__(message, ErrorCode.AUTHORIZATION_FAILED, details, 403)


# ========================================
# Persistence Exceptions
# ========================================

class ParseError(BaseAppException):
    """Exception raised when a persisted leave record cannot be decoded"""

    def __init__(
        self,
        message: str = "Corrupt leave record",
        raw: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        details = {"raw": raw, "errors": errors or []}
        super().__init__(message, ErrorCode.PARSE_ERROR, details, 500)


class TransientIOError(BaseAppException):
    """Exception raised for retryable store or network failures"""

    retryable = True

    def __init__(
        self,
        message: str = "Transient I/O failure",
        operation: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = {"operation": operation}
        merged.update(details or {})
        super().__init__(message, error_code, merged, 503)


class TimeoutIOError(TransientIOError):
    """Exception raised when a store or dataset call exceeds its timeout"""

    def __init__(
        self,
        operation: Optional[str] = None,
        timeout: Optional[float] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"Timed out during {operation or 'I/O'}"
        super().__init__(
            message,
            operation=operation,
            error_code=ErrorCode.TIMEOUT_ERROR,
            details={"timeout": timeout},
        )


class ConcurrencyConflictError(TransientIOError):
    """Exception raised when a write is based on a stale aggregate version"""

    def __init__(
        self,
        document_id: Optional[str] = None,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ):
        super().__init__(
            f"Aggregate {document_id} was modified concurrently",
            operation="update_student",
            error_code=ErrorCode.CONCURRENCY_CONFLICT,
            details={
                "document_id": document_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.status_code = 409


class ConfigurationError(BaseAppException):
    """Exception raised when required configuration is missing"""

    def __init__(self, message: str = "Invalid configuration", setting: Optional[str] = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, {"setting": setting}, 500)


__all__ = [
    "ErrorCode",
    "BaseAppException",
    "ValidationError",
    "InvalidFormatError",
    "OutOfRangeError",
    "ResourceNotFoundError",
    "StudentNotFoundError",
    "LeaveNotFoundError",
    "InvalidTransitionError",
    "AuthorizationError",
    "ParseError",
    "TransientIOError",
    "TimeoutIOError",
    "ConcurrencyConflictError",
    "ConfigurationError",
]
