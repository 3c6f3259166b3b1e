"""
Base service class providing common functionality for all services.
"""

from typing import Any, Callable, Dict, Optional
from abc import ABC
from datetime import datetime

from schoolhub.config.settings import Settings, get_settings
from schoolhub.core.exceptions import BaseAppException
from schoolhub.core.logging import get_logger
from schoolhub.services.base.service_result import (
    ServiceResult,
    ErrorSeverity,
)
from schoolhub.utils.date_utils import now_utc


Clock = Callable[[], datetime]


class BaseService(ABC):
    """
    Base service with common behaviors:
    - Shared logger, settings and clock
    - Consistent error handling via ServiceResult
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize base service.

        Args:
            settings: Application settings (defaults to the cached instance)
            clock: Callable returning the current UTC datetime
        """
        self.settings: Settings = settings or get_settings()
        self._clock: Clock = clock or now_utc
        self._logger = get_logger(self.__class__.__name__)

    def _now(self) -> datetime:
        return self._clock()

    # -------------------------------------------------------------------------
    # Exception & Error Handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Convert exception to a ServiceResult failure with logging.

        Application exceptions are expected outcomes of a request and are
        logged as warnings; anything else is logged with its traceback.

        Args:
            exception: The caught exception
            operation: Description of the operation that failed
            entity_ref: Reference to the entity involved (ID, name, etc.)
            additional_context: Extra context merged into the error details

        Returns:
            ServiceResult with failure status and error details
        """
        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
        }

        if isinstance(exception, BaseAppException):
            self._logger.warning(f"{operation} failed: {exception.message}", extra=context)
            severity = self._map_exception_to_severity(exception)
        else:
            self._logger.error(
                f"Error during {operation}: {exception}",
                exc_info=True,
                extra=context,
            )
            severity = ErrorSeverity.CRITICAL

        return ServiceResult.from_exception(
            exception, operation, severity=severity, context=additional_context
        )

    def _map_exception_to_severity(self, exception: BaseAppException) -> ErrorSeverity:
        """Retryable failures are warnings; everything else is an error."""
        if exception.retryable:
            return ErrorSeverity.WARNING
        return ErrorSeverity.ERROR

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _log_operation(
        self,
        operation: str,
        entity_ref: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log service operation with standardized format.

        Args:
            operation: Description of the operation
            entity_ref: Reference to the entity involved
            extra: Additional context to log
        """
        context = {"entity_ref": str(entity_ref) if entity_ref else None}
        if extra:
            context.update(extra)
        self._logger.info(f"Operation: {operation}", extra=context)
