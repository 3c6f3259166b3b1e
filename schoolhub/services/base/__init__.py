from schoolhub.services.base.base_service import BaseService, Clock
from schoolhub.services.base.service_result import (
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)

__all__ = [
    "BaseService",
    "Clock",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]
