"""
Service factory for dependency injection and service instantiation.
"""

from typing import Any, Callable, Dict, Optional

from schoolhub.config.settings import Settings, get_settings
from schoolhub.core.logging import get_logger, setup_logging
from schoolhub.repositories.calendar_repository import (
    CalendarDatasetCache,
    CalendarDatasetProvider,
    GeneratedCalendarDatasetProvider,
    HttpCalendarDatasetProvider,
)
from schoolhub.repositories.http import RestClient
from schoolhub.repositories.notification_repository import (
    InMemoryNotificationSink,
    NotificationSink,
    RestNotificationSink,
)
from schoolhub.repositories.student_repository import (
    InMemoryStudentRepository,
    RestStudentRepository,
    StudentRepository,
)
from schoolhub.services.attendance.attendance_reconciler import AttendanceReconciler
from schoolhub.services.base.base_service import Clock
from schoolhub.services.calendar.conversion_service import CalendarConversionService
from schoolhub.services.calendar.navigator import CalendarNavigator
from schoolhub.services.leave.leave_codec import LeaveRecordCodec
from schoolhub.services.leave.leave_lifecycle_service import LeaveLifecycleService
from schoolhub.services.notification.notification_dispatcher import NotificationDispatcher


class ServiceFactory:
    """
    Factory for creating service instances with dependency injection.

    Collaborators not passed in are built from settings: REST clients when
    the store or dataset URL is configured, in-memory or generated
    implementations otherwise.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        student_repository: Optional[StudentRepository] = None,
        notification_sink: Optional[NotificationSink] = None,
        calendar_provider: Optional[CalendarDatasetProvider] = None,
        clock: Optional[Clock] = None,
        configure_logging: bool = False,
    ):
        """
        Initialize service factory.

        Args:
            settings: Application settings (defaults to the cached instance)
            student_repository: Student store override
            notification_sink: Notification sink override
            calendar_provider: Calendar dataset provider override
            clock: Callable returning the current UTC datetime
            configure_logging: Run logging setup with these settings
        """
        self.settings = settings or get_settings()
        if configure_logging:
            setup_logging(self.settings)
        self.clock = clock
        self._logger = get_logger(self.__class__.__name__)

        self._store_client: Optional[RestClient] = None
        self._student_repository = student_repository
        self._notification_sink = notification_sink
        self._calendar_provider = calendar_provider

        # Service cache to reuse instances
        self._service_cache: Dict[str, Any] = {}

    def _cached(self, cache_key: str, build: Callable[[], Any]) -> Any:
        if cache_key not in self._service_cache:
            self._service_cache[cache_key] = build()
            self._logger.debug(f"Created {type(self._service_cache[cache_key]).__name__} instance")
        return self._service_cache[cache_key]

    # -------------------------------------------------------------------------
    # Collaborators
    # -------------------------------------------------------------------------

    def store_client(self) -> Optional[RestClient]:
        store = self.settings.store
        if self._store_client is None and store.STORE_BASE_URL:
            self._store_client = RestClient(
                store.STORE_BASE_URL,
                api_key=store.STORE_API_KEY.get_secret_value() or None,
                default_timeout=store.STORE_TIMEOUT_SECONDS,
            )
        return self._store_client

    def student_repository(self) -> StudentRepository:
        if self._student_repository is None:
            client = self.store_client()
            if client is not None:
                self._student_repository = RestStudentRepository(
                    client, self.settings.store.STUDENT_COLLECTION
                )
            else:
                self._logger.info("STORE_BASE_URL not set; using in-memory student store")
                self._student_repository = InMemoryStudentRepository()
        return self._student_repository

    def notification_sink(self) -> NotificationSink:
        if self._notification_sink is None:
            client = self.store_client()
            if client is not None:
                self._notification_sink = RestNotificationSink(
                    client, self.settings.store.NOTIFICATION_COLLECTION
                )
            else:
                self._notification_sink = InMemoryNotificationSink()
        return self._notification_sink

    def calendar_dataset(self) -> CalendarDatasetCache:
        """Session-wide cached calendar dataset."""
        def build() -> CalendarDatasetCache:
            calendar = self.settings.calendar
            provider = self._calendar_provider
            if provider is None:
                if calendar.CALENDAR_DATASET_URL:
                    client = RestClient("", default_timeout=calendar.DATASET_TIMEOUT_SECONDS)
                    provider = HttpCalendarDatasetProvider(client, calendar.CALENDAR_DATASET_URL)
                else:
                    current = self.conversion().today_bs().year
                    span = calendar.CALENDAR_DATASET_YEARS
                    provider = GeneratedCalendarDatasetProvider(
                        self.conversion(), range(current - span, current + span + 1)
                    )
            return CalendarDatasetCache(provider, timeout=calendar.DATASET_TIMEOUT_SECONDS)

        return self._cached("calendar_dataset", build)

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    def conversion(self) -> CalendarConversionService:
        return self._cached(
            "conversion_service",
            lambda: CalendarConversionService(self.settings, self.clock),
        )

    def codec(self) -> LeaveRecordCodec:
        return self._cached("leave_codec", LeaveRecordCodec)

    def notification(self) -> NotificationDispatcher:
        return self._cached(
            "notification_dispatcher",
            lambda: NotificationDispatcher(self.notification_sink(), self.settings, self.clock),
        )

    def leave_lifecycle(self) -> LeaveLifecycleService:
        return self._cached(
            "leave_lifecycle_service",
            lambda: LeaveLifecycleService(
                self.student_repository(),
                self.conversion(),
                self.notification(),
                codec=self.codec(),
                settings=self.settings,
                clock=self.clock,
            ),
        )

    def attendance(self) -> AttendanceReconciler:
        return self._cached(
            "attendance_reconciler",
            lambda: AttendanceReconciler(self.conversion(), self.codec(), self.settings, self.clock),
        )

    def navigator(self) -> CalendarNavigator:
        """A new navigator; each view keeps its own position."""
        return CalendarNavigator(self.calendar_dataset())

    def close(self) -> None:
        if self._store_client is not None:
            self._store_client.close()
