"""
Shared fixtures.

Services get a fixed clock so timestamps, "today" and notification
validity are deterministic.
"""

import pytest

from schoolhub.config.settings import get_test_settings
from schoolhub.repositories.calendar_repository import (
    CalendarDatasetCache,
    GeneratedCalendarDatasetProvider,
    StaticCalendarDatasetProvider,
)
from schoolhub.repositories.notification_repository import InMemoryNotificationSink
from schoolhub.repositories.student_repository import InMemoryStudentRepository
from schoolhub.services.attendance.attendance_reconciler import AttendanceReconciler
from schoolhub.services.calendar.conversion_service import CalendarConversionService
from schoolhub.services.leave.leave_codec import LeaveRecordCodec
from schoolhub.services.leave.leave_lifecycle_service import LeaveLifecycleService
from schoolhub.services.notification.notification_dispatcher import NotificationDispatcher
from tests.factories import FIXED_NOW


@pytest.fixture
def settings():
    return get_test_settings()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def conversion(settings, clock):
    return CalendarConversionService(settings, clock)


@pytest.fixture
def codec():
    return LeaveRecordCodec()


@pytest.fixture
def student_repository():
    return InMemoryStudentRepository()


@pytest.fixture
def sink():
    return InMemoryNotificationSink()


@pytest.fixture
def dispatcher(sink, settings, clock):
    return NotificationDispatcher(sink, settings, clock)


@pytest.fixture
def lifecycle(student_repository, conversion, dispatcher, codec, settings, clock):
    return LeaveLifecycleService(
        student_repository,
        conversion,
        dispatcher,
        codec=codec,
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def reconciler(conversion, codec, settings, clock):
    return AttendanceReconciler(conversion, codec, settings, clock)


@pytest.fixture(scope="session")
def generated_dataset():
    """Calendar dataset for BS 2080-2082 built from the conversion tables."""
    settings = get_test_settings()
    provider = GeneratedCalendarDatasetProvider(
        CalendarConversionService(settings, lambda: FIXED_NOW), [2080, 2081, 2082]
    )
    return provider.load()


@pytest.fixture
def dataset_cache(generated_dataset):
    return CalendarDatasetCache(StaticCalendarDatasetProvider(generated_dataset))
