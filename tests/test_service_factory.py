"""
Unit Tests for ServiceFactory
Tests for: collaborator selection from settings and instance reuse
"""
from schoolhub.config.settings import CalendarSettings, Settings, StoreSettings, get_test_settings
from schoolhub.repositories.calendar_repository import (
    GeneratedCalendarDatasetProvider,
    HttpCalendarDatasetProvider,
)
from schoolhub.repositories.notification_repository import InMemoryNotificationSink, RestNotificationSink
from schoolhub.repositories.student_repository import InMemoryStudentRepository, RestStudentRepository
from schoolhub.service_factory import ServiceFactory
from tests.factories import FIXED_NOW, encoded, leave_record, make_student


def test_local_collaborators_without_urls():
    """Test in-memory stores and a generated calendar when nothing is configured"""
    factory = ServiceFactory(get_test_settings(), clock=lambda: FIXED_NOW)

    assert isinstance(factory.student_repository(), InMemoryStudentRepository)
    assert isinstance(factory.notification_sink(), InMemoryNotificationSink)
    cache = factory.calendar_dataset()
    assert isinstance(cache.provider, GeneratedCalendarDatasetProvider)
    assert cache.list_years() == ["2080", "2081", "2082"]


def test_rest_collaborators_with_urls():
    """Test REST stores and the HTTP calendar when URLs are set"""
    settings = Settings(
        store=StoreSettings(STORE_BASE_URL="https://store.example", STORE_API_KEY="k"),
        calendar=CalendarSettings(CALENDAR_DATASET_URL="https://calendar.example/data.json"),
    )
    factory = ServiceFactory(settings)
    try:
        assert isinstance(factory.student_repository(), RestStudentRepository)
        assert isinstance(factory.notification_sink(), RestNotificationSink)
        assert isinstance(factory.calendar_dataset().provider, HttpCalendarDatasetProvider)
    finally:
        factory.close()


def test_services_are_shared():
    """Test services are built once and wired to the same collaborators"""
    factory = ServiceFactory(get_test_settings(), clock=lambda: FIXED_NOW)

    lifecycle = factory.leave_lifecycle()
    assert factory.leave_lifecycle() is lifecycle
    assert factory.attendance().conversion is factory.conversion()
    assert factory.navigator() is not factory.navigator()


def test_end_to_end_validate():
    """Test a validation through factory-built services notifies the student"""
    repository = InMemoryStudentRepository()
    factory = ServiceFactory(get_test_settings(), student_repository=repository, clock=lambda: FIXED_NOW)

    repository.add(make_student(leave=encoded(leave_record("L1"))))

    result = factory.leave_lifecycle().validate("doc-1", "L1")

    assert result.is_success
    assert [m.to for m in factory.notification_sink().messages] == [["STD-001"]]
