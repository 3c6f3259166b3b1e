"""
Unit Tests for notification sinks
Tests for: in-memory collection and the REST create call
"""
import json

import httpx
import pytest

from schoolhub.core.exceptions import TransientIOError
from schoolhub.repositories.http import RestClient
from schoolhub.repositories.notification_repository import (
    InMemoryNotificationSink,
    RestNotificationSink,
)
from schoolhub.schemas.notification import NotificationMessage
from schoolhub.services.notification.notification_dispatcher import NotificationDispatcher

MESSAGE = NotificationMessage(
    title="Sick leave",
    msg="Your leave request was validated.",
    to=["STD-001"],
    sender="PAR-001",
    valid="2024-04-21",
    date="2024-04-20 12:15:00",
)


def test_in_memory_sink_collects():
    """Test messages are recorded in order with distinct ids"""
    sink = InMemoryNotificationSink()
    first = sink.create(MESSAGE)
    second = sink.create(MESSAGE)
    assert first != second
    assert [m.title for m in sink.messages] == ["Sick leave", "Sick leave"]


def test_rest_sink_posts_document():
    """Test the request body and returned id"""
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"$id": "n-42"})

    client = RestClient("https://store.example", transport=httpx.MockTransport(handler))
    created = RestNotificationSink(client, "coll-notify").create(MESSAGE, timeout=2.0)

    assert created == "n-42"
    assert seen["method"] == "POST"
    assert seen["path"] == "/collections/coll-notify/documents"
    assert seen["body"]["documentId"] == "unique()"
    assert seen["body"]["data"] == MESSAGE.model_dump()


def test_rest_sink_server_error():
    """Test 5xx is retryable"""
    client = RestClient("https://store.example", transport=httpx.MockTransport(lambda r: httpx.Response(502)))
    with pytest.raises(TransientIOError):
        RestNotificationSink(client, "coll-notify").create(MESSAGE)


@pytest.mark.parametrize(
    "response",
    [httpx.Response(201), httpx.Response(200, content=b"OK"), httpx.Response(201, json=["unexpected"])],
)
def test_rest_sink_any_success_is_delivered(response):
    """Test a 2xx without a readable document still counts as created"""
    client = RestClient("https://store.example", transport=httpx.MockTransport(lambda r: response))
    assert RestNotificationSink(client, "coll-notify").create(MESSAGE) == ""


def test_dispatch_posts_once_on_empty_created_response(settings, clock):
    """Test a bodiless 201 is one delivery with nothing queued"""
    posts = []

    def handler(request):
        posts.append(request)
        return httpx.Response(201)

    client = RestClient("https://store.example", transport=httpx.MockTransport(handler))
    dispatcher = NotificationDispatcher(RestNotificationSink(client, "coll-notify"), settings, clock)

    result = dispatcher.dispatch("STD-001", "PAR-001", "Sick leave", "Validated")

    assert result.is_success
    assert len(posts) == 1
    assert dispatcher.outbox == []
    assert dispatcher.flush_outbox().data == 0
    assert len(posts) == 1
