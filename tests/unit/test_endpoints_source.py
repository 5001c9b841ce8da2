"""
Unit tests for EndpointsSource against a mocked Kubernetes client.
"""

from unittest.mock import MagicMock

import pytest
from kubernetes.client import V1EndpointsList, V1ListMeta
from kubernetes.client.rest import ApiException
from urllib3.exceptions import ProtocolError

from kubepool.cluster import endpoints_source
from kubepool.cluster.endpoints_source import EndpointsSource
from kubepool.errors import ListError, WatchError, WatchExpiredError
from kubepool.reflector import EventType

from tests.mocks import make_endpoints


class FakeWatch:
    """Stands in for kubernetes.watch.Watch."""

    def __init__(self, events=None, error: Exception | None = None) -> None:
        self.events = events or []
        self.error = error
        self.stopped = False
        self.stream_args = None
        self.stream_kwargs = None

    def stream(self, func, *args, **kwargs):
        self.stream_args = args
        self.stream_kwargs = kwargs

        for event in self.events:
            yield event

        if self.error is not None:
            raise self.error

    def stop(self):
        self.stopped = True


@pytest.fixture
def api(monkeypatch) -> MagicMock:
    api = MagicMock()
    monkeypatch.setattr(endpoints_source.client, "CoreV1Api", lambda api_client: api)
    return api


@pytest.fixture
def install_watch(monkeypatch):
    def install(fake_watch: FakeWatch) -> FakeWatch:
        monkeypatch.setattr(endpoints_source.watch, "Watch", lambda: fake_watch)
        return fake_watch

    return install


class TestEndpointsSourceName:

    def test_name_with_selector(self, api):
        source = EndpointsSource(MagicMock(), "prod", selector="app=gubernator")

        assert source.name == "endpoints/prod?app=gubernator"

    def test_name_without_selector(self, api):
        assert EndpointsSource(MagicMock(), "prod").name == "endpoints/prod"


class TestEndpointsSourceList:
    """Test list translation and error mapping."""

    def test_list_returns_items_and_version(self, api):
        items = [make_endpoints("a", ["10.0.0.1"])]
        api.list_namespaced_endpoints.return_value = V1EndpointsList(
            items=items,
            metadata=V1ListMeta(resource_version="17"),
        )
        source = EndpointsSource(MagicMock(), "prod", selector="app=test")

        result = source.list()

        assert result.items == items
        assert result.resource_version == "17"
        args, kwargs = api.list_namespaced_endpoints.call_args
        assert args == ("prod",)
        assert kwargs["label_selector"] == "app=test"

    def test_api_exception_becomes_list_error(self, api):
        api.list_namespaced_endpoints.side_effect = ApiException(status=403, reason="Forbidden")
        source = EndpointsSource(MagicMock(), "prod")

        with pytest.raises(ListError, match="403 Forbidden"):
            source.list()

    def test_transport_error_becomes_list_error(self, api):
        api.list_namespaced_endpoints.side_effect = ProtocolError("connection reset")
        source = EndpointsSource(MagicMock(), "prod")

        with pytest.raises(ListError) as exc_info:
            source.list()

        assert isinstance(exc_info.value.__cause__, ProtocolError)


class TestEndpointsSourceWatch:
    """Test watch translation and error mapping."""

    def test_events_are_translated(self, api, install_watch):
        added = make_endpoints("a", ["10.0.0.1"], resource_version="5")
        fake_watch = install_watch(
            FakeWatch(events=[
                {"type": "ADDED", "object": added},
                {"type": "BOOKMARK", "object": make_endpoints("a", [], resource_version="6")},
            ])
        )
        source = EndpointsSource(MagicMock(), "prod", selector="app=test")

        events = list(source.watch("4", timeout_seconds=60))

        assert [event.type for event in events] == [EventType.ADDED, EventType.BOOKMARK]
        assert events[0].obj is added
        assert events[0].resource_version == "5"
        assert events[1].resource_version == "6"

        assert fake_watch.stream_args == ("prod",)
        assert fake_watch.stream_kwargs["resource_version"] == "4"
        assert fake_watch.stream_kwargs["timeout_seconds"] == 60
        assert fake_watch.stream_kwargs["allow_watch_bookmarks"] is True
        assert fake_watch.stream_kwargs["label_selector"] == "app=test"
        assert fake_watch.stopped is True

    def test_no_resource_version_is_omitted(self, api, install_watch):
        fake_watch = install_watch(FakeWatch())

        list(EndpointsSource(MagicMock(), "prod").watch(None, timeout_seconds=60))

        assert "resource_version" not in fake_watch.stream_kwargs

    def test_gone_raises_expired(self, api, install_watch):
        install_watch(FakeWatch(error=ApiException(status=410, reason="Gone")))

        with pytest.raises(WatchExpiredError) as exc_info:
            list(EndpointsSource(MagicMock(), "prod").watch("4", timeout_seconds=60))

        assert exc_info.value.resource_version == "4"

    def test_error_event_gone_raises_expired(self, api, install_watch):
        install_watch(
            FakeWatch(events=[
                {"type": "ERROR", "raw_object": {"code": 410, "message": "too old"}},
            ])
        )

        with pytest.raises(WatchExpiredError):
            list(EndpointsSource(MagicMock(), "prod").watch("4", timeout_seconds=60))

    def test_other_api_errors_raise_watch_error(self, api, install_watch):
        install_watch(FakeWatch(error=ApiException(status=500, reason="Internal")))

        with pytest.raises(WatchError) as exc_info:
            list(EndpointsSource(MagicMock(), "prod").watch("4", timeout_seconds=60))

        assert not isinstance(exc_info.value, WatchExpiredError)

    def test_unknown_event_type(self, api, install_watch):
        install_watch(FakeWatch(events=[{"type": "WHATEVER", "object": None}]))

        with pytest.raises(WatchError, match="WHATEVER"):
            list(EndpointsSource(MagicMock(), "prod").watch("4", timeout_seconds=60))

    def test_stop_ends_current_watch(self, api, install_watch):
        fake_watch = install_watch(
            FakeWatch(events=[{"type": "ADDED", "object": make_endpoints("a", ["10.0.0.1"])}])
        )
        source = EndpointsSource(MagicMock(), "prod")

        stream = source.watch(None, timeout_seconds=60)
        next(stream)
        source.stop()

        assert fake_watch.stopped is True
