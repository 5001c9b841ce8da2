"""
List and watch of Kubernetes Endpoints through the official client.
"""

from __future__ import annotations

import threading
from typing import Any, Iterator

from kubernetes import client, watch
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from kubepool.errors import ListError, WatchError, WatchExpiredError
from kubepool.reflector.events import EventType, ResourceList, WatchEvent
from kubepool.reflector.store import resource_version_of


HTTP_STATUS_GONE = 410


class EndpointsSource:
    """
    ``WatchSource`` over the Endpoints of one namespace, filtered by a
    label selector.
    """

    def __init__(
        self,
        api_client: client.ApiClient,
        namespace: str,
        selector: str = "",
        request_timeout: float = 30.0,
    ) -> None:
        self._api = client.CoreV1Api(api_client)
        self._namespace = namespace
        self._selector = selector
        self._request_timeout = request_timeout
        self._watch: watch.Watch | None = None
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        if self._selector:
            return f"endpoints/{self._namespace}?{self._selector}"

        return f"endpoints/{self._namespace}"

    def list(self) -> ResourceList:
        try:
            result = self._api.list_namespaced_endpoints(
                self._namespace,
                label_selector=self._selector,
                _request_timeout=self._request_timeout,
            )

        except ApiException as err:
            raise ListError(
                f"Listing {self.name} failed: {err.status} {err.reason}"
            ) from err

        except (HTTPError, OSError) as err:
            raise ListError(f"Listing {self.name} failed: {err}") from err

        return ResourceList(
            items=list(result.items or []),
            resource_version=result.metadata.resource_version if result.metadata else None,
        )

    def watch(
        self,
        resource_version: str | None,
        timeout_seconds: int,
    ) -> Iterator[WatchEvent]:
        stream_watch = watch.Watch()
        with self._lock:
            self._watch = stream_watch

        kwargs: dict[str, Any] = {
            "label_selector": self._selector,
            "timeout_seconds": timeout_seconds,
            "allow_watch_bookmarks": True,
            "_request_timeout": timeout_seconds + self._request_timeout,
        }

        if resource_version:
            kwargs["resource_version"] = resource_version

        try:
            for raw_event in stream_watch.stream(
                self._api.list_namespaced_endpoints,
                self._namespace,
                **kwargs,
            ):
                yield self._to_event(raw_event, resource_version)

        except ApiException as err:
            if err.status == HTTP_STATUS_GONE:
                raise WatchExpiredError(resource_version) from err

            raise WatchError(
                f"Watching {self.name} failed: {err.status} {err.reason}"
            ) from err

        except (HTTPError, OSError) as err:
            raise WatchError(f"Watching {self.name} failed: {err}") from err

        finally:
            stream_watch.stop()
            with self._lock:
                if self._watch is stream_watch:
                    self._watch = None

    def stop(self) -> None:
        with self._lock:
            stream_watch = self._watch

        if stream_watch is not None:
            stream_watch.stop()

    def _to_event(
        self,
        raw_event: dict[str, Any],
        resource_version: str | None,
    ) -> WatchEvent:
        event_type = raw_event.get("type")

        if event_type == "ERROR":
            status = raw_event.get("raw_object") or {}
            if status.get("code") == HTTP_STATUS_GONE:
                raise WatchExpiredError(resource_version)

            raise WatchError(
                f"Watching {self.name} failed: {status.get('code')} {status.get('message')}"
            )

        try:
            event_type = EventType(event_type)

        except ValueError as err:
            raise WatchError(f"Unexpected watch event type '{event_type}'") from err

        obj = raw_event.get("object")

        return WatchEvent(
            type=event_type,
            obj=obj,
            resource_version=resource_version_of(obj),
        )
