"""Analytics service - event registration, rate limiting and delivery.

The reporter talks to an AnalyticsService. Hosts that have their own
analytics platform implement the protocol; LocalAnalyticsService is the
in-process implementation that enforces the registered limits and hands
accepted events to an AnalyticsHub.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from augur.analytics.config import AnalyticsSettings
from augur.analytics.output import AnalyticsHub, ConsoleOutput, FileOutput
from augur.contracts import AnalyticsEnvelope, InferenceEvent

_logger = logging.getLogger(__name__)

_WINDOW_SECONDS = 3600.0


class AnalyticsResult(Enum):
    """Outcome of a registration or send call."""

    OK = "ok"
    NOT_INITIALIZED = "not_initialized"
    ANALYTICS_DISABLED = "analytics_disabled"
    TOO_MANY_ITEMS = "too_many_items"
    SIZE_LIMIT_REACHED = "size_limit_reached"
    TOO_MANY_REQUESTS = "too_many_requests"
    INVALID_DATA = "invalid_data"
    UNSUPPORTED_PLATFORM = "unsupported_platform"


@runtime_checkable
class AnalyticsService(Protocol):
    """What the reporter needs from an analytics platform."""

    def is_enabled(self) -> bool: ...

    def register_event_with_limit(
        self,
        event_name: str,
        max_events_per_hour: int,
        max_number_of_elements: int,
        vendor_key: str,
    ) -> AnalyticsResult: ...

    def send_event_with_limit(self, event_name: str, event: InferenceEvent) -> AnalyticsResult: ...


@dataclass(frozen=True, slots=True)
class EventRegistration:
    event_name: str
    max_events_per_hour: int
    max_number_of_elements: int
    vendor_key: str


class LocalAnalyticsService:
    """In-process AnalyticsService backed by an AnalyticsHub.

    Registration is idempotent per event name; the limits of the first
    successful registration are kept. Sends are checked against those
    limits with a sliding one-hour window.

    Args:
        settings: Enablement comes from ``settings.enabled``.
        hub: Destination for accepted events. A private hub is created when
            omitted; it is closed by close().
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        settings: AnalyticsSettings | None = None,
        hub: AnalyticsHub | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings or AnalyticsSettings()
        self._owns_hub = hub is None
        self._hub = hub if hub is not None else AnalyticsHub(max_queue_size=self._settings.hub_queue_size)
        self._clock = clock
        self._registrations: dict[str, EventRegistration] = {}
        self._sent_times: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._closed = False

    @property
    def hub(self) -> AnalyticsHub:
        return self._hub

    def registration(self, event_name: str) -> EventRegistration | None:
        return self._registrations.get(event_name)

    def is_enabled(self) -> bool:
        return self._settings.enabled and not self._closed

    def register_event_with_limit(
        self,
        event_name: str,
        max_events_per_hour: int,
        max_number_of_elements: int,
        vendor_key: str,
    ) -> AnalyticsResult:
        if self._closed:
            return AnalyticsResult.NOT_INITIALIZED
        if not self._settings.enabled:
            return AnalyticsResult.ANALYTICS_DISABLED
        if not event_name or not vendor_key or max_events_per_hour <= 0 or max_number_of_elements <= 0:
            return AnalyticsResult.INVALID_DATA

        with self._lock:
            if event_name not in self._registrations:
                self._registrations[event_name] = EventRegistration(
                    event_name=event_name,
                    max_events_per_hour=max_events_per_hour,
                    max_number_of_elements=max_number_of_elements,
                    vendor_key=vendor_key,
                )
                self._sent_times[event_name] = deque()
                _logger.debug(
                    f"Registered analytics event {event_name} "
                    f"({max_events_per_hour}/hour, {max_number_of_elements} elements)"
                )
        return AnalyticsResult.OK

    def send_event_with_limit(self, event_name: str, event: InferenceEvent) -> AnalyticsResult:
        if self._closed:
            return AnalyticsResult.NOT_INITIALIZED
        if not self._settings.enabled:
            return AnalyticsResult.ANALYTICS_DISABLED

        registration = self._registrations.get(event_name)
        if registration is None:
            return AnalyticsResult.NOT_INITIALIZED

        payload = event.to_dict()
        if event.element_count() > registration.max_number_of_elements:
            return AnalyticsResult.TOO_MANY_ITEMS

        now = self._clock()
        with self._lock:
            sent = self._sent_times[event_name]
            while sent and now - sent[0] >= _WINDOW_SECONDS:
                sent.popleft()
            if len(sent) >= registration.max_events_per_hour:
                return AnalyticsResult.TOO_MANY_REQUESTS
            sent.append(now)

        if not self._hub.backends:
            _logger.debug(f"No analytics backends, {event_name} event discarded")
            return AnalyticsResult.OK

        envelope = AnalyticsEnvelope(
            event_name=event_name,
            vendor_key=registration.vendor_key,
            payload=payload,
        )
        if not self._hub.emit(envelope):
            return AnalyticsResult.SIZE_LIMIT_REACHED
        return AnalyticsResult.OK

    def flush(self) -> None:
        self._hub.flush()

    def close(self) -> None:
        """Stop accepting events; closes the hub if this service created it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_hub:
            self._hub.close()


def build_service(settings: AnalyticsSettings | None = None) -> LocalAnalyticsService:
    """Create a LocalAnalyticsService with the backends named in settings.

    With neither console nor file output configured the service still
    enforces its limits, but accepted events are discarded.
    """
    settings = settings or AnalyticsSettings()
    service = LocalAnalyticsService(settings)
    if settings.console_output:
        service.hub.add_backend(ConsoleOutput())
    if settings.output_file:
        service.hub.add_backend(FileOutput(settings.output_file))
    return service


__all__ = [
    "AnalyticsResult",
    "AnalyticsService",
    "EventRegistration",
    "LocalAnalyticsService",
    "build_service",
]
