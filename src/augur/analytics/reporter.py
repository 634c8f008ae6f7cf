"""Inference analytics reporter.

Sends one analytics event the first time each model instance is set up
for inference. Nothing is loaded or hashed when analytics are disabled,
and nothing raised here ever reaches the caller: the inference path must
not be affected by telemetry.

Usage:
    service = build_service(AnalyticsSettings())
    reporter = InferenceAnalytics(service)

    reporter.inference_model_set(
        model, "Walker", InferenceDevice.CPU, sensors, ActionSpec.make_continuous(4)
    )
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from enum import Enum
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from augur import __version__
from augur.analytics.config import AnalyticsSettings
from augur.analytics.service import (
    AnalyticsResult,
    AnalyticsService,
    LocalAnalyticsService,
    build_service,
)
from augur.contracts import (
    ActionSpec,
    EventActionSpec,
    EventObservationSpec,
    InferenceDevice,
    InferenceEvent,
    Model,
    SensorSpec,
)
from augur.fingerprint import model_hash, model_weight_size
from augur.loaders import load_model

_logger = logging.getLogger(__name__)

# Models exported by the legacy script converter carry no usable source or producer
LEGACY_SCRIPT_PRODUCER = "Script"
LEGACY_MODEL_SOURCE = "NN"
LEGACY_MODEL_PRODUCER = "tf2bc.py"


class ReportResult(Enum):
    """What inference_model_set() did."""

    SENT = "sent"
    SKIPPED_DISABLED = "skipped_disabled"
    SKIPPED_DUPLICATE = "skipped_duplicate"


def runtime_package_version() -> str:
    """Installed version of the model runtime, or "unknown"."""
    try:
        return version("torch")
    except PackageNotFoundError:
        return "unknown"


def build_inference_event(
    model: Model,
    behavior_name: str,
    inference_device: InferenceDevice,
    sensors: Sequence[SensorSpec],
    action_spec: ActionSpec,
    legacy_producer_overrides: bool = True,
) -> InferenceEvent:
    """Assemble the analytics event for a loaded model."""
    model_source = model.ir_source
    model_producer = model.producer_name
    if legacy_producer_overrides and model.producer_name == LEGACY_SCRIPT_PRODUCER:
        model_source = LEGACY_MODEL_SOURCE
        model_producer = LEGACY_MODEL_PRODUCER

    return InferenceEvent(
        behavior_name=behavior_name,
        model_source=model_source,
        model_version=model.ir_version,
        model_producer=model_producer,
        memory_size=model.memory_size,
        inference_device=int(inference_device),
        action_spec=EventActionSpec.from_action_spec(action_spec),
        observation_specs=tuple(EventObservationSpec.from_sensor(s) for s in sensors),
        total_weight_size_bytes=model_weight_size(model),
        model_hash=model_hash(model),
        runtime_package_version=runtime_package_version(),
        augur_version=__version__,
    )


class InferenceAnalytics:
    """Reports each model instance at most once.

    Models are tracked by identity: two equal models loaded separately are
    both reported. Tracked models are kept alive for the lifetime of the
    reporter so their ids cannot be reused.

    Args:
        service: Analytics platform to register with and send to.
        model_loader: Resolves a model handle to a Model.
        settings: Event name, vendor key and registration limits.
    """

    def __init__(
        self,
        service: AnalyticsService,
        model_loader: Callable[[Any], Model] = load_model,
        settings: AnalyticsSettings | None = None,
    ):
        self._service = service
        self._model_loader = model_loader
        self._settings = settings or AnalyticsSettings()
        self._event_registered = False
        self._sent_models: dict[int, Any] = {}
        self._lock = threading.Lock()

    @property
    def service(self) -> AnalyticsService:
        return self._service

    @property
    def reported_count(self) -> int:
        """Number of model instances claimed so far."""
        return len(self._sent_models)

    def is_reported(self, model: Any) -> bool:
        """Check whether this exact model instance has been reported.

        Args:
            model: Model handle passed to inference_model_set().

        Returns:
            True if the instance is in the sent set. Equal but distinct
            instances are not.
        """
        return id(model) in self._sent_models

    def is_analytics_enabled(self) -> bool:
        """Ask the service whether analytics are on. Errors count as off."""
        try:
            return bool(self._service.is_enabled())
        except Exception as e:
            _logger.debug(f"Analytics enablement check failed: {e}")
            return False

    def _enable_analytics(self) -> bool:
        """Register the event kind once; retried on later calls until it succeeds."""
        if self._event_registered:
            return True

        with self._lock:
            if self._event_registered:
                return True
            try:
                result = self._service.register_event_with_limit(
                    self._settings.event_name,
                    self._settings.max_events_per_hour,
                    self._settings.max_number_of_elements,
                    self._settings.vendor_key,
                )
            except Exception as e:
                _logger.debug(f"Analytics event registration raised: {e}")
                return False
            if result is AnalyticsResult.OK:
                self._event_registered = True
            else:
                _logger.debug(f"Analytics event registration failed: {result}")
        return self._event_registered

    def _claim(self, model: Any) -> bool:
        """Atomically add ``model`` to the sent set. False if already there."""
        key = id(model)
        with self._lock:
            if key in self._sent_models:
                return False
            self._sent_models[key] = model
            return True

    def inference_model_set(
        self,
        model: Any,
        behavior_name: str,
        inference_device: InferenceDevice,
        sensors: Sequence[SensorSpec],
        action_spec: ActionSpec,
    ) -> ReportResult:
        """Report that ``model`` is being used for inference.

        Args:
            model: Model handle, resolved with the model loader on first sight.
            behavior_name: Behavior name of the agent using the model.
            inference_device: Device the model runs on.
            sensors: The agent's sensors, in observation order.
            action_spec: The agent's action space.

        Returns:
            SENT when the model was claimed and emission was attempted (the
            service's verdict is not surfaced), SKIPPED_DISABLED when
            analytics are off or registration has not succeeded, and
            SKIPPED_DUPLICATE when this instance was already reported.
        """
        if not self.is_analytics_enabled():
            return ReportResult.SKIPPED_DISABLED

        if not self._enable_analytics():
            return ReportResult.SKIPPED_DISABLED

        if not self._claim(model):
            return ReportResult.SKIPPED_DUPLICATE

        try:
            event = build_inference_event(
                self._model_loader(model),
                behavior_name,
                inference_device,
                sensors,
                action_spec,
                legacy_producer_overrides=self._settings.legacy_producer_overrides,
            )
            result = self._service.send_event_with_limit(self._settings.event_name, event)
        except Exception as e:
            _logger.debug(f"Inference analytics for {behavior_name} dropped: {e}")
            return ReportResult.SENT

        if result is not AnalyticsResult.OK:
            _logger.debug(f"Inference analytics for {behavior_name} not accepted: {result}")
        return ReportResult.SENT


# Process-wide reporter for hosts that don't manage their own
_global_reporter: InferenceAnalytics | None = None
_global_lock = threading.Lock()


def get_reporter() -> InferenceAnalytics:
    """Get or create the process-wide reporter (built from environment settings)."""
    global _global_reporter
    with _global_lock:
        if _global_reporter is None:
            settings = AnalyticsSettings()
            _global_reporter = InferenceAnalytics(build_service(settings), settings=settings)
        return _global_reporter


def reset_reporter() -> None:
    """Drop the process-wide reporter, closing its service. Useful in tests."""
    global _global_reporter
    with _global_lock:
        if _global_reporter is not None:
            service = _global_reporter.service
            if isinstance(service, LocalAnalyticsService):
                service.close()
        _global_reporter = None


def inference_model_set(
    model: Any,
    behavior_name: str,
    inference_device: InferenceDevice,
    sensors: Sequence[SensorSpec],
    action_spec: ActionSpec,
) -> None:
    """Report to the process-wide reporter. Never raises."""
    try:
        reporter = get_reporter()
    except Exception as e:
        _logger.debug(f"Inference analytics unavailable: {e}")
        return
    reporter.inference_model_set(model, behavior_name, inference_device, sensors, action_spec)


__all__ = [
    "InferenceAnalytics",
    "ReportResult",
    "build_inference_event",
    "runtime_package_version",
    "get_reporter",
    "reset_reporter",
    "inference_model_set",
]
