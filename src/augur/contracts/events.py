"""Analytics event contracts.

InferenceEvent is the payload sent when a model is set up for inference;
AnalyticsEnvelope wraps an accepted payload for delivery to output backends.
The Event* helpers are flattened, JSON-friendly snapshots of the agent
specs in ``augur.contracts.specs``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from augur.contracts.specs import ActionSpec, SensorSpec


@dataclass(frozen=True, slots=True)
class EventActionSpec:
    num_continuous_actions: int
    num_discrete_actions: int
    branch_sizes: tuple[int, ...]

    @classmethod
    def from_action_spec(cls, action_spec: ActionSpec) -> EventActionSpec:
        return cls(
            num_continuous_actions=action_spec.num_continuous_actions,
            num_discrete_actions=action_spec.num_discrete_actions,
            branch_sizes=tuple(action_spec.branch_sizes),
        )


@dataclass(frozen=True, slots=True)
class EventObservationDimensionInfo:
    size: int
    flags: int


@dataclass(frozen=True, slots=True)
class EventObservationSpec:
    sensor_name: str
    compression_type: str
    observation_type: int
    dimension_infos: tuple[EventObservationDimensionInfo, ...]

    @classmethod
    def from_sensor(cls, sensor: SensorSpec) -> EventObservationSpec:
        spec = sensor.observation_spec
        dim_infos = tuple(
            EventObservationDimensionInfo(size=size, flags=int(spec.property_at(i)))
            for i, size in enumerate(spec.shape)
        )
        return cls(
            sensor_name=sensor.name,
            compression_type=sensor.compression_type.name,
            observation_type=int(spec.observation_type),
            dimension_infos=dim_infos,
        )


@dataclass(frozen=True, slots=True)
class InferenceEvent:
    """Snapshot sent once per model instance when it is set for inference.

    Attributes:
        behavior_name: Behavior name of the agent using the model.
        model_source: Format the model was imported from.
        model_version: Version of that format.
        model_producer: Tool that produced the model file.
        memory_size: Recurrent memory size of the model.
        inference_device: InferenceDevice value (int).
        action_spec: Action space of the agent.
        observation_specs: One entry per sensor, in sensor order.
        total_weight_size_bytes: Sum of declared dataset sizes.
        model_hash: Decimal FNV fingerprint of the model.
        runtime_package_version: Version of the model runtime (torch).
        augur_version: Version of this package.
    """

    behavior_name: str
    model_source: str
    model_version: str
    model_producer: str
    memory_size: int
    inference_device: int
    action_spec: EventActionSpec
    observation_specs: tuple[EventObservationSpec, ...] = field(default_factory=tuple)
    total_weight_size_bytes: int = 0
    model_hash: str = ""
    runtime_package_version: str = "unknown"
    augur_version: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready payload. Tuples become lists."""
        return _listify(asdict(self))

    def element_count(self) -> int:
        """Number of leaf values in the payload."""
        return _count_leaves(self.to_dict())


def _listify(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _listify(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_listify(item) for item in value]
    return value


def _count_leaves(value: Any) -> int:
    if isinstance(value, dict):
        return sum(_count_leaves(item) for item in value.values())
    if isinstance(value, list):
        return sum(_count_leaves(item) for item in value)
    return 1


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class AnalyticsEnvelope:
    """An event accepted by the analytics service, on its way to backends."""

    event_name: str
    vendor_key: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=_utc_now)


__all__ = [
    "AnalyticsEnvelope",
    "EventActionSpec",
    "EventObservationDimensionInfo",
    "EventObservationSpec",
    "InferenceEvent",
]
