"""Contracts - shared data types for Augur.

Everything that crosses a module boundary lives here: the layer-sequence
model view, agent specs, and the analytics event payload.
"""

from augur.contracts.model import Dataset, Layer, Model
from augur.contracts.specs import (
    ActionSpec,
    CompressionType,
    DimensionProperty,
    InferenceDevice,
    ObservationSpec,
    ObservationType,
    SensorSpec,
)
from augur.contracts.events import (
    AnalyticsEnvelope,
    EventActionSpec,
    EventObservationDimensionInfo,
    EventObservationSpec,
    InferenceEvent,
)

__all__ = [
    # Model
    "Dataset",
    "Layer",
    "Model",
    # Specs
    "ActionSpec",
    "CompressionType",
    "DimensionProperty",
    "InferenceDevice",
    "ObservationSpec",
    "ObservationType",
    "SensorSpec",
    # Events
    "AnalyticsEnvelope",
    "EventActionSpec",
    "EventObservationDimensionInfo",
    "EventObservationSpec",
    "InferenceEvent",
]
