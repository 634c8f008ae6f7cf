"""Augur - Inference model analytics.

Augur reports anonymous usage telemetry when a neural-network inference
model is attached to an agent: the model's fingerprint and weight size,
its producer metadata, the agent's action and observation spaces, and the
inference device. Each model instance is reported at most once.

Subpackages:
- contracts: Data contracts (models, agent specs, events)
- analytics: Settings, output backends, analytics service, reporter
"""

__version__ = "0.3.0"

from augur.contracts import (
    ActionSpec,
    InferenceDevice,
    InferenceEvent,
    Layer,
    Model,
    SensorSpec,
)
from augur.fingerprint import model_hash, model_weight_size

__all__ = [
    "ActionSpec",
    "InferenceDevice",
    "InferenceEvent",
    "Layer",
    "Model",
    "SensorSpec",
    "model_hash",
    "model_weight_size",
]
