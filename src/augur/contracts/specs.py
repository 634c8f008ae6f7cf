"""Agent specs - action space, observation space and inference device.

These mirror what an agent declares when a policy model is attached to it.
They are plain value types; ``augur.contracts.events`` flattens them into
the shapes that go on the wire.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag

import torch


class InferenceDevice(IntEnum):
    """Device the policy model runs inference on."""

    CPU = 0
    GPU = 1
    BURST = 2

    @classmethod
    def from_torch_device(cls, device: torch.device | str) -> InferenceDevice:
        """Map a torch device (or device string) to an InferenceDevice.

        Raises:
            ValueError: If the device type has no InferenceDevice equivalent.
        """
        device = torch.device(device)
        if device.type == "cpu":
            return cls.CPU
        if device.type in ("cuda", "mps", "xpu"):
            return cls.GPU
        raise ValueError(f"Unsupported inference device type: {device.type!r}")


class DimensionProperty(IntFlag):
    """Properties of a single observation dimension."""

    UNSPECIFIED = 0
    NONE = 1
    TRANSLATIONAL_EQUIVARIANCE = 2
    VARIABLE_SIZE = 4


class ObservationType(IntEnum):
    DEFAULT = 0
    GOAL_SIGNAL = 1


class CompressionType(IntEnum):
    NONE = 0
    PNG = 1


@dataclass(frozen=True, slots=True)
class ActionSpec:
    """Action space of an agent: continuous actions plus discrete branches."""

    num_continuous_actions: int = 0
    branch_sizes: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if self.num_continuous_actions < 0:
            raise ValueError(
                f"num_continuous_actions must be non-negative, got {self.num_continuous_actions}"
            )
        for size in self.branch_sizes:
            if size <= 0:
                raise ValueError(f"Discrete branch sizes must be positive, got {self.branch_sizes}")

    @classmethod
    def make_continuous(cls, num_actions: int) -> ActionSpec:
        return cls(num_continuous_actions=num_actions)

    @classmethod
    def make_discrete(cls, *branch_sizes: int) -> ActionSpec:
        return cls(branch_sizes=tuple(branch_sizes))

    @property
    def num_discrete_actions(self) -> int:
        return len(self.branch_sizes)

    @property
    def sum_of_discrete_branch_sizes(self) -> int:
        return sum(self.branch_sizes)


@dataclass(frozen=True, slots=True)
class ObservationSpec:
    """Shape and semantics of one sensor's observation.

    When ``dimension_properties`` is empty every dimension is UNSPECIFIED.
    """

    shape: tuple[int, ...]
    dimension_properties: tuple[DimensionProperty, ...] = ()
    observation_type: ObservationType = ObservationType.DEFAULT

    def __post_init__(self) -> None:
        if self.dimension_properties and len(self.dimension_properties) != len(self.shape):
            raise ValueError(
                f"dimension_properties has {len(self.dimension_properties)} entries "
                f"but shape has {len(self.shape)} dimensions"
            )

    @classmethod
    def vector(cls, length: int, observation_type: ObservationType = ObservationType.DEFAULT) -> ObservationSpec:
        return cls(
            shape=(length,),
            dimension_properties=(DimensionProperty.NONE,),
            observation_type=observation_type,
        )

    @classmethod
    def visual(cls, height: int, width: int, channels: int) -> ObservationSpec:
        return cls(
            shape=(height, width, channels),
            dimension_properties=(
                DimensionProperty.TRANSLATIONAL_EQUIVARIANCE,
                DimensionProperty.TRANSLATIONAL_EQUIVARIANCE,
                DimensionProperty.NONE,
            ),
        )

    @property
    def rank(self) -> int:
        return len(self.shape)

    def property_at(self, dim: int) -> DimensionProperty:
        if not self.dimension_properties:
            return DimensionProperty.UNSPECIFIED
        return self.dimension_properties[dim]


@dataclass(frozen=True, slots=True)
class SensorSpec:
    """A sensor attached to an agent, as seen by analytics."""

    name: str
    observation_spec: ObservationSpec = field(default_factory=lambda: ObservationSpec(shape=()))
    compression_type: CompressionType = CompressionType.NONE


__all__ = [
    "InferenceDevice",
    "DimensionProperty",
    "ObservationType",
    "CompressionType",
    "ActionSpec",
    "ObservationSpec",
    "SensorSpec",
]
