"""Model contracts - the layer-sequence view of an inference model.

A Model is what the fingerprint engine consumes: an ordered sequence of
named layers, each carrying a float32 weight buffer and the datasets that
back it. Loaders (see ``augur.loaders``) resolve framework objects into
this shape.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import torch


@dataclass(frozen=True, slots=True)
class Dataset:
    """A named tensor backing a layer.

    Attributes:
        name: Fully-qualified tensor name (e.g. "encoder.0.weight").
        shape: Tensor shape.
        offset: Offset of this tensor within the layer's weight buffer,
            in elements. -1 when the tensor is not part of the buffer
            (non-float tensors).
        length: Declared size of the tensor in bytes.
    """

    name: str
    shape: tuple[int, ...] = ()
    offset: int = 0
    length: int = 0

    def __post_init__(self) -> None:
        if self.length < 0:
            raise ValueError(f"Dataset length must be non-negative, got {self.length}")


@dataclass(eq=False, slots=True)
class Layer:
    """A single named layer.

    ``weights`` may be any ordered sequence of floats (list, numpy array,
    CPU tensor) or None. A missing buffer is treated as empty.
    """

    name: str
    weights: Sequence[float] | Any | None = None
    datasets: tuple[Dataset, ...] = ()

    @property
    def num_weights(self) -> int:
        if self.weights is None:
            return 0
        if isinstance(self.weights, torch.Tensor):
            return self.weights.numel()
        if isinstance(self.weights, np.ndarray):
            return int(self.weights.size)
        return len(self.weights)


@dataclass(eq=False, slots=True)
class Model:
    """An inference model as an ordered sequence of layers.

    Equality is identity: two structurally identical models loaded
    separately are distinct models.

    Attributes:
        layers: Layers in execution order.
        ir_source: Format the model was imported from (e.g. "torch", "onnx").
        ir_version: Version of the source format.
        producer_name: Tool that produced the model file.
        memory_size: Recurrent memory size declared by the model, 0 if none.
    """

    layers: list[Layer] = field(default_factory=list)
    ir_source: str = ""
    ir_version: str = ""
    producer_name: str = ""
    memory_size: int = 0

    @property
    def layer_names(self) -> list[str]:
        return [layer.name for layer in self.layers]


__all__ = ["Dataset", "Layer", "Model"]
