"""Model fingerprinting.

Reduces a Model to a short deterministic digest and a total weight size:

- model_hash: 64-bit FNV hash over each layer's name followed by the first
  MAX_HASHED_FLOATS weights of that layer (little-endian float32 bytes).
- model_weight_size: sum of the declared byte lengths of every dataset.

Only a prefix of each layer's weights is hashed so cost stays bounded on
large models. The digest is for telemetry grouping, not integrity.

See https://en.wikipedia.org/wiki/Fowler%E2%80%93Noll%E2%80%93Vo_hash_function
"""

from __future__ import annotations

from itertools import islice
from typing import Any

import numpy as np
import torch

from augur.contracts import Layer, Model

FNV_PRIME = 1099511628211
FNV_OFFSET_BASIS = 14695981039346656037
MAX_HASHED_FLOATS = 256

_MASK_64 = 0xFFFFFFFFFFFFFFFF


class FNVHash:
    """Streaming 64-bit FNV accumulator.

    Each byte multiplies the state by FNV_PRIME (mod 2**64), then XORs the
    byte in.
    """

    __slots__ = ("hash",)

    def __init__(self) -> None:
        self.hash = FNV_OFFSET_BASIS

    def update(self, data: bytes) -> None:
        h = self.hash
        for b in data:
            h = ((h * FNV_PRIME) & _MASK_64) ^ b
        self.hash = h

    def append(self, value: str) -> None:
        """Absorb the UTF-8 bytes of a string. Lone surrogates are encoded as-is."""
        self.update(value.encode("utf-8", "surrogatepass"))

    def append_floats(self, values: Any, count: int) -> None:
        """Absorb the first ``count`` values as little-endian float32 bytes."""
        if values is None or count <= 0:
            return
        self.update(_float32_bytes(values, count))

    def hexdigest(self) -> str:
        return f"{self.hash:016x}"

    def __str__(self) -> str:
        return str(self.hash)


def _float32_bytes(values: Any, count: int) -> bytes:
    if isinstance(values, torch.Tensor):
        sample = values.detach().reshape(-1)[:count].to(device="cpu", dtype=torch.float32).numpy()
    elif isinstance(values, np.ndarray):
        sample = values.reshape(-1)[:count]
    else:
        sample = np.fromiter(islice(values, count), dtype=np.float32, count=count)
    return sample.astype("<f4", copy=False).tobytes()


def layer_hash_count(layer: Layer, max_floats: int = MAX_HASHED_FLOATS) -> int:
    """Number of weights of ``layer`` that participate in the digest."""
    return min(layer.num_weights, max_floats)


def model_hash(model: Model, max_floats: int = MAX_HASHED_FLOATS) -> str:
    """Compute the decimal FNV fingerprint of a model.

    Layers are visited in order; for each, the name is absorbed and then
    at most ``max_floats`` weights. A missing weight buffer is treated as
    empty. An empty model yields the offset basis.
    """
    fnv = FNVHash()
    for layer in model.layers:
        fnv.append(layer.name)
        fnv.append_floats(layer.weights, layer_hash_count(layer, max_floats))
    return str(fnv)


def model_weight_size(model: Model) -> int:
    """Total declared weight size in bytes.

    Sums dataset lengths across all layers. This reflects the whole model,
    not the hashed prefix, and ignores the weight values themselves.
    """
    total = 0
    for layer in model.layers:
        for dataset in layer.datasets:
            total += dataset.length
    return total


__all__ = [
    "FNV_PRIME",
    "FNV_OFFSET_BASIS",
    "MAX_HASHED_FLOATS",
    "FNVHash",
    "layer_hash_count",
    "model_hash",
    "model_weight_size",
]
