"""Model loaders - resolve a model handle to the layer-sequence view.

Accepted handles:
    - Model: returned as-is.
    - torch.nn.Module: its state dict is converted.
    - Mapping[str, Tensor]: treated as a state dict.
    - str | Path: a checkpoint loaded with torch.load. The checkpoint may be
      a state dict or a dict with a "state_dict" or "model_state_dict"
      entry. Only tensor checkpoints are read (weights_only loading).

Tensors are grouped into layers by their owner prefix ("encoder.0.weight"
and "encoder.0.bias" both belong to layer "encoder.0"), preserving state
dict order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import torch
import torch.nn as nn

from augur.contracts import Dataset, Layer, Model

_logger = logging.getLogger(__name__)

MEMORY_SIZE_TENSOR = "memory_size"
_CHECKPOINT_STATE_KEYS = ("state_dict", "model_state_dict")


def load_model(handle: Any) -> Model:
    """Resolve ``handle`` to a Model.

    Raises:
        TypeError: If the handle type is not supported.
        FileNotFoundError: If a checkpoint path does not exist.
    """
    if isinstance(handle, Model):
        return handle
    if isinstance(handle, nn.Module):
        return model_from_state_dict(
            handle.state_dict(),
            producer_name=type(handle).__name__,
        )
    if isinstance(handle, (str, Path)):
        return load_checkpoint(handle)
    if isinstance(handle, Mapping):
        return model_from_state_dict(handle)
    raise TypeError(f"Cannot load model from handle of type {type(handle).__name__}")


def load_checkpoint(path: str | Path) -> Model:
    """Load a checkpoint from disk (CPU only, tensors only)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model checkpoint not found: {path}")

    obj = torch.load(path, map_location="cpu", weights_only=True)
    if not isinstance(obj, Mapping):
        raise TypeError(f"Checkpoint {path} does not contain a state dict")

    state_dict = obj
    for key in _CHECKPOINT_STATE_KEYS:
        nested = obj.get(key)
        if isinstance(nested, Mapping):
            state_dict = nested
            break

    model = model_from_state_dict(state_dict, producer_name=path.suffix.lstrip("."))
    _logger.debug(f"Loaded {path}: {len(model.layers)} layers")
    return model


def model_from_state_dict(
    state_dict: Mapping[str, Any],
    producer_name: str = "",
) -> Model:
    """Build a Model from a name -> tensor mapping.

    Floating-point tensors are flattened to float32 and concatenated into
    the owning layer's weight buffer. Every tensor (float or not) gets a
    Dataset whose length is its size in bytes. Non-tensor entries are
    ignored.
    """
    grouped: dict[str, list[tuple[str, torch.Tensor]]] = {}
    memory_size = 0

    for key, value in state_dict.items():
        if not isinstance(value, torch.Tensor):
            continue
        owner, _, leaf = key.rpartition(".")
        if leaf == MEMORY_SIZE_TENSOR and value.numel() == 1:
            memory_size = int(value.item())
        grouped.setdefault(owner or leaf, []).append((key, value))

    layers = [_build_layer(name, tensors) for name, tensors in grouped.items()]
    return Model(
        layers=layers,
        ir_source="torch",
        ir_version=torch.__version__,
        producer_name=producer_name,
        memory_size=memory_size,
    )


def _build_layer(name: str, tensors: list[tuple[str, torch.Tensor]]) -> Layer:
    datasets: list[Dataset] = []
    chunks: list[torch.Tensor] = []
    offset = 0

    for key, tensor in tensors:
        tensor = tensor.detach()
        length = tensor.numel() * tensor.element_size()
        if tensor.is_floating_point():
            datasets.append(Dataset(name=key, shape=tuple(tensor.shape), offset=offset, length=length))
            chunks.append(tensor.reshape(-1).to(device="cpu", dtype=torch.float32))
            offset += tensor.numel()
        else:
            datasets.append(Dataset(name=key, shape=tuple(tensor.shape), offset=-1, length=length))

    weights = torch.cat(chunks) if chunks else torch.empty(0, dtype=torch.float32)
    return Layer(name=name, weights=weights, datasets=tuple(datasets))


__all__ = ["load_model", "load_checkpoint", "model_from_state_dict", "MEMORY_SIZE_TENSOR"]
