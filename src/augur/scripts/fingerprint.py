#!/usr/bin/env python3
"""Fingerprint CLI - print the analytics fingerprint of a model checkpoint.

Usage:
    python -m augur.scripts.fingerprint models/policy.pt
    python -m augur.scripts.fingerprint models/policy.pt --json
    augur-fingerprint models/policy.pt --layers
"""

from __future__ import annotations

import argparse
import json
import logging
import pickle
import sys

from augur.analytics.config import AnalyticsSettings
from augur.fingerprint import MAX_HASHED_FLOATS, layer_hash_count, model_hash, model_weight_size
from augur.loaders import load_checkpoint

_logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fingerprint an inference model checkpoint")
    parser.add_argument("path", help="Checkpoint file (state dict) to fingerprint")
    parser.add_argument(
        "--max-floats",
        type=int,
        default=MAX_HASHED_FLOATS,
        help=f"Weights hashed per layer (default: {MAX_HASHED_FLOATS})",
    )
    parser.add_argument("--json", action="store_true", help="Print a JSON object")
    parser.add_argument("--layers", action="store_true", help="Also list layers")
    return parser


def describe(path: str, max_floats: int = MAX_HASHED_FLOATS, include_layers: bool = False) -> dict:
    model = load_checkpoint(path)
    info: dict = {
        "path": str(path),
        "model_hash": model_hash(model, max_floats=max_floats),
        "total_weight_size_bytes": model_weight_size(model),
        "num_layers": len(model.layers),
        "model_source": model.ir_source,
        "model_version": model.ir_version,
        "model_producer": model.producer_name,
        "memory_size": model.memory_size,
    }
    if include_layers:
        info["layers"] = [
            {
                "name": layer.name,
                "num_weights": layer.num_weights,
                "hashed_weights": layer_hash_count(layer, max_floats),
                "datasets": len(layer.datasets),
            }
            for layer in model.layers
        ]
    return info


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.max_floats < 0:
        parser.error("--max-floats must be non-negative")

    settings = AnalyticsSettings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    _logger.debug(f"Fingerprinting {args.path}")
    try:
        info = describe(args.path, max_floats=args.max_floats, include_layers=args.layers)
    except (OSError, EOFError, TypeError, ValueError, RuntimeError, pickle.UnpicklingError) as e:
        print(f"error: cannot fingerprint {args.path}: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(info, indent=2))
        return 0

    print(f"Model:   {info['path']}")
    print(f"Hash:    {info['model_hash']}")
    print(f"Weights: {info['total_weight_size_bytes']} bytes in {info['num_layers']} layers")
    print(f"Source:  {info['model_source']} {info['model_version']} ({info['model_producer'] or 'unknown'})")
    if info["memory_size"]:
        print(f"Memory:  {info['memory_size']}")
    for layer in info.get("layers", []):
        print(f"  {layer['name']}: {layer['num_weights']} weights ({layer['hashed_weights']} hashed)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
