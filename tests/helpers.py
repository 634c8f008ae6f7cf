"""Shared helpers for tests.

Keep this module small and dependency-light. It holds the analytics test
doubles and reference implementations used across suites.
"""

from __future__ import annotations

import struct

from augur.analytics.output import OutputBackend
from augur.analytics.service import AnalyticsResult

FNV_PRIME = 1099511628211
FNV_OFFSET_BASIS = 14695981039346656037


def reference_fnv(data: bytes, start: int = FNV_OFFSET_BASIS) -> int:
    """64-bit FNV: multiply by the prime, then XOR each byte. Independent of augur.fingerprint."""
    h = start
    for b in data:
        h = (h * FNV_PRIME) % 2**64
        h ^= b
    return h


def reference_model_hash(layers: list[tuple[str, list[float]]], max_floats: int = 256) -> str:
    """Digest of (name, weights) pairs computed with struct packing."""
    h = FNV_OFFSET_BASIS
    for name, weights in layers:
        h = reference_fnv(name.encode("utf-8"), h)
        sample = list(weights[:max_floats])
        h = reference_fnv(struct.pack(f"<{len(sample)}f", *sample), h)
    return str(h)


class CollectingBackend(OutputBackend):
    """Backend that keeps every envelope it receives."""

    def __init__(self):
        self.envelopes = []
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def emit(self, envelope):
        self.envelopes.append(envelope)

    def close(self):
        self.closed = True


class RecordingService:
    """AnalyticsService double that records every call."""

    def __init__(
        self,
        enabled=True,
        register_result=AnalyticsResult.OK,
        send_result=AnalyticsResult.OK,
    ):
        self.enabled = enabled
        self.register_result = register_result
        self.send_result = send_result
        self.enabled_calls = 0
        self.register_calls = []
        self.sent = []

    def is_enabled(self):
        self.enabled_calls += 1
        return self.enabled

    def register_event_with_limit(self, event_name, max_events_per_hour, max_number_of_elements, vendor_key):
        self.register_calls.append((event_name, max_events_per_hour, max_number_of_elements, vendor_key))
        return self.register_result

    def send_event_with_limit(self, event_name, event):
        self.sent.append((event_name, event))
        return self.send_result

