"""Analytics output - backends that receive accepted analytics events.

The analytics service hands every accepted event to an AnalyticsHub, which
fans it out to the registered backends on background threads. Emission
never blocks the caller: when a queue is full the event is dropped.

Usage:
    from augur.analytics.output import AnalyticsHub, ConsoleOutput, FileOutput

    hub = AnalyticsHub()
    hub.add_backend(ConsoleOutput())
    hub.add_backend(FileOutput("analytics.jsonl"))

    hub.emit(envelope)
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, TextIO

from augur.contracts import AnalyticsEnvelope

_logger = logging.getLogger(__name__)


def envelope_to_dict(envelope: AnalyticsEnvelope) -> dict[str, Any]:
    """Serializable form of an envelope."""
    return {
        "event_id": envelope.event_id,
        "event_name": envelope.event_name,
        "vendor_key": envelope.vendor_key,
        "timestamp": envelope.timestamp.isoformat(),
        "payload": envelope.payload,
    }


class BackendWorker:
    """Worker thread that delivers envelopes to a single backend.

    Each backend gets its own bounded queue and thread so a slow backend
    (disk) cannot stall the others. enqueue() is safe to call from any
    thread.
    """

    def __init__(
        self,
        backend: "OutputBackend",
        max_queue_size: int = 100,
        name: str | None = None,
    ):
        self._backend = backend
        self._queue: queue.Queue[AnalyticsEnvelope | None] = queue.Queue(maxsize=max_queue_size)
        self._name = name or backend.__class__.__name__
        self._thread = threading.Thread(
            target=self._worker_loop,
            name=f"AnalyticsBackend-{self._name}",
            daemon=True,
        )
        self._stopped = False
        self._dropped_events = 0
        self._processed_events = 0
        self._total_processing_time = 0.0
        self._thread.start()

    @property
    def name(self) -> str:
        return self._name

    def enqueue(self, envelope: AnalyticsEnvelope) -> None:
        """Enqueue an envelope (non-blocking, drops when full)."""
        if self._stopped:
            return

        try:
            self._queue.put_nowait(envelope)
        except queue.Full:
            self._dropped_events += 1
            if self._dropped_events % 100 == 1:
                _logger.warning(
                    f"Backend {self._name} queue full, dropped {self._dropped_events} events"
                )

    def join(self) -> None:
        """Block until every enqueued envelope has been processed."""
        self._queue.join()

    def get_stats(self) -> dict[str, int | float]:
        """Delivery statistics for this worker.

        Returns:
            Processed and dropped counts, and the mean emit time in ms.
        """
        avg_time = (
            self._total_processing_time / self._processed_events
            if self._processed_events > 0
            else 0.0
        )
        return {
            "processed_events": self._processed_events,
            "dropped_events": self._dropped_events,
            "avg_processing_time_ms": avg_time * 1000,
        }

    def stop(self, timeout: float = 5.0) -> None:
        """Drain the queue, then stop the worker thread.

        _stopped is only set after the sentinel is queued so envelopes
        enqueued while draining are still delivered.
        """
        if self._stopped:
            return

        self._queue.join()
        try:
            self._queue.put(None, timeout=1.0)
        except queue.Full:
            _logger.warning(f"Backend {self._name} queue still full at shutdown")

        self._stopped = True

        if self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                _logger.warning(f"Backend worker {self._name} did not stop within {timeout}s")

    def _worker_loop(self) -> None:
        while True:
            try:
                envelope = self._queue.get(timeout=1.0)
            except queue.Empty:
                continue

            if envelope is None:  # Shutdown signal
                self._queue.task_done()
                break

            start_time = time.perf_counter()
            try:
                self._backend.emit(envelope)
                self._processed_events += 1
            except Exception as e:
                _logger.error(f"Error in analytics backend {self._name}: {e}")
            finally:
                self._total_processing_time += time.perf_counter() - start_time
                self._queue.task_done()


class OutputBackend(ABC):
    """Base class for analytics output backends."""

    def start(self) -> None:
        """Start the backend (e.g., open files)."""
        pass

    @abstractmethod
    def emit(self, envelope: AnalyticsEnvelope) -> None:
        """Deliver one envelope to this backend."""
        pass

    def close(self) -> None:
        """Close the backend and release resources."""
        pass


class ConsoleOutput(OutputBackend):
    """Print a one-line summary per analytics event.

    Args:
        verbose: If True, print the full JSON payload instead of a summary.
        stream: Destination stream (defaults to stdout).
    """

    def __init__(self, verbose: bool = False, stream: TextIO | None = None):
        self.verbose = verbose
        self._stream = stream

    def emit(self, envelope: AnalyticsEnvelope) -> None:
        stream = self._stream or sys.stdout
        if self.verbose:
            print(json.dumps(envelope_to_dict(envelope), indent=2, default=str), file=stream)
            return

        payload = envelope.payload
        timestamp = envelope.timestamp.strftime("%H:%M:%S")
        behavior = payload.get("behavior_name", "?")
        model_hash = payload.get("model_hash", "?")
        size = payload.get("total_weight_size_bytes", 0)
        print(
            f"[{timestamp}] {envelope.event_name} | behavior={behavior} "
            f"hash={model_hash} weights={size}B",
            file=stream,
        )


class FileOutput(OutputBackend):
    """Append analytics events to a file in JSONL format.

    Args:
        path: Output file. Created (with parents) if missing.
        buffer_size: Number of events to buffer before flushing to disk.
    """

    def __init__(self, path: str | Path, buffer_size: int = 10):
        self.path = Path(path)
        self.buffer_size = buffer_size
        self._buffer: list[dict[str, Any]] = []
        self._file: TextIO | None = None

    def start(self) -> None:
        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, "a", encoding="utf-8")

    def emit(self, envelope: AnalyticsEnvelope) -> None:
        self._buffer.append(envelope_to_dict(envelope))
        if len(self._buffer) >= self.buffer_size:
            self.flush()

    def flush(self) -> None:
        """Flush buffered events to disk."""
        if not self._buffer:
            return
        self.start()
        assert self._file is not None
        for record in self._buffer:
            self._file.write(json.dumps(record, default=str) + "\n")
        self._file.flush()
        self._buffer.clear()

    def close(self) -> None:
        self.flush()
        if self._file is not None and not self._file.closed:
            self._file.close()
        self._file = None


class AnalyticsHub:
    """Routes accepted analytics events to every registered backend.

    Events go into a bounded main queue; a fan-out thread copies each one
    into the per-backend worker queues.

    Lifecycle:
        - add_backend(): starts the backend; raises RuntimeError once closed
        - emit(): non-blocking; drops (with a warning) when full or closed
        - flush(): waits until all queued events reached their backends
        - close(): idempotent; drains queues and closes backends
        - reset(): close, forget backends, and reopen for reuse
    """

    def __init__(self, max_queue_size: int = 1000, backend_queue_size: int = 100):
        self._backends: list[OutputBackend] = []
        self._backend_workers: list[BackendWorker] = []
        self._backend_queue_size = backend_queue_size
        self._closed = False
        self._emit_after_close_warned = False
        self._queue: queue.Queue[AnalyticsEnvelope | None] = queue.Queue(maxsize=max_queue_size)
        self._worker_thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def backends(self) -> tuple[OutputBackend, ...]:
        return tuple(self._backends)

    @property
    def closed(self) -> bool:
        return self._closed

    def _start_worker(self) -> None:
        with self._lock:
            if self._worker_thread is None or not self._worker_thread.is_alive():
                self._worker_thread = threading.Thread(
                    target=self._worker_loop, name="AnalyticsHubWorker", daemon=True
                )
                self._worker_thread.start()

    def _worker_loop(self) -> None:
        while True:
            try:
                envelope = self._queue.get(timeout=1.0)
            except queue.Empty:
                continue

            if envelope is None:  # Shutdown signal
                self._queue.task_done()
                break

            for worker in list(self._backend_workers):
                worker.enqueue(envelope)
            self._queue.task_done()

    def add_backend(self, backend: OutputBackend) -> None:
        """Start ``backend`` and register it with its own worker thread.

        Raises:
            RuntimeError: If the hub has been closed. Use reset() to reopen.
            Exception: Whatever backend.start() raised, after logging it.
        """
        if self._closed:
            raise RuntimeError(
                "Cannot add backend to closed AnalyticsHub. "
                "Call reset() to reopen the hub before adding backends."
            )
        try:
            backend.start()
        except Exception:
            _logger.exception(f"Failed to start backend {backend.__class__.__name__}, not adding")
            raise

        self._backends.append(backend)
        self._backend_workers.append(
            BackendWorker(backend=backend, max_queue_size=self._backend_queue_size)
        )
        self._start_worker()

    def remove_backend(self, backend: OutputBackend) -> None:
        """Stop the backend's worker and close it.

        Pending envelopes are delivered first. Unknown backends are ignored.

        Args:
            backend: A backend previously passed to add_backend().
        """
        if backend not in self._backends:
            return
        idx = self._backends.index(backend)
        worker = self._backend_workers.pop(idx)
        worker.stop()
        self._backends.pop(idx)
        try:
            backend.close()
        except Exception as e:
            _logger.error(f"Error closing backend {backend.__class__.__name__}: {e}")

    def emit(self, envelope: AnalyticsEnvelope) -> bool:
        """Queue an envelope for delivery.

        Returns:
            True if the envelope was queued, False if it was dropped.
        """
        if self._closed:
            if not self._emit_after_close_warned:
                _logger.warning("emit() called on closed AnalyticsHub (event dropped)")
                self._emit_after_close_warned = True
            return False

        try:
            self._queue.put_nowait(envelope)
        except queue.Full:
            _logger.warning("AnalyticsHub queue full, dropping analytics event")
            return False
        return True

    def flush(self) -> None:
        """Block until queued envelopes have been processed by every backend."""
        if self._closed:
            return
        if self._worker_thread is None or not self._worker_thread.is_alive():
            return

        self._queue.join()
        for worker in self._backend_workers:
            worker.join()

    def get_backend_stats(self) -> dict[str, dict[str, int | float]]:
        """Statistics for every backend worker.

        Returns:
            Mapping of backend name to its BackendWorker.get_stats() result.
        """
        return {worker.name: worker.get_stats() for worker in self._backend_workers}

    def reset(self) -> None:
        """Close the hub and reopen it with no backends.

        Not thread-safe; call only when nothing is emitting.
        """
        self.close()
        self._backends.clear()
        self._backend_workers.clear()
        self._closed = False
        self._emit_after_close_warned = False
        self._queue = queue.Queue(maxsize=self._queue.maxsize)
        self._worker_thread = None

    def close(self) -> None:
        """Drain pending events, stop workers and close backends (idempotent)."""
        if self._closed:
            return

        # Set first so nothing is enqueued behind the sentinel
        self._closed = True

        if self._worker_thread is not None and self._worker_thread.is_alive():
            self._queue.join()
            try:
                self._queue.put(None, timeout=2.0)
            except queue.Full:
                _logger.warning("AnalyticsHub queue full at shutdown")
            self._worker_thread.join(timeout=5.0)

        for worker in self._backend_workers:
            try:
                worker.stop(timeout=5.0)
            except Exception as e:
                _logger.error(f"Error stopping backend worker {worker.name}: {e}")

        for backend in self._backends:
            try:
                backend.close()
            except Exception as e:
                _logger.error(f"Error closing backend {backend.__class__.__name__}: {e}")


__all__ = [
    "OutputBackend",
    "ConsoleOutput",
    "FileOutput",
    "AnalyticsHub",
    "BackendWorker",
    "envelope_to_dict",
]
