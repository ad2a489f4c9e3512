"""CloudWatch custom metrics for outbound calls, batched in the background.

Every external collaborator of the agent (Anthropic, OpenAI embeddings,
Qdrant, the Piston sandbox) is wrapped in :meth:`MetricsClient.track`, which
records one request count, its latency and, on failure, the exception type.

Design
------
* Data points are buffered in memory behind a lock.
* With ``METRICS_ENABLED=true`` a daemon thread pushes the buffer to
  CloudWatch every ``FLUSH_INTERVAL_SECONDS``; otherwise data points are only
  logged at DEBUG level and discarded on flush.
* ``put_metric_data`` accepts at most ``MAX_BATCH_SIZE`` points per call.

Usage
-----
>>> from src.services.metrics import metrics
>>> with metrics.track("piston", "execute"):
...     sandbox.execute("python", script)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "SchedulingAgent"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Public API ────────────────────────────────────────────────────

    @contextmanager
    def track(self, service: str, operation: str) -> Iterator[None]:
        """Time the wrapped block and record it as a success or a failure.

        Exceptions are recorded and then re-raised untouched.
        """
        t0 = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.record_failure(
                service, operation,
                error_type=type(exc).__name__,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
            raise
        self.record_success(service, operation, latency_ms=(time.perf_counter() - t0) * 1000)

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a successful call."""
        dims = self._dimensions(service, operation)
        self._append_point("Calls/RequestCount", dims + [{"Name": "Status", "Value": "success"}], 1, "Count")
        self._append_point("Calls/Latency", dims, latency_ms, "Milliseconds")
        logger.debug("Metric: %s %s success latency=%.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed call; latency is only kept when it was measured."""
        dims = self._dimensions(service, operation)
        self._append_point("Calls/RequestCount", dims + [{"Name": "Status", "Value": "failure"}], 1, "Count")
        self._append_point("Calls/ErrorCount", dims + [{"Name": "ErrorType", "Value": error_type}], 1, "Count")
        if latency_ms > 0:
            self._append_point("Calls/Latency", dims, latency_ms, "Milliseconds")
        logger.debug(
            "Metric: %s %s failure error=%s latency=%.1fms",
            service, operation, error_type, latency_ms,
        )

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    # ── Internal ──────────────────────────────────────────────────────

    @staticmethod
    def _dimensions(service: str, operation: str) -> list[dict[str, str]]:
        return [
            {"Name": "Service", "Value": service},
            {"Name": "Operation", "Value": operation},
        ]

    def _append_point(
        self,
        name: str,
        dimensions: list[dict[str, str]],
        value: float,
        unit: str,
    ) -> None:
        point = {
            "MetricName": name,
            "Dimensions": dimensions,
            "Timestamp": datetime.now(UTC),
            "Value": value,
            "Unit": unit,
        }
        with self._lock:
            self._buffer.append(point)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
