from __future__ import annotations

import threading
import time
from collections import Counter
from types import MappingProxyType
from typing import Callable

import numpy as np

from rhi.config import SuccessPolicy
from rhi.metrics.models import Failure, HistogramBucket, Report, RequestOutcome, Success
from rhi.metrics.reservoir import LatencyReservoir

PERCENTILES = (10, 25, 50, 75, 90, 95, 99)
HISTOGRAM_BUCKETS = 10


class ResultAggregator:
    # Latency statistics cover responses only.

    def __init__(
        self,
        run_id: str,
        requested: int,
        policy: SuccessPolicy = SuccessPolicy.TRANSPORT,
        reservoir_size: int = 10_000,
        seed: int | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.run_id = run_id
        self.requested = requested
        self.policy = policy
        self._clock = clock
        self._lock = threading.Lock()
        self._reservoir = LatencyReservoir(reservoir_size, seed=seed)
        self._status_codes: Counter[int] = Counter()
        self._error_types: Counter[str] = Counter()
        self._succeeded = 0
        self._failed = 0
        self._bytes_received = 0
        self._latency_sum = 0.0
        self._latency_min = float("inf")
        self._latency_max = 0.0
        self._started: float | None = None
        self._finished: float | None = None

    @property
    def completed(self) -> int:
        with self._lock:
            return self._succeeded + self._failed

    def start(self) -> None:
        self._started = self._clock()

    def record(self, outcome: RequestOutcome) -> None:
        with self._lock:
            if isinstance(outcome, Success):
                self._record_response(outcome)
            elif isinstance(outcome, Failure):
                self._failed += 1
                self._error_types[outcome.error_type.value] += 1
            else:
                msg = f"Unknown outcome: {outcome!r}"
                raise TypeError(msg)

    def _record_response(self, outcome: Success) -> None:
        self._status_codes[outcome.status_code] += 1
        if self.policy is SuccessPolicy.STATUS_2XX and not 200 <= outcome.status_code < 300:
            self._failed += 1
        else:
            self._succeeded += 1
        self._bytes_received += outcome.size_bytes
        self._latency_sum += outcome.latency_ms
        self._latency_min = min(self._latency_min, outcome.latency_ms)
        self._latency_max = max(self._latency_max, outcome.latency_ms)
        self._reservoir.add(outcome.latency_ms)

    def finalize(self, workers: int, cancelled: bool = False) -> Report:
        """Build the Report. Only call once every worker has joined."""
        with self._lock:
            self._finished = self._clock()
            started = self._started if self._started is not None else self._finished
            elapsed = max(0.0, self._finished - started)
            total = self._succeeded + self._failed
            responses = self._reservoir.seen
            samples = self._reservoir.values()
            if samples.size:
                marks = np.percentile(samples, PERCENTILES)
                percentiles = {p: float(v) for p, v in zip(PERCENTILES, marks)}
                counts, edges = np.histogram(samples, bins=HISTOGRAM_BUCKETS)
                histogram = tuple(
                    HistogramBucket(mark_ms=float(edge), count=int(count))
                    for edge, count in zip(edges[1:], counts)
                )
            else:
                percentiles = {p: 0.0 for p in PERCENTILES}
                histogram = ()
            return Report(
                run_id=self.run_id,
                requested=self.requested,
                workers=workers,
                total=total,
                succeeded=self._succeeded,
                failed=self._failed,
                elapsed_sec=elapsed,
                requests_per_sec=total / elapsed if elapsed > 0 else 0.0,
                latency_min_ms=self._latency_min if responses else 0.0,
                latency_max_ms=self._latency_max,
                latency_mean_ms=self._latency_sum / responses if responses else 0.0,
                p50_ms=percentiles[50],
                p90_ms=percentiles[90],
                p99_ms=percentiles[99],
                bytes_received=self._bytes_received,
                cancelled=cancelled,
                percentiles_ms=MappingProxyType(percentiles),
                histogram=histogram,
                status_codes=MappingProxyType(dict(sorted(self._status_codes.items()))),
                error_types=MappingProxyType(dict(sorted(self._error_types.items()))),
            )
