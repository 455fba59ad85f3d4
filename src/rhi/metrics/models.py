from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union


class ErrorType(str, Enum):
    TIMEOUT = "timeout"
    CONNECT = "connect"
    READ = "read"
    WRITE = "write"
    PROTOCOL = "protocol"
    CANCELLED = "cancelled"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class Success:
    """A request that got an HTTP response, whatever its status code."""

    status_code: int
    latency_ms: float
    size_bytes: int


@dataclass(frozen=True, slots=True)
class Failure:
    error_type: ErrorType
    latency_ms: float


RequestOutcome = Union[Success, Failure]


@dataclass(frozen=True, slots=True)
class HistogramBucket:
    mark_ms: float
    count: int


def _empty_mapping() -> Mapping[Any, Any]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Report:
    """``succeeded``/``failed`` follow the run's success policy."""

    run_id: str
    requested: int
    workers: int
    total: int
    succeeded: int
    failed: int
    elapsed_sec: float
    requests_per_sec: float
    latency_min_ms: float
    latency_max_ms: float
    latency_mean_ms: float
    p50_ms: float
    p90_ms: float
    p99_ms: float
    bytes_received: int
    cancelled: bool = False
    percentiles_ms: Mapping[int, float] = field(default_factory=_empty_mapping)
    histogram: tuple[HistogramBucket, ...] = ()
    status_codes: Mapping[int, int] = field(default_factory=_empty_mapping)
    error_types: Mapping[str, int] = field(default_factory=_empty_mapping)

    @property
    def size_per_request(self) -> float:
        responses = sum(self.status_codes.values())
        if responses == 0:
            return 0.0
        return self.bytes_received / responses
