from __future__ import annotations

from rhi.metrics.aggregator import ResultAggregator
from rhi.metrics.models import ErrorType, Failure, HistogramBucket, Report, RequestOutcome, Success
from rhi.metrics.reservoir import LatencyReservoir

__all__ = [
    "ErrorType",
    "Failure",
    "HistogramBucket",
    "LatencyReservoir",
    "Report",
    "RequestOutcome",
    "ResultAggregator",
    "Success",
]
