from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rhi.metrics.models import ErrorType


class ConfigurationError(ValueError):
    """Raised for a run configuration the engine refuses to start with."""


class TransportError(Exception):
    """A request that never produced an HTTP response."""

    def __init__(self, kind: ErrorType, message: str = "") -> None:
        self.kind = kind
        super().__init__(message or kind.value)


class RunCancelledError(Exception):
    """A worker was released from a blocking wait because the run was cancelled."""
