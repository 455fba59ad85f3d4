from __future__ import annotations

import asyncio
from typing import Sequence

import pytest

from rhi.config import RunConfig, TargetConfig
from rhi.loadgen.client import HttpResponse


class FakeExecutor:
    """In-process HttpExecutor counting every request it is asked to send."""

    def __init__(self, status_code: int = 200, delay: float = 0.0, error: Exception | None = None) -> None:
        self.status_code = status_code
        self.delay = delay
        self.error = error
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(
        self,
        method: str,
        url: str,
        headers: Sequence[tuple[str, str]],
        body: bytes | None,
        timeout: float | None,
    ) -> HttpResponse:
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return HttpResponse(status_code=self.status_code, size_bytes=2)
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_executor() -> type[FakeExecutor]:
    return FakeExecutor


@pytest.fixture
def make_config():
    def _make(requests: int = 10, concurrency: int = 2, **kwargs) -> RunConfig:
        target_kwargs = {
            key: kwargs.pop(key)
            for key in list(kwargs)
            if key in {"method", "timeout_sec", "headers", "body", "compression", "keep_alive"}
        }
        target = TargetConfig(url="http://test.local/", **target_kwargs)
        return RunConfig(target=target, requests=requests, concurrency=concurrency, **kwargs)

    return _make
