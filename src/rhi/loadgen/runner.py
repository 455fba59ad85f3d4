from __future__ import annotations

import asyncio
import time
import uuid
from typing import Awaitable, Callable, Iterable

import structlog

from rhi.config import RunConfig
from rhi.errors import RunCancelledError
from rhi.loadgen.budget import RequestBudget
from rhi.loadgen.client import HttpExecutor, HttpxExecutor, send_request
from rhi.loadgen.limiter import RateLimiter
from rhi.loadgen.request import build_request
from rhi.metrics import ErrorType, Failure, Report, ResultAggregator

log = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None]]

DEFAULT_GRACE_SEC = 1.0


def _new_run_id() -> str:
    return uuid.uuid4().hex


class Dispatcher:
    # Cancelling closes the budget; in-flight requests get grace_sec before being cut.
    def __init__(
        self,
        config: RunConfig,
        executor: HttpExecutor | None = None,
        progress: ProgressCallback | None = None,
        grace_sec: float = DEFAULT_GRACE_SEC,
    ) -> None:
        self.config = config
        self.run_id = config.run_id or _new_run_id()
        self.grace_sec = grace_sec
        self._executor = executor
        self._progress = progress
        self._stop = asyncio.Event()
        self._budget = RequestBudget(config.requests)
        self._limiter = RateLimiter(config.rate_limit, stop=self._stop)
        self._aggregator = ResultAggregator(
            self.run_id,
            config.requests,
            policy=config.success_policy,
            reservoir_size=config.reservoir_size,
            seed=config.seed,
        )
        self._log = log.bind(run_id=self.run_id)
        self._started = False

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def cancel(self) -> None:
        """Stop handing out work. Must be called from the event loop's thread."""
        if self._stop.is_set():
            return
        self._budget.close()
        self._stop.set()
        self._log.info(
            "run_cancelled",
            completed=self._aggregator.completed,
            remaining=self._budget.remaining,
        )

    async def run(self) -> Report:
        if self._started:
            msg = f"Run {self.run_id} already started"
            raise RuntimeError(msg)
        self._started = True
        self._log.info("run_started", **self.config.to_metadata())
        if self._executor is not None:
            return await self._execute(self._executor)
        async with HttpxExecutor.for_config(self.config) as executor:
            return await self._execute(executor)

    async def _execute(self, executor: HttpExecutor) -> Report:
        loop = asyncio.get_running_loop()
        deadline = None
        if self.config.max_duration_sec is not None:
            deadline = loop.call_later(self.config.max_duration_sec, self.cancel)
        self._aggregator.start()
        tasks = [
            asyncio.create_task(self._worker(executor), name=f"rhi-worker-{i}")
            for i in range(self.config.concurrency)
        ]
        try:
            await self._wait(tasks)
        finally:
            if deadline is not None:
                deadline.cancel()
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        report = self._aggregator.finalize(workers=len(tasks), cancelled=self.cancelled)
        self._log.info(
            "run_finished",
            total=report.total,
            succeeded=report.succeeded,
            failed=report.failed,
            elapsed_sec=round(report.elapsed_sec, 3),
            cancelled=report.cancelled,
        )
        return report

    async def _wait(self, tasks: list[asyncio.Task[None]]) -> None:
        stopper = asyncio.create_task(self._stop.wait())
        pending: set[asyncio.Future[object]] = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(
                    pending | {stopper},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                pending.discard(stopper)
                self._raise_for_crash(done - {stopper})
                if stopper in done:
                    break
            if pending:
                _, late = await asyncio.wait(pending, timeout=self.grace_sec)
                for task in late:
                    task.cancel()
                await asyncio.gather(*late, return_exceptions=True)
        finally:
            stopper.cancel()
        self._raise_for_crash(tasks)

    def _raise_for_crash(self, tasks: Iterable[asyncio.Future[object]]) -> None:
        for task in tasks:
            if task.done() and not task.cancelled() and task.exception() is not None:
                exc = task.exception()
                self._log.error("worker_crashed", error=repr(exc))
                raise exc

    async def _worker(self, executor: HttpExecutor) -> None:
        request = build_request(self.config.target)
        while self._budget.claim():
            try:
                await self._limiter.acquire()
            except RunCancelledError:
                return
            start_mono = time.perf_counter()
            try:
                outcome = await send_request(executor, request)
            except asyncio.CancelledError:
                latency_ms = (time.perf_counter() - start_mono) * 1000.0
                self._aggregator.record(Failure(error_type=ErrorType.CANCELLED, latency_ms=latency_ms))
                raise
            self._aggregator.record(outcome)
            if self._progress is not None:
                await self._progress(self._aggregator.completed, self.config.requests)


async def run_load(
    config: RunConfig,
    executor: HttpExecutor | None = None,
    progress: ProgressCallback | None = None,
) -> Report:
    return await Dispatcher(config, executor=executor, progress=progress).run()
