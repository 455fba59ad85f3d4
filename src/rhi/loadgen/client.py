from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Protocol, Sequence

import httpx
import structlog

from rhi.config import RunConfig
from rhi.errors import TransportError
from rhi.loadgen.request import PreparedRequest
from rhi.metrics import ErrorType, Failure, RequestOutcome, Success

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status_code: int
    size_bytes: int


class HttpExecutor(Protocol):
    async def execute(
        self,
        method: str,
        url: str,
        headers: Sequence[tuple[str, str]],
        body: bytes | None,
        timeout: float | None,
    ) -> HttpResponse:
        """Send one request; raise TransportError if no response arrives."""
        ...


class HttpxExecutor:
    """Closes the client on ``aclose`` only if it created it."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        concurrency: int = 50,
        keep_alive: bool = True,
        proxy: str | None = None,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            limits = httpx.Limits(
                max_connections=concurrency,
                max_keepalive_connections=concurrency if keep_alive else 0,
            )
            client = httpx.AsyncClient(limits=limits, proxy=proxy)
        self._client = client

    @classmethod
    def for_config(cls, config: RunConfig) -> HttpxExecutor:
        return cls(
            concurrency=config.concurrency,
            keep_alive=config.target.keep_alive,
            proxy=config.target.proxy,
        )

    async def execute(
        self,
        method: str,
        url: str,
        headers: Sequence[tuple[str, str]],
        body: bytes | None,
        timeout: float | None,
    ) -> HttpResponse:
        try:
            resp = await self._client.request(
                method,
                url,
                headers=list(headers),
                content=body,
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(ErrorType.TIMEOUT, str(exc)) from exc
        except httpx.ConnectError as exc:
            raise TransportError(ErrorType.CONNECT, str(exc)) from exc
        except httpx.ReadError as exc:
            raise TransportError(ErrorType.READ, str(exc)) from exc
        except httpx.WriteError as exc:
            raise TransportError(ErrorType.WRITE, str(exc)) from exc
        except httpx.ProtocolError as exc:
            raise TransportError(ErrorType.PROTOCOL, str(exc)) from exc
        except httpx.HTTPError as exc:
            raise TransportError(ErrorType.OTHER, str(exc)) from exc
        return HttpResponse(status_code=resp.status_code, size_bytes=len(resp.content or b""))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxExecutor:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


async def send_request(executor: HttpExecutor, request: PreparedRequest) -> RequestOutcome:
    start_mono = time.perf_counter()
    try:
        # The client's own timeout is per phase; this bounds the whole call.
        resp = await asyncio.wait_for(
            executor.execute(
                request.method,
                request.url,
                request.headers,
                request.body,
                request.timeout,
            ),
            timeout=request.timeout,
        )
    except asyncio.TimeoutError:
        err = ErrorType.TIMEOUT
    except TransportError as exc:
        err = exc.kind
        log.debug("request_failed", error_type=err.value, error=str(exc))
    else:
        latency_ms = (time.perf_counter() - start_mono) * 1000.0
        return Success(status_code=resp.status_code, latency_ms=latency_ms, size_bytes=resp.size_bytes)
    latency_ms = (time.perf_counter() - start_mono) * 1000.0
    return Failure(error_type=err, latency_ms=latency_ms)
