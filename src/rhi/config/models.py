from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

import httpx

from rhi.errors import ConfigurationError

USER_AGENT = "rhi/0.1.0"
DEFAULT_CONTENT_TYPE = "text/html"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class SuccessPolicy(str, Enum):
    TRANSPORT = "transport"
    STATUS_2XX = "status_2xx"


@dataclass(frozen=True, slots=True)
class BasicAuth:
    username: str
    password: str

    @classmethod
    def parse(cls, raw: str) -> BasicAuth:
        username, sep, password = raw.partition(":")
        if not sep or not username:
            msg = f"Basic auth must be given as username:password, got {raw!r}"
            raise ConfigurationError(msg)
        return cls(username=username, password=password)


def _require_ascii(label: str, value: str) -> None:
    try:
        value.encode("ascii")
    except UnicodeEncodeError:
        msg = f"{label} must be ASCII, got {value!r}"
        raise ConfigurationError(msg) from None


def parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    name = name.strip()
    if not sep or not name:
        msg = f"Header must be given as 'Name: value', got {raw!r}"
        raise ConfigurationError(msg)
    value = value.strip()
    _require_ascii("Header name", name)
    _require_ascii("Header value", value)
    return name, value


@dataclass(frozen=True, slots=True)
class TargetConfig:
    url: str
    method: HttpMethod = HttpMethod.GET
    timeout_sec: float = 20.0
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes | None = None
    content_type: str = DEFAULT_CONTENT_TYPE
    accept: str | None = None
    host: str | None = None
    basic_auth: BasicAuth | None = None
    compression: bool = True
    keep_alive: bool = True
    proxy: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.method, HttpMethod):
            try:
                method = HttpMethod(str(self.method).upper())
            except ValueError:
                msg = f"Unsupported HTTP method: {self.method}"
                raise ConfigurationError(msg) from None
            object.__setattr__(self, "method", method)
        try:
            parsed = httpx.URL(self.url)
        except httpx.InvalidURL as exc:
            msg = f"Invalid target URL {self.url!r}: {exc}"
            raise ConfigurationError(msg) from None
        if parsed.scheme not in ("http", "https"):
            msg = f"Target URL must be http:// or https://, got {self.url!r}"
            raise ConfigurationError(msg)
        if not parsed.host:
            msg = f"Target URL has no host: {self.url!r}"
            raise ConfigurationError(msg)
        if self.timeout_sec < 0:
            msg = f"Timeout cannot be negative: {self.timeout_sec}"
            raise ConfigurationError(msg)
        headers = tuple((str(k), str(v)) for k, v in self.headers)
        for name, value in headers:
            _require_ascii("Header name", name)
            _require_ascii("Header value", value)
        for label, value in (("Accept", self.accept), ("Host", self.host), ("Content-Type", self.content_type)):
            if value is not None:
                _require_ascii(label, value)
        object.__setattr__(self, "headers", headers)

    @property
    def timeout(self) -> float | None:
        return self.timeout_sec if self.timeout_sec > 0 else None


@dataclass(frozen=True, slots=True)
class RunConfig:
    target: TargetConfig
    requests: int = 200
    concurrency: int = 50
    rate_limit: float = 0.0
    max_duration_sec: float | None = None
    success_policy: SuccessPolicy = SuccessPolicy.TRANSPORT
    reservoir_size: int = 10_000
    seed: int = 7
    run_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    notes: str = ""

    def __post_init__(self) -> None:
        if self.requests < 1:
            msg = f"Number of requests must be at least 1, got {self.requests}"
            raise ConfigurationError(msg)
        if self.concurrency < 1:
            msg = f"Concurrency must be at least 1, got {self.concurrency}"
            raise ConfigurationError(msg)
        if self.concurrency > self.requests:
            msg = (
                f"Number of requests ({self.requests}) cannot be smaller than "
                f"the concurrency level ({self.concurrency})"
            )
            raise ConfigurationError(msg)
        if self.rate_limit < 0:
            msg = f"Rate limit cannot be negative: {self.rate_limit}"
            raise ConfigurationError(msg)
        if self.max_duration_sec is not None and self.max_duration_sec <= 0:
            msg = f"Run duration must be positive, got {self.max_duration_sec}"
            raise ConfigurationError(msg)
        if self.reservoir_size < 1:
            msg = f"Reservoir size must be at least 1, got {self.reservoir_size}"
            raise ConfigurationError(msg)
        if not isinstance(self.success_policy, SuccessPolicy):
            try:
                policy = SuccessPolicy(self.success_policy)
            except ValueError:
                msg = f"Unknown success policy: {self.success_policy}"
                raise ConfigurationError(msg) from None
            object.__setattr__(self, "success_policy", policy)

    def to_metadata(self) -> Mapping[str, Any]:
        return {
            "created_at": self.created_at.isoformat(),
            "requests": self.requests,
            "concurrency": self.concurrency,
            "rate_limit": self.rate_limit,
            "max_duration_sec": self.max_duration_sec,
            "success_policy": self.success_policy.value,
            "seed": self.seed,
            "notes": self.notes,
            "target": {
                "url": self.target.url,
                "method": self.target.method.value,
                "timeout_sec": self.target.timeout_sec,
                "headers": [name for name, _ in self.target.headers],
                "has_body": self.target.body is not None,
                "basic_auth": self.target.basic_auth is not None,
                "compression": self.target.compression,
                "keep_alive": self.target.keep_alive,
                "proxy": self.target.proxy,
            },
        }
