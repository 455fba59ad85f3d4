from __future__ import annotations

import base64
from dataclasses import dataclass

from rhi.config import USER_AGENT, BasicAuth, TargetConfig


@dataclass(frozen=True, slots=True)
class PreparedRequest:
    method: str
    url: str
    headers: tuple[tuple[str, str], ...]
    body: bytes | None
    timeout: float | None


def basic_auth_header(auth: BasicAuth) -> str:
    token = base64.b64encode(f"{auth.username}:{auth.password}".encode()).decode("ascii")
    return f"Basic {token}"


def build_request(target: TargetConfig) -> PreparedRequest:
    headers: list[tuple[str, str]] = [("User-Agent", USER_AGENT)]
    if target.body is not None:
        headers.append(("Content-Type", target.content_type))
    if target.accept:
        headers.append(("Accept", target.accept))
    if target.host:
        headers.append(("Host", target.host))
    if target.basic_auth is not None:
        headers.append(("Authorization", basic_auth_header(target.basic_auth)))
    headers.append(("Accept-Encoding", "gzip, deflate" if target.compression else "identity"))
    if not target.keep_alive:
        headers.append(("Connection", "close"))
    # Custom headers replace generated ones of the same name.
    overridden = {name.lower() for name, _ in target.headers}
    headers = [h for h in headers if h[0].lower() not in overridden]
    headers.extend(target.headers)
    return PreparedRequest(
        method=target.method.value,
        url=target.url,
        headers=tuple(headers),
        body=target.body,
        timeout=target.timeout,
    )
