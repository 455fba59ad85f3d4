from __future__ import annotations

from rhi.config.models import (
    DEFAULT_CONTENT_TYPE,
    USER_AGENT,
    BasicAuth,
    HttpMethod,
    RunConfig,
    SuccessPolicy,
    TargetConfig,
    parse_header,
)

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "USER_AGENT",
    "BasicAuth",
    "HttpMethod",
    "RunConfig",
    "SuccessPolicy",
    "TargetConfig",
    "parse_header",
]
