from __future__ import annotations

import argparse
import asyncio
import signal
from pathlib import Path

from rhi.config import BasicAuth, HttpMethod, RunConfig, SuccessPolicy, TargetConfig, parse_header
from rhi.errors import ConfigurationError
from rhi.loadgen.runner import Dispatcher
from rhi.metrics import Report
from rhi.observability import configure_logging
from rhi.render import render_csv, render_summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rhi", description="HTTP load generator")
    parser.add_argument("url", help="Target URL")
    parser.add_argument("-n", dest="requests", type=int, default=200, help="Number of requests to run")
    parser.add_argument(
        "-c",
        dest="concurrency",
        type=int,
        default=50,
        help="Number of workers to run concurrently; cannot exceed -n",
    )
    parser.add_argument("-q", dest="rate_limit", type=float, default=0.0, help="Rate limit in requests/sec, 0 for none")
    parser.add_argument("-z", dest="duration", type=float, default=None, help="Stop the run after this many seconds")
    parser.add_argument("-o", dest="output", choices=["summary", "csv"], default="summary")
    parser.add_argument("-m", dest="method", choices=[m.value for m in HttpMethod], default="GET")
    parser.add_argument(
        "-H",
        dest="headers",
        action="append",
        default=[],
        metavar="HEADER",
        help='Custom header, e.g. -H "Accept: text/html". Repeatable.',
    )
    parser.add_argument("-t", dest="timeout", type=float, default=20.0, help="Per-request timeout in seconds, 0 for none")
    parser.add_argument("-A", dest="accept", default=None, help="HTTP Accept header")
    parser.add_argument("-d", dest="body", default=None, help="HTTP request body")
    parser.add_argument("-D", dest="body_file", default=None, help="Read the request body from a file")
    parser.add_argument("-T", dest="content_type", default="text/html", help="Content-Type of the body")
    parser.add_argument("-a", dest="auth", default=None, help="Basic authentication, username:password")
    parser.add_argument("-x", dest="proxy", default=None, help="HTTP proxy URL")
    parser.add_argument("--host", default=None, help="HTTP Host header")
    parser.add_argument("--disable-compression", action="store_true")
    parser.add_argument(
        "--disable-keepalive",
        action="store_true",
        help="Open a new connection for every request",
    )
    parser.add_argument(
        "--fail-on-status",
        action="store_true",
        help="Count non-2xx responses as failed requests",
    )
    parser.add_argument("--notes", default="", help="Free-form note recorded with the run")
    parser.add_argument("--log-format", choices=["console", "json"], default=None)
    return parser


def _read_body(args: argparse.Namespace) -> bytes | None:
    if args.body_file:
        try:
            return Path(args.body_file).read_bytes()
        except OSError as exc:
            msg = f"Cannot read request body from {args.body_file}: {exc}"
            raise ConfigurationError(msg) from exc
    if args.body is not None:
        return args.body.encode()
    return None


def build_config(args: argparse.Namespace) -> RunConfig:
    target = TargetConfig(
        url=args.url,
        method=HttpMethod(args.method),
        timeout_sec=args.timeout,
        headers=tuple(parse_header(raw) for raw in args.headers),
        body=_read_body(args),
        content_type=args.content_type,
        accept=args.accept,
        host=args.host,
        basic_auth=BasicAuth.parse(args.auth) if args.auth else None,
        compression=not args.disable_compression,
        keep_alive=not args.disable_keepalive,
        proxy=args.proxy,
    )
    return RunConfig(
        target=target,
        requests=args.requests,
        concurrency=args.concurrency,
        rate_limit=args.rate_limit,
        max_duration_sec=args.duration,
        success_policy=SuccessPolicy.STATUS_2XX if args.fail_on_status else SuccessPolicy.TRANSPORT,
        notes=args.notes,
    )


async def _run(config: RunConfig) -> Report:
    dispatcher = Dispatcher(config)
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, dispatcher.cancel)
        installed = True
    except NotImplementedError:
        installed = False
    try:
        return await dispatcher.run()
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = build_config(args)
    except ConfigurationError as exc:
        parser.error(str(exc))
    configure_logging(args.log_format)
    report = asyncio.run(_run(config))
    if args.output == "csv":
        print(render_csv(report), end="")
    else:
        print(render_summary(report))


if __name__ == "__main__":
    main()
