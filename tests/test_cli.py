from __future__ import annotations

import asyncio
import signal
import sys

import pytest

from rhi import cli
from rhi.config import HttpMethod, SuccessPolicy
from rhi.loadgen.runner import Dispatcher


def _config(argv: list[str]):
    return cli.build_config(cli.build_parser().parse_args(argv))


def test_defaults() -> None:
    config = _config(["http://test.local/"])
    assert config.requests == 200
    assert config.concurrency == 50
    assert config.rate_limit == 0.0
    assert config.max_duration_sec is None
    assert config.target.timeout_sec == 20.0
    assert config.target.method is HttpMethod.GET
    assert config.target.compression
    assert config.target.keep_alive


def test_all_flags() -> None:
    config = _config(
        [
            "-n", "40",
            "-c", "4",
            "-q", "12.5",
            "-z", "30",
            "-m", "POST",
            "-H", "X-One: 1",
            "-H", "X-Two: 2",
            "-t", "0",
            "-A", "application/json",
            "-d", "hello",
            "-T", "text/plain",
            "-a", "alice:secret",
            "-x", "http://proxy.local:3128",
            "--host", "api.internal",
            "--disable-compression",
            "--disable-keepalive",
            "--fail-on-status",
            "--notes", "nightly",
            "http://test.local/",
        ]
    )
    target = config.target
    assert (config.requests, config.concurrency, config.rate_limit) == (40, 4, 12.5)
    assert config.max_duration_sec == 30.0
    assert config.success_policy is SuccessPolicy.STATUS_2XX
    assert config.notes == "nightly"
    assert target.method is HttpMethod.POST
    assert target.headers == (("X-One", "1"), ("X-Two", "2"))
    assert target.timeout is None
    assert target.body == b"hello"
    assert target.content_type == "text/plain"
    assert target.accept == "application/json"
    assert target.basic_auth.username == "alice"
    assert target.proxy == "http://proxy.local:3128"
    assert target.host == "api.internal"
    assert not target.compression
    assert not target.keep_alive


def test_body_from_file(tmp_path) -> None:
    body = tmp_path / "body.json"
    body.write_bytes(b'{"a": 1}')
    config = _config(["-D", str(body), "-m", "PUT", "http://test.local/"])
    assert config.target.body == b'{"a": 1}'


@pytest.mark.parametrize(
    "argv",
    [
        ["-n", "5", "-c", "10", "http://test.local/"],
        ["-H", "broken", "http://test.local/"],
        ["-a", "nopassword", "http://test.local/"],
        ["-D", "/does/not/exist", "http://test.local/"],
        ["-m", "PATCH", "http://test.local/"],
        ["http://[::1/"],
        ["-H", "X-Name: café", "http://test.local/"],
    ],
)
def test_invalid_arguments_exit_with_usage_error(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as info:
        cli.main(argv)
    assert info.value.code == 2


@pytest.fixture
def offline_cli(monkeypatch, fake_executor):
    class OfflineDispatcher(Dispatcher):
        def __init__(self, config) -> None:
            super().__init__(config, executor=fake_executor())

    monkeypatch.setattr(cli, "Dispatcher", OfflineDispatcher)
    monkeypatch.setattr(cli, "configure_logging", lambda fmt=None: None)


def test_main_prints_summary(offline_cli, capsys) -> None:
    cli.main(["-n", "6", "-c", "3", "http://test.local/"])
    out = capsys.readouterr().out
    assert "Requests:\t6 of 6 (6 succeeded, 0 failed)" in out
    assert "[200]\t6 responses" in out


def test_main_prints_csv(offline_cli, capsys) -> None:
    cli.main(["-n", "4", "-c", "2", "-o", "csv", "http://test.local/"])
    out = capsys.readouterr().out
    assert "metric,value\n" in out
    assert "status_200,4" in out


@pytest.mark.skipif(sys.platform == "win32", reason="needs loop signal handlers")
def test_sigint_cancels_run(monkeypatch, fake_executor, make_config) -> None:
    class SlowDispatcher(Dispatcher):
        def __init__(self, config) -> None:
            super().__init__(config, executor=fake_executor(delay=0.05), grace_sec=0.5)

    monkeypatch.setattr(cli, "Dispatcher", SlowDispatcher)
    config = make_config(requests=10_000, concurrency=2)

    async def scenario():
        asyncio.get_running_loop().call_later(0.1, signal.raise_signal, signal.SIGINT)
        return await cli._run(config)

    report = asyncio.run(scenario())
    assert report.cancelled
    assert 0 < report.total < 10_000
