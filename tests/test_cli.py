"""
CLI Tests
=========

Argument handling, record rendering and the follow loop.
"""

import asyncio
import io
import json

import httpx
import pytest

from clash_console import cli
from clash_console.client import ControlClient
from clash_console.config import Settings
from clash_console.models import LogRecord
from clash_console.stream import Record, StreamConfig, StreamReader

from tests.helpers import FakeDaemon, log_line


class TestArguments:

    def test_controller_overrides(self):
        settings = Settings()
        args = cli.build_parser().parse_args([
            "--host", "10.0.0.2",
            "--port", "9091",
            "--secret", "s3cret",
            "--protocol", "https:",
            "--http",
            "--log-level", "DEBUG",
            "logs",
            "--count", "3",
        ])

        cli.apply_arguments(settings, args)

        assert args.command == "logs"
        assert args.count == 3
        assert settings.controller.hostname == "10.0.0.2"
        assert settings.controller.port == 9091
        assert settings.controller.secret == "s3cret"
        assert settings.controller.protocol == "https:"
        assert settings.stream.prefer_websocket is False
        assert settings.logging.level == "DEBUG"

    def test_empty_secret_is_kept(self):
        settings = Settings()
        args = cli.build_parser().parse_args(["--secret", "", "version"])

        cli.apply_arguments(settings, args)

        assert settings.controller.secret == ""

    def test_config_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CLASH_BUFFER_LENGTH", raising=False)
        path = tmp_path / "clash-console.yaml"
        path.write_text("stream:\n  buffer_length: 25\n")
        settings = Settings()
        args = cli.build_parser().parse_args(["--config", str(path), "--port", "9092", "connections"])

        cli.apply_arguments(settings, args)

        assert settings.stream.buffer_length == 25
        assert settings.controller.port == 9092

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestRenderRecord:

    def test_model_payload(self):
        record = Record(seq=7, data=LogRecord(type="warning", payload="dial timeout"), received_at=0.0)

        line = json.loads(cli.render_record(record))

        assert line == {"seq": 7, "data": {"type": "warning", "payload": "dial timeout"}}

    def test_plain_payload(self):
        record = Record(seq=1, data={"a": 1}, received_at=0.0)

        assert json.loads(cli.render_record(record)) == {"seq": 1, "data": {"a": 1}}


class TestFollow:

    @pytest.mark.asyncio
    async def test_prints_count_records(self, fake_feed):
        config = StreamConfig(url="http://127.0.0.1:9090/logs?level=info", reconnect_backoff_ms=0)
        reader = StreamReader(config, decode=LogRecord.model_validate_json, transport=fake_feed)

        async def get_stream():
            return reader

        out = io.StringIO()
        task = asyncio.ensure_future(cli.follow(get_stream, count=2, out=out))
        await asyncio.sleep(0)
        fake_feed.push(log_line("one"), log_line("two"), log_line("three"))

        printed = await asyncio.wait_for(task, timeout=1.0)

        lines = [json.loads(l) for l in out.getvalue().splitlines()]
        assert printed == 2
        assert [l["data"]["payload"] for l in lines] == ["one", "two"]
        assert [l["seq"] for l in lines] == [1, 2]
        await reader.close()

    @pytest.mark.asyncio
    async def test_stops_when_reader_closes(self, fake_feed):
        reader = StreamReader(StreamConfig(url="http://127.0.0.1:9090/connections"), transport=fake_feed)

        async def get_stream():
            return reader

        out = io.StringIO()
        task = asyncio.ensure_future(cli.follow(get_stream, out=out))
        await asyncio.sleep(0)
        await reader.close()

        assert await asyncio.wait_for(task, timeout=1.0) == 0
        assert out.getvalue() == ""


class TestMain:

    @pytest.fixture
    def daemon(self):
        return FakeDaemon()

    @pytest.fixture
    def wired(self, monkeypatch, endpoint, daemon):
        monkeypatch.setattr(cli, "settings", Settings())
        monkeypatch.setattr(cli, "setup_logging", lambda settings: None)

        async def fake_get_control_client():
            return ControlClient(endpoint, transport=httpx.MockTransport(daemon))

        monkeypatch.setattr(cli, "get_control_client", fake_get_control_client)

    def test_version(self, wired, daemon, capsys):
        daemon.route("GET", "/version", body={"version": "v1.18.0", "premium": True})

        assert cli.main(["version"]) == 0
        assert capsys.readouterr().out.strip() == "v1.18.0 (premium)"

    def test_config(self, wired, daemon, capsys):
        daemon.route("GET", "/configs", body={"port": 7890, "mode": "global", "log-level": "info"})

        assert cli.main(["config"]) == 0
        printed = json.loads(capsys.readouterr().out)
        assert printed["mode"] == "global"
        assert printed["log-level"] == "info"

    def test_api_error_exit_code(self, wired, daemon):
        daemon.route("GET", "/version", status=401, body={"message": "Unauthorized"})

        assert cli.main(["version"]) == 1
