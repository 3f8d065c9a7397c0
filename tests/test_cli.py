"""Tests for the polaris-rest CLI."""

import json
import re
from unittest.mock import patch

from typer.testing import CliRunner

from polaris_rest import __version__
from polaris_rest.cli import app

# ANSI escape sequence pattern for stripping colors from output
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

VALID_ENV = {
    "SERVER": "ws://polaris.test/ws",
    "CONFIG": '{"name": "rest", "token": "abc"}',
    "PORT": None,
    "HOST": None,
    "POLARIS_DEBUG": None,
}
EMPTY_ENV = {"SERVER": None, "CONFIG": None}


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from text."""
    return ANSI_ESCAPE_PATTERN.sub("", text)


class TestCliVersion:
    def test_version_flag(self) -> None:
        """Ensure --version prints the package version."""
        runner = CliRunner()
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert result.stdout.strip() == __version__


class TestCliHelp:
    def test_help_displays_commands(self) -> None:
        runner = CliRunner()
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        output = strip_ansi(result.stdout)
        assert "serve" in output
        assert "check-config" in output


class TestCheckConfig:
    def test_prints_resolved_settings_with_secrets_redacted(self) -> None:
        runner = CliRunner()
        result = runner.invoke(app, ["check-config"], env=VALID_ENV)

        assert result.exit_code == 0
        described = json.loads(result.stdout)
        assert described["server_url"] == "ws://polaris.test/ws"
        assert described["platform"] == "rest"
        assert described["bot_config"]["name"] == "rest"
        assert described["bot_config"]["token"] == "***REDACTED***"

    def test_invalid_environment_exits_with_status_1(self) -> None:
        runner = CliRunner()
        result = runner.invoke(app, ["check-config"], env=EMPTY_ENV)

        assert result.exit_code == 1
        assert "SERVER is required" in result.output


class TestServe:
    def test_serve_runs_uvicorn_with_gateway_app(self) -> None:
        runner = CliRunner()
        with (
            patch("polaris_rest.cli.configure_logging"),
            patch("polaris_rest.cli.uvicorn.run") as run,
        ):
            result = runner.invoke(app, ["serve", "--port", "4000"], env=VALID_ENV)

        assert result.exit_code == 0, result.output
        assert "Polaris REST client running on port 4000" in result.output
        run.assert_called_once()
        served_app = run.call_args.args[0]
        assert served_app.state.settings.server_url == "ws://polaris.test/ws"
        assert run.call_args.kwargs["host"] == "0.0.0.0"
        assert run.call_args.kwargs["port"] == 4000

    def test_serve_defaults_to_environment_port(self) -> None:
        runner = CliRunner()
        with (
            patch("polaris_rest.cli.configure_logging"),
            patch("polaris_rest.cli.uvicorn.run") as run,
        ):
            result = runner.invoke(app, ["serve"], env={**VALID_ENV, "PORT": "3100"})

        assert result.exit_code == 0, result.output
        assert run.call_args.kwargs["port"] == 3100

    def test_serve_exits_1_on_invalid_configuration(self) -> None:
        runner = CliRunner()
        with (
            patch("polaris_rest.cli.configure_logging"),
            patch("polaris_rest.cli.uvicorn.run") as run,
        ):
            result = runner.invoke(app, ["serve"], env=EMPTY_ENV)

        assert result.exit_code == 1
        run.assert_not_called()
