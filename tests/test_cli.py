"""Tests for the readycheck CLI commands (check, wait, setup, config)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from readycheck.cli import app, run
from readycheck.setup import SetupError, SetupReport
from readycheck.verifier.models import CheckMode, Outcome

runner = CliRunner()


@pytest.fixture()
def mock_check(make_result):
    """Patch check_health at the CLI import site."""
    with patch("readycheck.cli.check_health") as mocked:
        mocked.return_value = make_result(Outcome.HEALTHY)
        yield mocked


# ---------------------------------------------------------------------------
# readycheck check
# ---------------------------------------------------------------------------


class TestCheckCommand:
    @pytest.mark.parametrize(
        "outcome,code",
        [
            (Outcome.HEALTHY, 0),
            (Outcome.DEGRADED, 1),
            (Outcome.ROUNDTRIP_FAILED, 1),
            (Outcome.DOWN, 2),
            (Outcome.CONFIGURATION_ERROR, 3),
        ],
    )
    def test_exit_code_follows_outcome(self, make_result, mock_check, outcome, code):
        mock_check.return_value = make_result(outcome)

        result = runner.invoke(app, ["check"])

        assert result.exit_code == code

    def test_default_mode_is_basic(self, mock_check):
        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0
        assert mock_check.call_args.args[1] is CheckMode.BASIC
        assert "Chromium" in result.output

    def test_json_output(self, mock_check):
        result = runner.invoke(app, ["check", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data) == {"status", "chromium", "libreoffice", "timestamp"}
        assert data["status"] == "healthy"
        assert mock_check.call_args.args[1] is CheckMode.JSON

    def test_full_mode(self, mock_check):
        runner.invoke(app, ["check", "--full"])

        assert mock_check.call_args.args[1] is CheckMode.FULL

    def test_json_and_full_are_exclusive(self, mock_check):
        result = runner.invoke(app, ["check", "--json", "--full"])

        assert result.exit_code == 3
        mock_check.assert_not_called()

    def test_cli_overrides_reach_verifier(self, mock_check):
        runner.invoke(
            app,
            ["check", "--url", "http://pdf.example:3001", "--user", "ops", "--password", "pw", "--timeout", "2"],
        )

        cfg = mock_check.call_args.args[0]
        assert cfg.base_url == "http://pdf.example:3001"
        assert cfg.username == "ops"
        assert cfg.password == "pw"
        assert cfg.timeout == 2.0

    def test_env_config_reaches_verifier(self, mock_check, monkeypatch):
        monkeypatch.setenv("READYCHECK_URL", "http://from-env:3001")

        runner.invoke(app, ["check"])

        assert mock_check.call_args.args[0].base_url == "http://from-env:3001"

    def test_unreachable_service_end_to_end(self):
        # Nothing listens on port 9 of localhost in the test environment
        result = runner.invoke(app, ["check", "--json", "--url", "http://127.0.0.1:9", "--timeout", "1"])

        assert result.exit_code == 2
        assert json.loads(result.stdout)["status"] == "down"

    def test_invalid_config_file(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("retry:\n  max_attempts: -1\n")

        result = runner.invoke(app, ["--config", str(bad), "check"])

        assert result.exit_code == 3


# ---------------------------------------------------------------------------
# readycheck wait
# ---------------------------------------------------------------------------


class TestWaitCommand:
    def test_succeeds_after_retries(self, make_result, mock_check):
        mock_check.side_effect = [make_result(Outcome.DOWN), make_result(Outcome.HEALTHY)]

        with patch("readycheck.retry.time.sleep") as mock_sleep:
            result = runner.invoke(app, ["wait", "--attempts", "3", "--delay", "1"])

        assert result.exit_code == 0
        assert mock_check.call_count == 2
        mock_sleep.assert_called_once_with(1)
        assert "healthy" in result.output

    def test_fails_when_budget_exhausted(self, make_result, mock_check):
        mock_check.return_value = make_result(Outcome.DOWN, "conversion service unreachable")

        with patch("readycheck.retry.time.sleep"):
            result = runner.invoke(app, ["wait", "--attempts", "2", "--delay", "1"])

        assert result.exit_code == 1
        assert mock_check.call_count == 2
        assert "unreachable" in result.output

    def test_rejects_zero_attempts(self, mock_check):
        result = runner.invoke(app, ["wait", "--attempts", "0"])

        assert result.exit_code == 3
        mock_check.assert_not_called()


# ---------------------------------------------------------------------------
# readycheck setup
# ---------------------------------------------------------------------------


class TestSetupCommand:
    def test_reports_failure_with_hint(self):
        instance = MagicMock()
        instance.run.side_effect = SetupError("Service did not become healthy", hint="Check logs")
        with patch("readycheck.cli.ServiceInstaller", return_value=instance):
            result = runner.invoke(app, ["setup"])

        assert result.exit_code == 1
        assert "did not become healthy" in result.output
        assert "Check logs" in result.output

    def test_success_summary(self):
        instance = MagicMock()
        instance.run.return_value = SetupReport(
            steps=["root"], health_attempts=2, unit_path="/etc/systemd/system/bg-pdf-service.service"
        )
        with patch("readycheck.cli.ServiceInstaller", return_value=instance):
            result = runner.invoke(app, ["setup", "--skip-docker-install"])

        assert result.exit_code == 0
        instance.run.assert_called_once_with(install_docker=False)
        assert "Setup Complete" in result.output


# ---------------------------------------------------------------------------
# readycheck config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_init_writes_template(self, tmp_path):
        result = runner.invoke(app, ["config", "init"])

        assert result.exit_code == 0
        assert (tmp_path / "readycheck.yaml").read_text().startswith("# readycheck.yaml")

    def test_init_refuses_overwrite(self, tmp_path):
        (tmp_path / "readycheck.yaml").write_text("log_level: info\n")

        result = runner.invoke(app, ["config", "init"])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_show_masks_password(self, monkeypatch):
        monkeypatch.setenv("READYCHECK_PASSWORD", "hunter22")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "hunter22" not in result.output
        assert "********" in result.output


# ---------------------------------------------------------------------------
# console entry point
# ---------------------------------------------------------------------------


class TestEntryPoint:
    def test_unknown_flag_exits_as_configuration_error(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.argv", ["readycheck", "check", "--jsn"])

        with pytest.raises(SystemExit) as exc_info:
            run()

        assert exc_info.value.code == 3
        assert "--jsn" in capsys.readouterr().err

    def test_unknown_command_exits_as_configuration_error(self, monkeypatch):
        monkeypatch.setattr("sys.argv", ["readycheck", "chekc"])

        with pytest.raises(SystemExit) as exc_info:
            run()

        assert exc_info.value.code == 3

    @pytest.mark.parametrize("outcome,code", [(Outcome.HEALTHY, 0), (Outcome.DOWN, 2)])
    def test_outcome_code_passes_through(self, make_result, mock_check, monkeypatch, outcome, code):
        mock_check.return_value = make_result(outcome)
        monkeypatch.setattr("sys.argv", ["readycheck", "check"])

        with pytest.raises(SystemExit) as exc_info:
            run()

        assert exc_info.value.code == code
