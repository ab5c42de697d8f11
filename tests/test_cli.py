"""Tests for the prorouter CLI."""

import json

from typer.testing import CliRunner

from prorouter import __version__
from prorouter.cli import app

runner = CliRunner()


class TestCli:
    """Diagnostics commands."""

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_classify(self):
        result = runner.invoke(app, ["classify", "root cause"])
        assert result.exit_code == 0
        assert "expert" in result.stdout

    def test_route_json(self):
        result = runner.invoke(app, ["route", "hi, how are you", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["intent"] == "everyday"
        assert payload["premium_allowed"] is False

    def test_route_cap_reached_json(self):
        message = ("Please do a deep risk analysis and cost-benefit analysis of this "
                   "multi-variable architecture decision")
        result = runner.invoke(
            app, ["route", message, "--used", "205000", "--region", "IN", "--json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["provider"] == "gemini-2.5-pro"
        assert payload["metadata"]["fallback_reason"] == "gpt_cap_reached"

    def test_route_unknown_usage(self):
        result = runner.invoke(app, ["route", "root cause", "--unknown-usage", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["cap_reached"] is True

    def test_route_table_output(self):
        result = runner.invoke(app, ["route", "root cause", "--region", "INTL"])
        assert result.exit_code == 0
        assert "Routing Decision" in result.stdout

    def test_bad_session_intent(self):
        result = runner.invoke(app, ["route", "hi", "--session-intent", "bogus"])
        assert result.exit_code == 2

    def test_budget(self):
        result = runner.invoke(app, ["budget", "--used", "205000", "--region", "IN"])
        assert result.exit_code == 0
        assert "Cap reached" in result.stdout

    def test_keywords(self):
        result = runner.invoke(app, ["keywords"])
        assert result.exit_code == 0
        assert "2026.01" in result.stdout

    def test_validate(self, tmp_path):
        result = runner.invoke(app, ["validate", "--config", str(tmp_path / "none.yaml")])
        assert result.exit_code == 0
        assert "is valid" in result.stdout

    def test_validate_bad_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("dispatch:\n  premium: missing-model\n")
        result = runner.invoke(app, ["validate", "--config", str(path)])
        assert result.exit_code == 1
        assert "Config error" in result.stdout
