"""Tests for the CLI interface."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from agents.schemas import VERDICT_SCHEMA_NAME
from cli import cli
from tests.conftest import MockProvider, verdict_json


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "test_config.yaml"
    path.write_text(
        f"database:\n  path: {tmp_path / 'test.db'}\n"
        f"viz:\n  output_dir: {tmp_path / 'out'}\n"
        "api: {}\nagents: {}\n"
    )
    return path


@pytest.fixture
def invoke(runner, config_path):
    """Run a command against the temp config with a mock provider."""
    provider = MockProvider(structured={VERDICT_SCHEMA_NAME: [verdict_json("con")]})

    def _invoke(*args, **kwargs):
        return runner.invoke(
            cli, ["--config", str(config_path), *args], obj={"provider": provider}, **kwargs
        )

    return _invoke


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Debate Arena" in result.output

    def test_new_help(self, runner):
        result = runner.invoke(cli, ["new", "--help"])
        assert result.exit_code == 0
        assert "--topic" in result.output
        assert "--position" in result.output

    def test_list_debates_empty(self, runner, config_path):
        """Read-only commands work without any provider configured."""
        result = runner.invoke(cli, ["--config", str(config_path), "list-debates"])
        assert result.exit_code == 0
        assert "No debates found" in result.output

    def test_show_not_found(self, invoke):
        result = invoke("show", "999")
        assert result.exit_code == 1
        assert "Error [not_found]" in result.output

    def test_register_twice(self, invoke):
        assert invoke("register", "alice").exit_code == 0
        result = invoke("register", "alice")
        assert result.exit_code == 1
        assert "Error [validation_error]" in result.output

    def test_human_debate_flow(self, invoke):
        assert "Registered user #1" in invoke("register", "alice").output

        result = invoke("new", "--user-id", "1", "--topic", "X", "--position", "pro")
        assert result.exit_code == 0
        assert "Positions: human pro, model con" in result.output

        result = invoke("say", "1", "Cars are dangerous.")
        assert result.exit_code == 0
        assert "[MODEL]" in result.output

        result = invoke("end", "1")
        assert result.exit_code == 0
        assert "Winner    : model (con)" in result.output

        result = invoke("end", "1")
        assert result.exit_code == 1
        assert "Error [invalid_state]" in result.output

        result = invoke("stats", "1", "--chart")
        assert result.exit_code == 0
        assert "Losses   : 1" in result.output
        assert "Chart saved to" in result.output

        result = invoke("history", "1")
        assert result.exit_code == 0
        assert "finished" in result.output

    def test_step_and_show(self, invoke):
        invoke("new", "--mode", "model_vs_model", "--topic", "X")
        result = invoke("step", "1")
        assert result.exit_code == 0
        assert "[AGENT 1]" in result.output

        result = invoke("say", "1", "hello")
        assert result.exit_code == 1
        assert "Error [invalid_state]" in result.output

        result = invoke("show", "1", "--export")
        assert result.exit_code == 0
        assert "Transcript saved to" in result.output

    def test_debate_runs_to_verdict(self, invoke):
        result = invoke("debate", "--topic", "X")
        assert result.exit_code == 0
        assert result.output.count("[AGENT 1]") == 5
        assert result.output.count("[AGENT 2]") == 5
        assert "Winner    : agent2 (con)" in result.output

    def test_play_interactive(self, invoke):
        result = invoke("play", "--topic", "X", "--position", "con", input="First point\n/end\n")
        assert result.exit_code == 0
        assert "[MODEL]" in result.output
        assert "Winner    : human (con)" in result.output

    def test_topic(self, invoke):
        result = invoke("topic")
        assert result.exit_code == 0
        assert "Cities should ban private cars" in result.output

    def test_end_with_chart_shows_strengths(self, invoke):
        invoke("new", "--topic", "X", "--position", "pro")
        invoke("say", "1", "Cars are dangerous.")
        result = invoke("end", "1", "--chart")
        assert result.exit_code == 0
        assert "Con strengths:" in result.output
        assert "- strong examples" in result.output
        assert "Pro weaknesses:" in result.output
        assert "Chart saved to" in result.output
        assert "debate_1_scores.png" in result.output

    def test_debate_with_chart(self, invoke):
        result = invoke("debate", "--topic", "X", "--chart")
        assert result.exit_code == 0
        assert "debate_1_scores.png" in result.output

    def test_new_random_position_overrides_position(self, invoke):
        sides = set()
        for _ in range(40):
            result = invoke("new", "--topic", "X", "--position", "pro", "--random-position")
            assert result.exit_code == 0
            sides.add("human pro" in result.output)
        assert sides == {True, False}
