"""Tests for dh_cli.commands."""

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from deckhand.core.client import AgentAPIClient, APIError
from deckhand.core.config.schema import Config
from dh_cli.commands import EXIT_ERROR, EXIT_NO_PROVIDER, app

runner = CliRunner()

_PATCH_CONFIG = "deckhand.core.config.loader.load_config"
_PATCH_CLIENT = "deckhand.core.client.AgentAPIClient.from_config"


@pytest.fixture
def config(tmp_path):
    return Config(
        features={"cost_tracking": False},
        state={"path": str(tmp_path / "state.json"), "pricing_cache": str(tmp_path / "pricing.json")},
    )


@pytest.fixture
def client():
    c = AsyncMock(spec=AgentAPIClient)
    c.__aenter__.return_value = c
    c.read_config.return_value = None
    c.get_extensions.return_value = []
    return c


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "start" in result.output
    assert "sessions" in result.output
    assert "config" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "dh v" in result.output


def test_start_without_provider_exits_2(config, client):
    with patch(_PATCH_CONFIG, return_value=config), patch(_PATCH_CLIENT, return_value=client):
        result = runner.invoke(app, ["start", "--resume", "abc"])

    assert result.exit_code == EXIT_NO_PROVIDER
    assert "No provider configured" in result.output
    client.resume_agent.assert_not_awaited()


def test_start_resume_renders_chat(config, client):
    client.read_config.side_effect = ["anthropic", "claude-x"]
    client.resume_agent.return_value = {
        "session_id": "abc",
        "metadata": {"description": "Fix flaky test", "message_count": 4},
        "messages": [{"role": "user"}],
    }

    with patch(_PATCH_CONFIG, return_value=config), patch(_PATCH_CLIENT, return_value=client):
        result = runner.invoke(app, ["start", "--resume", "abc"])

    assert result.exit_code == 0
    assert "abc" in result.output
    assert "Fix flaky test" in result.output
    client.update_provider.assert_awaited_once_with("abc", "anthropic", "claude-x")


def test_start_reports_failed_extensions_and_pricing(tmp_path, client):
    """Extension failures and the active model's pricing are printed after the chat."""
    config = Config(
        state={"path": str(tmp_path / "state.json"), "pricing_cache": str(tmp_path / "pricing.json")},
    )
    client.read_config.side_effect = ["anthropic", "claude-x"]
    client.resume_agent.return_value = {"session_id": "abc", "metadata": {}, "messages": []}
    client.get_extensions.return_value = [{"name": "jira", "type": "sse", "enabled": True}]
    client.add_extension.side_effect = APIError(500, "spawn failed")
    client.get_pricing.return_value = [
        {"provider": "anthropic", "model": "claude-x", "input_token_cost": 3e-06, "output_token_cost": 1.5e-05},
    ]

    with patch(_PATCH_CONFIG, return_value=config), patch(_PATCH_CLIENT, return_value=client):
        result = runner.invoke(app, ["start", "--resume", "abc"])

    assert result.exit_code == 0
    assert "Extensions failed to load" in result.output
    assert "jira" in result.output
    assert "pricing anthropic/claude-x" in result.output


def test_start_error_exits_1(config, client):
    client.read_config.side_effect = ["anthropic", "claude-x"]
    client.resume_agent.side_effect = APIError(500, "database locked")

    with patch(_PATCH_CONFIG, return_value=config), patch(_PATCH_CLIENT, return_value=client):
        result = runner.invoke(app, ["start", "--resume", "abc"])

    assert result.exit_code == EXIT_ERROR
    assert "database locked" in result.output


def test_start_view_query(config, client):
    with patch(_PATCH_CONFIG, return_value=config), patch(_PATCH_CLIENT, return_value=client):
        result = runner.invoke(app, ["start", "--query", "view=settings"])

    assert result.exit_code == 0
    assert "/settings" in result.output
    client.start_agent.assert_not_awaited()


def test_start_unknown_view(config, client):
    with patch(_PATCH_CONFIG, return_value=config), patch(_PATCH_CLIENT, return_value=client):
        result = runner.invoke(app, ["start", "--view", "nowhere"])
    assert result.exit_code == 0
    assert "Unknown view" in result.output


def test_sessions_list(config, client):
    client.list_sessions.return_value = [
        {"id": "20250101_120000", "modified": "2025-01-01T12:00:00",
         "metadata": {"description": "Refactor", "message_count": 3, "working_dir": "/src"}},
    ]
    with patch(_PATCH_CONFIG, return_value=config), patch(_PATCH_CLIENT, return_value=client):
        result = runner.invoke(app, ["sessions", "list"])

    assert result.exit_code == 0
    assert "20250101_120000" in result.output
    assert "Refactor" in result.output


def test_sessions_delete_api_error(config, client):
    client.delete_session.side_effect = APIError(404, "Session not found")
    with patch(_PATCH_CONFIG, return_value=config), patch(_PATCH_CLIENT, return_value=client):
        result = runner.invoke(app, ["sessions", "delete", "nope", "--yes"])

    assert result.exit_code == 1
    assert "Session not found" in result.output


def test_sessions_rename_too_long():
    result = runner.invoke(app, ["sessions", "rename", "s1", "x" * 201])
    assert result.exit_code == 1


def test_config_init(tmp_path):
    target = tmp_path / "deckhand.yaml"
    result = runner.invoke(app, ["config", "init", str(target)])
    assert result.exit_code == 0
    assert target.exists()

    again = runner.invoke(app, ["config", "init", str(target)])
    assert again.exit_code == 1

    forced = runner.invoke(app, ["config", "init", str(target), "--force"])
    assert forced.exit_code == 0
