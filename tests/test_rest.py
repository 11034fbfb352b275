"""Tests for publishing command declarations over REST."""

import pytest
from structlog.testing import capture_logs

from glimmer.declarations import CommandDeclaration, CommandType
from glimmer.exceptions import CommandPublishError
from glimmer.rest import DISCORD_API_BASE, commands_url, replace_all_commands


class _FakeResponse:
    def __init__(self, status, json_body=None, text_body=""):
        self.status = status
        self._json = json_body
        self._text = text_body

    async def json(self):
        return self._json

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeSession:
    """Records PUT calls and answers with a canned response."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    def put(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


def _declarations():
    return [
        CommandDeclaration(name="ping", description="Pong"),
        CommandDeclaration(type=CommandType.USER, name="Inspect"),
    ]


def test_commands_url():
    assert commands_url("42") == f"{DISCORD_API_BASE}/applications/42/commands"
    assert commands_url("42", "https://proxy.test/api/") == "https://proxy.test/api/applications/42/commands"


@pytest.mark.asyncio
async def test_replace_all_commands_puts_full_list():
    session = _FakeSession(_FakeResponse(200, json_body=[{"id": "1"}, {"id": "2"}]))

    result = await replace_all_commands(session, "42", "secret-token", _declarations())

    assert result == [{"id": "1"}, {"id": "2"}]
    assert len(session.calls) == 1
    url, kwargs = session.calls[0]
    assert url == f"{DISCORD_API_BASE}/applications/42/commands"
    assert kwargs["headers"]["Authorization"] == "Bot secret-token"
    assert kwargs["json"] == [
        {"type": 1, "name": "ping", "description": "Pong", "options": []},
        {"type": 2, "name": "Inspect"},
    ]


@pytest.mark.asyncio
async def test_empty_list_clears_commands():
    session = _FakeSession(_FakeResponse(200, json_body=[]))
    assert await replace_all_commands(session, "42", "t", []) == []
    assert session.calls[0][1]["json"] == []


@pytest.mark.asyncio
async def test_rejection_raises_publish_error():
    session = _FakeSession(_FakeResponse(400, text_body='{"code": 50035}'))

    with capture_logs() as logs:
        with pytest.raises(CommandPublishError) as exc_info:
            await replace_all_commands(session, "42", "t", _declarations())

    assert exc_info.value.status == 400
    assert "50035" in exc_info.value.body
    assert any(entry["event"] == "commands_publish_failed" for entry in logs)
