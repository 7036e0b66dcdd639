"""Tests for the command line entry point."""

import logging

import pytest

from botrunner.config.schema import Config
from botrunner.context import Context
from botrunner.main import build_parser, create_bot, echo, main
from botrunner.models import Update

from conftest import make_update


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParser:
    """Test argument parsing."""

    def test_subcommands(self, tmp_path):
        args = build_parser().parse_args(["--config", str(tmp_path / "bot.toml"), "poll"])

        assert args.command == "poll"
        assert args.config == tmp_path / "bot.toml"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestEcho:
    """Test the default pipeline."""

    @pytest.mark.asyncio
    async def test_echoes_text(self, client, identity):
        await echo(Context(make_update(1, text="ping", chat_id=9), client, identity), _unreachable)

        assert client.calls == [("sendMessage", {"chat_id": 9, "text": "ping"})]

    @pytest.mark.asyncio
    async def test_passes_non_text(self, client, identity):
        passed = []

        async def next_():
            passed.append(True)

        update = Update.from_dict({"update_id": 1, "message": {"chat": {"id": 9}, "sticker": {}}})
        await echo(Context(update, client, identity), next_)

        assert passed == [True]
        assert client.calls == []

    def test_create_bot(self):
        bot = create_bot(Config(bot={"token": "123:abc"}))

        assert bot.client.token == "123:abc"


class TestMain:
    """Test exit codes."""

    def test_missing_config_file(self, tmp_path, restore_root_logger):
        assert main(["--config", str(tmp_path / "missing.toml"), "poll"]) == 2

    def test_empty_token(self, tmp_path, restore_root_logger, monkeypatch):
        monkeypatch.delenv("BOTRUNNER_BOT_TOKEN", raising=False)
        path = tmp_path / "bot.toml"
        path.write_text('[bot]\ntoken = ""\n', encoding="utf-8")

        assert main(["--config", str(path), "poll"]) == 2


async def _unreachable():
    raise AssertionError("echo should not continue")
