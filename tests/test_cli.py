import pytest

from dmbot import AuthoredMessage, DMBot, Message
from dmbot.cli import _parse_cli_args, run, static_responder


def test_static_responder_always_replies() -> None:
    respond = static_responder("Calm Computing ~")
    reply = respond(AuthoredMessage(author="bus", contents=Message().add_text("hi")))
    assert reply == Message().add_text("Calm Computing ~")


def test_parse_cli_args_defaults() -> None:
    args = _parse_cli_args([])
    assert args.config == "ship_config.json"
    assert args.reply_text is None
    assert args.poll_interval is None


@pytest.mark.anyio
async def test_run_builds_bot_from_config(tmp_path, monkeypatch) -> None:
    path = tmp_path / "ship_config.json"
    path.write_text('{"ship_url": "http://localhost:8080", "ship_code": "code"}')
    started: list[DMBot] = []

    async def fake_run(self: DMBot) -> None:
        started.append(self)

    monkeypatch.setattr("dmbot.cli.logfire.configure", lambda **kwargs: None)
    monkeypatch.setattr(DMBot, "run", fake_run)

    await run(config_path=str(path), reply_text="pong", poll_interval=0.5)

    (bot,) = started
    assert bot.poll_interval_seconds == 0.5
    reply = bot.respond_to_message(
        AuthoredMessage(author="bus", contents=Message().add_text("ping"))
    )
    assert reply == Message().add_text("pong")
