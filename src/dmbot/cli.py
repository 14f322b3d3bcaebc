"""CLI entrypoint: the simple DM chatbot.

Replies to every DM with a fixed text. Embedders with real logic should
construct `DMBot` with their own response function instead.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import anyio
import logfire
from rich import print

from .api import ShipApi
from .config import DEFAULT_CONFIG_PATH, ConfigBootstrapError, load_local_config
from .entities import AuthoredMessage, Message
from .router import Responder
from .session import DMBot


def static_responder(reply_text: str) -> Responder:
    """Return a response function that always answers with `reply_text`."""

    def respond_to_message(_authored_message: AuthoredMessage) -> Message | None:
        return Message().add_text(reply_text)

    return respond_to_message


def _parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dmbot",
        description="DM chatbot: accepts DM invites and answers every DM.",
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to the ship config JSON (created as a template if missing).",
    )
    parser.add_argument(
        "--reply-text",
        default=None,
        help="Text posted in reply to every DM (overrides the config file).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds to sleep between polling cycles (overrides the config file).",
    )
    return parser.parse_args(argv)


async def run(
    *,
    config_path: str = str(DEFAULT_CONFIG_PATH),
    reply_text: str | None = None,
    poll_interval: float | None = None,
) -> None:
    """Function entrypoint."""

    logfire.configure(send_to_logfire="if-token-present")
    logging.basicConfig(level=logging.INFO, handlers=[logfire.LogfireLoggingHandler()])

    config = load_local_config(Path(config_path))
    if poll_interval is not None and poll_interval <= 0:
        raise ValueError(f"--poll-interval must be > 0; got {poll_interval}")

    bot = DMBot(
        static_responder(reply_text if reply_text is not None else config.reply_text),
        ShipApi(url=config.ship_url, code=config.ship_code),
        poll_interval_seconds=(
            poll_interval if poll_interval is not None else config.poll_interval_seconds
        ),
    )
    await bot.run()


async def main() -> None:
    """CLI entrypoint."""
    args = _parse_cli_args()
    try:
        await run(
            config_path=args.config,
            reply_text=args.reply_text,
            poll_interval=args.poll_interval,
        )
    except ConfigBootstrapError as e:
        print(f"[yellow]{e}[/yellow]")
        raise SystemExit(1) from e


def entrypoint() -> None:
    """Console-script entrypoint."""
    anyio.run(main)
