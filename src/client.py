"""Telegram bot client factory for eventbell.

The bot token is the only secret the notifier needs; it is read from the
environment so it never lands in config.json.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from adapters.telegram_bot_notifier import TelegramBotNotifier
from core.config import DeliveryConfig


def build_notifier(config: DeliveryConfig) -> TelegramBotNotifier:
    """Create the Bot API notifier from environment variables.

    We read BOT_API via python-dotenv to keep secrets out of the repo.
    """

    load_dotenv()

    bot_token = os.getenv("BOT_API")

    # Fail fast on missing credentials rather than failing every send.
    if not bot_token:
        raise RuntimeError("Missing BOT_API in environment")

    logging.getLogger(__name__).info("Initializing Telegram bot notifier")

    return TelegramBotNotifier(bot_token=bot_token, config=config)
