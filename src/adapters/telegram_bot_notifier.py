"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so notifications can be routed to any chat the
bot can write to. Each send is retried with exponential backoff and reports a
boolean instead of raising, so one unreachable chat never aborts a batch.
"""

from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Callable

from core.config import DeliveryConfig
from core.models import Subscriber
from core.retry import backoff_delays

LOGGER = logging.getLogger(__name__)


class TelegramBotNotifier:
    """Notifier adapter that sends messages via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        config: DeliveryConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._bot_token = bot_token
        self._config = config
        self._sleep = sleep

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"{self._config.api_base.rstrip('/')}/bot{self._bot_token}/sendMessage"

    def _post(self, chat_id: str, text: str) -> int:
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(self._endpoint(), data=data, method="POST")
        request.add_header("Content-Type", "application/json")
        with urllib.request.urlopen(request, timeout=self._config.timeout) as response:
            return response.status

    def send(self, endpoint: str, text: str) -> bool:
        """Send ``text`` to one chat; True only on a 2xx response."""

        attempts = max(self._config.max_attempts, 1)
        delays = backoff_delays(attempts - 1, self._config.base_delay)
        for attempt in range(1, attempts + 1):
            try:
                status = self._post(endpoint, text)
                if 200 <= status < 300:
                    LOGGER.info("Message sent to chat %s", endpoint)
                    return True
                LOGGER.warning("Bot API returned %s for chat %s (attempt %s/%s)", status, endpoint, attempt, attempts)
            except urllib.error.HTTPError as e:
                body = e.read().decode("utf-8", errors="replace")
                LOGGER.warning(
                    "Bot API error %s for chat %s (attempt %s/%s): %s",
                    e.code,
                    endpoint,
                    attempt,
                    attempts,
                    body,
                )
            except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
                LOGGER.warning(
                    "Transport error sending to chat %s (attempt %s/%s): %s",
                    endpoint,
                    attempt,
                    attempts,
                    e,
                )

            delay = next(delays, None)
            if delay is not None:
                self._sleep(delay)

        LOGGER.error("Giving up on chat %s after %s attempts", endpoint, attempts)
        return False

    def send_to_subscriber(self, subscriber: Subscriber, text: str) -> bool:
        """Send to every endpoint of ``subscriber``; True if any send succeeded."""

        delivered = False
        for endpoint in subscriber.endpoints():
            if self.send(endpoint, text):
                delivered = True
                LOGGER.debug("Notification sent to user '%s' via %s", subscriber.username, endpoint)
            else:
                LOGGER.warning("Failed to send notification to user '%s' via %s", subscriber.username, endpoint)

        if not delivered:
            LOGGER.warning(
                "No Telegram recipients configured for user '%s' or all sends failed",
                subscriber.username,
            )
        return delivered
