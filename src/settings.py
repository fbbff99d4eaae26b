"""Static configuration for eventbell.

All user-editable settings (broker, retry policy, delivery, storage, logging)
live in a single JSON file for quick edits without touching Python. Secrets
such as the bot token come from the environment instead.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("EVENTBELL_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _split_servers(raw) -> tuple[str, ...]:
    if isinstance(raw, str):
        raw = raw.split(",")
    return tuple(server.strip() for server in raw if server and server.strip())


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Broker settings shared by every topic listener. KAFKA_BOOTSTRAP_SERVER
# overrides the file so deployments can point at their own cluster.
_broker = _CONFIG.get("broker", {})
BOOTSTRAP_SERVERS = _split_servers(
    os.environ.get("KAFKA_BOOTSTRAP_SERVER") or _broker.get("bootstrap_servers", "localhost:9092")
)
GROUP_ID = _broker.get("group_id", "eventbell")
AUTO_OFFSET_RESET = _broker.get("auto_offset_reset", "earliest")
POLL_TIMEOUT_MS = int(_broker.get("poll_timeout_ms", 1000))
DEAD_LETTER_SUFFIX = _broker.get("dead_letter_suffix", ".DLT")
SHUTDOWN_TIMEOUT = float(_broker.get("shutdown_timeout", 5.0))

# Broker-level redelivery before a record is sent to the dead-letter topic.
# Defaults give delays of 1s, 2s, 4s.
_broker_retry = _CONFIG.get("broker_retry", {})
BROKER_MAX_RETRIES = int(_broker_retry.get("max_retries", 3))
BROKER_INITIAL_INTERVAL = float(_broker_retry.get("initial_interval", 1.0))
BROKER_MULTIPLIER = float(_broker_retry.get("multiplier", 2.0))
BROKER_MAX_INTERVAL = float(_broker_retry.get("max_interval", 10.0))

# Per-send delivery retries against the Telegram Bot API.
_delivery = _CONFIG.get("delivery", {})
TELEGRAM_API_BASE = _delivery.get("api_base", "https://api.telegram.org")
DELIVERY_MAX_ATTEMPTS = int(_delivery.get("max_attempts", 3))
DELIVERY_BASE_DELAY = float(_delivery.get("base_delay", 1.0))
DELIVERY_TIMEOUT = float(_delivery.get("timeout", 10))

# Where the event/subscription tables live.
_storage = _CONFIG.get("storage", {})
DB_PATH = _storage.get("db_path", "eventbell.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
