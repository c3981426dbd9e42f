# boss_bot/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

from dotenv import load_dotenv

from .utils.time_helpers import get_zone

DEFAULT_ZONE = "Asia/Tokyo"
DEFAULT_POLL_INTERVAL = 60.0
DEFAULT_MAX_FUTURE_HOURS = 48.0
DEFAULT_LATE_GRACE_SECONDS = 180.0
DEFAULT_RESCHEDULE_THRESHOLD_MS = 1000.0
DEFAULT_FEED_TIMEOUT = 20.0
DEFAULT_STARTUP_MESSAGE = "🤖 BOSS bot started. Watching the feed for announcements."

REQUIRED = ("DISCORD_TOKEN", "DISCORD_CHANNEL_ID", "RACES_JSON_URL")
TRUTHY = {"1", "true", "yes", "y", "on"}


class ConfigError(RuntimeError):
    """A required setting is missing or a value cannot be used."""


@dataclass(frozen=True)
class Settings:
    discord_token: str
    channel_id: int
    feed_url: str
    zone: str = DEFAULT_ZONE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    max_future: timedelta = timedelta(hours=DEFAULT_MAX_FUTURE_HOURS)
    late_grace: timedelta = timedelta(seconds=DEFAULT_LATE_GRACE_SECONDS)
    reschedule_threshold: timedelta = timedelta(milliseconds=DEFAULT_RESCHEDULE_THRESHOLD_MS)
    feed_timeout: float = DEFAULT_FEED_TIMEOUT
    single_shot: bool = False
    startup_message: str = DEFAULT_STARTUP_MESSAGE
    command_prefix: str = "!"
    log_level: str = "INFO"


def _positive(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        val = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if val <= 0:
        raise ConfigError(f"{name} must be greater than zero, got {raw!r}")
    return val


def load_settings(environ: Optional[Mapping[str, str]] = None, use_dotenv: bool = True) -> Settings:
    if use_dotenv:
        load_dotenv()  # existing environment wins over .env
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED if not (env.get(name) or "").strip()]
    if missing:
        raise ConfigError(f"missing required setting(s): {', '.join(missing)}")

    raw_channel = env["DISCORD_CHANNEL_ID"].strip()
    try:
        channel_id = int(raw_channel)
    except ValueError:
        raise ConfigError(f"DISCORD_CHANNEL_ID must be a numeric id, got {raw_channel!r}") from None

    zone = (env.get("BOSS_TIMEZONE") or DEFAULT_ZONE).strip()
    try:
        get_zone(zone)
    except ValueError as e:
        raise ConfigError(str(e)) from e

    startup = env.get("STARTUP_MESSAGE")
    return Settings(
        discord_token=env["DISCORD_TOKEN"].strip(),
        channel_id=channel_id,
        feed_url=env["RACES_JSON_URL"].strip(),
        zone=zone,
        poll_interval=_positive(env, "POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL),
        max_future=timedelta(hours=_positive(env, "MAX_FUTURE_HOURS", DEFAULT_MAX_FUTURE_HOURS)),
        late_grace=timedelta(seconds=_positive(env, "LATE_GRACE_SECONDS", DEFAULT_LATE_GRACE_SECONDS)),
        reschedule_threshold=timedelta(
            milliseconds=_positive(env, "RESCHEDULE_THRESHOLD_MS", DEFAULT_RESCHEDULE_THRESHOLD_MS)
        ),
        feed_timeout=_positive(env, "FEED_TIMEOUT_SECONDS", DEFAULT_FEED_TIMEOUT),
        single_shot=(env.get("SINGLE_SHOT") or "").strip().lower() in TRUTHY,
        startup_message=DEFAULT_STARTUP_MESSAGE if startup is None else startup.strip(),
        command_prefix=(env.get("COMMAND_PREFIX") or "!").strip() or "!",
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
    )
