# boss_bot/main.py
import logging
import os

import discord
from discord.ext import commands

from .config import ConfigError, Settings, load_settings
from .logging_setup import init_logging

log = logging.getLogger("boss_bot")

EXTENSIONS = [
    "boss_bot.features.announce",
]


def build_bot(settings: Settings) -> commands.Bot:
    intents = discord.Intents.default()
    intents.guilds = True
    intents.messages = True
    intents.message_content = True  # prefix commands

    bot = commands.Bot(command_prefix=settings.command_prefix, intents=intents)
    bot.settings = settings  # type: ignore[attr-defined]

    @bot.event
    async def setup_hook():
        for ext in EXTENSIONS:
            await bot.load_extension(ext)
        log.info("Extensions loaded: %s", ", ".join(EXTENSIONS))

    @bot.event
    async def on_ready():
        log.info("Logged in as %s (%s)", bot.user, bot.user.id)  # type: ignore

    return bot


def main() -> None:
    init_logging(os.environ.get("LOG_LEVEL", "INFO"))
    try:
        settings = load_settings()
    except ConfigError as e:
        log.error("Configuration error: %s", e)
        raise SystemExit(1)
    level = logging.getLevelName(settings.log_level)  # .env may set it after init_logging
    if isinstance(level, int):
        logging.getLogger().setLevel(level)

    bot = build_bot(settings)
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
