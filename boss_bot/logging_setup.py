# boss_bot/logging_setup.py
import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def init_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure root logger once for simple console logs.
    Accepts a numeric level or a level name such as "DEBUG".
    """
    if logging.getLogger().handlers:
        return  # already configured

    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # discord.py's gateway chatter is noisy at DEBUG
    logging.getLogger("discord.gateway").setLevel(max(level, logging.INFO))
