from __future__ import annotations
import logging
from typing import Optional
import discord

log = logging.getLogger(__name__)

async def resolve_messageable(client: discord.Client, channel_id: int) -> Optional[discord.abc.Messageable]:
    """Cached channel first, then an API fetch; None unless the channel can take messages."""
    ch = client.get_channel(channel_id)
    if ch is None:
        try:
            ch = await client.fetch_channel(channel_id)
        except discord.NotFound:
            log.warning("channel %s not found", channel_id)
            return None
        except discord.Forbidden:
            log.warning("no access to channel %s", channel_id)
            return None
        except discord.HTTPException as e:
            log.warning("fetching channel %s failed: %s", channel_id, e)
            return None
    if not isinstance(ch, discord.abc.Messageable):
        log.warning("channel %s (%s) is not message-capable", channel_id, type(ch).__name__)
        return None
    return ch
