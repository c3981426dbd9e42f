# boss_bot/features/announce/sink.py
from __future__ import annotations

import asyncio

import aiohttp
import discord

from ...utils.discord_resolvers import resolve_messageable

# what discord.py lets through once its own retries are used up
TRANSPORT_ERRORS = (discord.HTTPException, aiohttp.ClientError, asyncio.TimeoutError, OSError)


class DeliveryError(RuntimeError):
    pass


class ChannelSink:
    """Sends plain-text messages to one configured channel. No retry."""

    def __init__(self, client: discord.Client, channel_id: int):
        self._client = client
        self.channel_id = channel_id
        self._allowed = discord.AllowedMentions(everyone=False, roles=True, users=True)

    async def send(self, text: str) -> None:
        try:
            channel = await resolve_messageable(self._client, self.channel_id)
            if channel is None:
                raise DeliveryError(f"destination channel {self.channel_id} could not be resolved")
            await channel.send(text, allowed_mentions=self._allowed)
        except TRANSPORT_ERRORS as e:
            raise DeliveryError(f"send to channel {self.channel_id} failed: {e!r}") from e
