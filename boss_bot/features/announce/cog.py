# boss_bot/features/announce/cog.py
from __future__ import annotations

import logging
from typing import List, Optional

import discord
from discord.ext import commands, tasks

from ...config import Settings
from ...utils.time_helpers import get_zone, humanize
from .feed import FeedClient, FeedError
from .scheduler import PlanStats, Scheduler
from .sink import ChannelSink, DeliveryError

log = logging.getLogger(__name__)


class Announcements(commands.Cog):
    """Polls the race feed and keeps the announcement timers in line with it."""

    def __init__(self, bot: commands.Bot, settings: Settings, feed: FeedClient, sink: ChannelSink, scheduler: Scheduler):
        self.bot = bot
        self.settings = settings
        self.feed = feed
        self.sink = sink
        self.scheduler = scheduler

    async def cog_load(self):
        self._poll.change_interval(seconds=self.settings.poll_interval)
        self._poll.start()

    async def cog_unload(self):
        self._poll.cancel()
        self.scheduler.shutdown()
        await self.feed.close()

    # ---- Poll driver ----
    @tasks.loop(seconds=60)
    async def _poll(self):
        try:
            await self.run_pass()
        except Exception:
            log.exception("plan error")
        if self.settings.single_shot:
            log.info("[plan] single-shot mode, polling stopped")
            self._poll.stop()

    @_poll.before_loop
    async def _before_poll(self):
        await self.bot.wait_until_ready()
        await self.announce_startup()

    async def announce_startup(self) -> None:
        text = self.settings.startup_message
        if not text:
            return
        try:
            await self.sink.send(text)
        except DeliveryError as e:
            log.warning("startup message not sent: %s", e)
        except Exception:
            log.exception("startup message not sent")

    async def run_pass(self) -> Optional[PlanStats]:
        try:
            items = await self.feed.fetch()
        except FeedError as e:
            log.warning("[plan] feed fetch failed, skipping cycle: %s", e)
            return None
        now = self.scheduler.now()
        log.info("[plan] fetched=%d now=%s", len(items), self.scheduler.local(now).isoformat())
        stats = await self.scheduler.reconcile(items, now)
        log.info("[plan] %s", stats.summary())
        return stats

    # ---- Admin commands ----
    @commands.has_permissions(administrator=True)
    @commands.command(name="announcements")
    async def announcements_cmd(self, ctx: commands.Context):
        await ctx.send(embed=self.status_embed())

    @commands.has_permissions(administrator=True)
    @commands.command(name="replan")
    async def replan_cmd(self, ctx: commands.Context):
        stats = await self.run_pass()
        if stats is None:
            await ctx.send("❌ Feed fetch failed. Check logs.")
            return
        await ctx.send(f"✅ Replanned: `{stats.summary()}`")

    def status_embed(self) -> discord.Embed:
        now = self.scheduler.now()
        lines: List[str] = []
        pending = [r for r in self.scheduler.reservations() if r.live]
        for res in pending[:20]:
            flag = "📤" if res.in_flight else "⏰"
            at = self.scheduler.local(res.target).strftime("%m-%d %H:%M:%S")
            lines.append(f"{flag} `{res.key}` · {at} · in {humanize(res.target - now)}")
        emb = discord.Embed(
            title="Announcements: pending",
            description="\n".join(lines) if lines else "_Nothing scheduled._",
            color=discord.Color.blurple(),
            timestamp=now,
        )
        last = self.scheduler.last_stats
        emb.set_footer(text=f"last pass: {last.summary()}" if last else "no pass yet")
        return emb


async def setup(bot: commands.Bot):
    settings: Settings = bot.settings  # type: ignore[attr-defined]
    feed = FeedClient(settings.feed_url, timeout=settings.feed_timeout)
    sink = ChannelSink(bot, settings.channel_id)
    scheduler = Scheduler(
        sink,
        get_zone(settings.zone),
        max_future=settings.max_future,
        late_grace=settings.late_grace,
        reschedule_threshold=settings.reschedule_threshold,
    )
    await bot.add_cog(Announcements(bot, settings, feed, sink, scheduler))
