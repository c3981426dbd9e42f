# boss_bot/features/announce/feed.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional

import aiohttp

log = logging.getLogger(__name__)


class FeedError(RuntimeError):
    pass


class FeedTransportError(FeedError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class FeedShapeError(FeedError):
    pass


class FeedClient:
    """Fetches the announcement list (a JSON array) from one URL."""

    def __init__(self, url: str, *, timeout: float = 20.0, session: Optional[aiohttp.ClientSession] = None):
        self.url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def fetch(self) -> List[Any]:
        session = self._get_session()
        try:
            async with session.get(self.url, timeout=self._timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise FeedTransportError(f"fetch failed: HTTP {resp.status}", status=resp.status)
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FeedTransportError(f"fetch failed: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise FeedShapeError(f"feed body is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise FeedShapeError(f"feed payload is not a JSON array (got {type(data).__name__})")
        log.debug("fetched %d item(s) from %s", len(data), self.url)
        return data

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
