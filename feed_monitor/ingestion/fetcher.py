"""Feed fetcher - one HTTP retrieval of the monitored feed."""

import asyncio
import time
from typing import Optional

import aiohttp
import structlog

from .interfaces import FetcherInterface
from ..config.settings import settings
from ..errors import HttpError, TransportError

logger = structlog.get_logger()


class FeedFetcher(FetcherInterface):
    """Async fetcher returning the raw feed payload.

    No retries and no parsing: the body is returned as bytes exactly as
    received. Use as an async context manager to share one session across
    fetches; otherwise each fetch opens its own session.
    """

    def __init__(self, timeout_seconds: float = None, user_agent: str = None):
        self.timeout_seconds = timeout_seconds or settings.fetch_timeout_seconds
        self.user_agent = user_agent or settings.user_agent
        self.session: Optional[aiohttp.ClientSession] = None

    def _new_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            headers={"User-Agent": self.user_agent}
        )

    async def __aenter__(self):
        self.session = self._new_session()
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str) -> bytes:
        """Fetch the payload at url.

        Raises:
            TransportError: no response (DNS, connection, TLS, timeout)
            HttpError: response status other than 200
        """
        if self.session is not None:
            return await self._fetch(self.session, url)

        async with self._new_session() as session:
            return await self._fetch(session, url)

    async def _fetch(self, session: aiohttp.ClientSession, url: str) -> bytes:
        start_time = time.time()

        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise HttpError(url, response.status, response.reason)
                payload = await response.read()
        except HttpError as e:
            logger.warning("feed_http_error", url=url[:80], status=e.status)
            raise
        except asyncio.TimeoutError:
            logger.warning("feed_fetch_timeout", url=url[:80], timeout=self.timeout_seconds)
            raise TransportError(url, f"Timed out after {self.timeout_seconds}s")
        except (aiohttp.ClientError, ValueError) as e:
            # ValueError covers URLs aiohttp refuses to build a request for
            logger.warning("feed_transport_error", url=url[:80], error=str(e))
            raise TransportError(url, str(e) or e.__class__.__name__) from e

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.info("feed_fetched", url=url[:80], size=len(payload), time_ms=elapsed_ms)
        return payload
