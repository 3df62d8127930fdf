from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional
from aiohttp import ClientResponseError, ClientSession, ClientTimeout
import aiohttp
import logging

logger = logging.getLogger(__name__)

# Retailer storefronts pick the locale from this before falling back to geo-IP
DEFAULT_ACCEPT_LANGUAGE = "tr-TR,tr;q=0.9,en;q=0.8"


@dataclass(frozen=True)
class FetchedPage:
    # URL after redirects; storefronts often bounce to a regional path
    url: str
    status: int
    text: str


def _retryable(exc: Exception) -> bool:
    if isinstance(exc, ClientResponseError):
        return exc.status == 429 or exc.status >= 500
    return True


async def fetch_page(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 15.0,
    user_agent: Optional[str] = None,
    retries: int = 2,
) -> Optional[FetchedPage]:
    """
    Fetch a page and return its final URL and body. Returns None on failure.

    Server errors, throttling and network errors are retried with backoff;
    other 4xx answers are final.
    """
    headers = {}
    if user_agent:
        headers["User-Agent"] = user_agent

    last_exc: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            async with session.get(url, headers=headers, timeout=ClientTimeout(total=timeout)) as resp:
                resp.raise_for_status()
                return FetchedPage(url=str(resp.url), status=resp.status, text=await resp.text())
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as exc:
            last_exc = exc
            logger.debug("fetch_page attempt %s failed for %s: %r", attempt + 1, url, exc)
            if not _retryable(exc) or attempt == retries:
                break
            await asyncio.sleep(min(2 ** attempt, 5))
    logger.warning("fetch_page gave up on %s: %r", url, last_exc)
    return None


def create_session(accept_language: str = DEFAULT_ACCEPT_LANGUAGE) -> ClientSession:
    """
    Create the aiohttp ClientSession a static browser session browses with.
    Cookies persist across navigations, like a real tab.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    connector = aiohttp.TCPConnector(limit_per_host=4)
    return aiohttp.ClientSession(
        connector=connector,
        headers={"Accept-Language": accept_language},
        cookie_jar=aiohttp.CookieJar(),
    )
