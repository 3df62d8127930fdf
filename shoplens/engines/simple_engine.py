from __future__ import annotations

import logging
from typing import Optional

from aiohttp import ClientSession

from .base import NAVIGATION_FINISHED, NAVIGATION_STARTED, URL_CHANGED, BrowserSession, History
from ..adapters.base import PageSnapshot
from ..config import AppConfig
from ..utils.http import create_session, fetch_page

logger = logging.getLogger(__name__)


class StaticSession(BrowserSession):
    """
    A pragmatic, browser-less session.
    - Fetches HTML over aiohttp; no JavaScript runs, so no bridge messages.
    - Every load fires navigation-started then navigation-finished.
    - A failed fetch still finishes the navigation, with an empty page.
    - A load overtaken by a newer one never finishes.
    """
    def __init__(self, config: AppConfig | None = None, session: ClientSession | None = None) -> None:
        super().__init__()
        self.config = config or AppConfig()
        self._session = session
        self._owns_session = session is None
        self._history = History()
        self._html = ""
        # bumped per load; a response for an older load is dropped
        self._generation = 0

    @property
    def current_url(self) -> Optional[str]:
        return self._history.current

    async def start(self) -> None:
        if self._session is None:
            self._session = create_session()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def _load(self, url: str) -> None:
        await self.start()
        self._generation += 1
        generation = self._generation
        self.emit(NAVIGATION_STARTED, url)
        page = await fetch_page(
            self._session,
            url,
            timeout=self.config.request_timeout,
            user_agent=self.config.user_agent,
            retries=self.config.retries,
        )
        if generation != self._generation:
            logger.debug("Load of %s was superseded; dropping its response", url)
            return
        if page is None:
            logger.info("No content for %s; finishing with an empty page", url)
            self._html = ""
            self.emit(NAVIGATION_FINISHED, url)
            return
        if page.url != url:
            logger.debug("Redirected %s -> %s", url, page.url)
            self._history.replace(page.url)
            self.emit(URL_CHANGED, page.url)
        self._html = page.text
        self.emit(NAVIGATION_FINISHED, page.url)

    async def navigate(self, url: str) -> None:
        self._history.push(url)
        await self._load(url)

    def can_go_back(self) -> bool:
        return self._history.can_go_back()

    def can_go_forward(self) -> bool:
        return self._history.can_go_forward()

    async def go_back(self) -> None:
        url = self._history.back()
        if url is not None:
            await self._load(url)

    async def go_forward(self) -> None:
        url = self._history.forward()
        if url is not None:
            await self._load(url)

    async def reload(self) -> None:
        if self._history.current is not None:
            await self._load(self._history.current)

    async def snapshot(self) -> PageSnapshot:
        return PageSnapshot(url=self._history.current or "", html=self._html)
