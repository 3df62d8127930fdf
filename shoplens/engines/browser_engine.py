from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .base import (
    BRIDGE_MESSAGE,
    DOCUMENT_READY,
    NAVIGATION_FINISHED,
    NAVIGATION_STARTED,
    URL_CHANGED,
    BrowserSession,
    History,
)
from ..adapters.base import PageSnapshot
from ..config import AppConfig


def app_data_dir() -> Path:
    base = os.getenv("LOCALAPPDATA") or str(Path.home() / ".shoplens")
    p = Path(base) / "shoplens"
    p.mkdir(parents=True, exist_ok=True)
    return p


BROWSERS_DIR = app_data_dir() / "ms-playwright"
os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", str(BROWSERS_DIR))

from playwright.async_api import Browser, BrowserContext, Frame, Page, Playwright, Request, async_playwright  # noqa: E402

logger = logging.getLogger(__name__)

BRIDGE_FUNCTION = "shoplensBridge"

# Page-side half of the bridge: exposes ShopLens.postMessage and reports
# client-side route changes the same way the page script reports products.
BRIDGE_SCRIPT = """
(() => {
  if (window.ShopLens) return;
  const post = (m) => window.%(fn)s(typeof m === 'string' ? m : JSON.stringify(m));
  window.ShopLens = { postMessage: post };
  const notify = () => post({ navigated: true, url: location.href });
  for (const name of ['pushState', 'replaceState']) {
    const original = history[name];
    history[name] = function () {
      const result = original.apply(this, arguments);
      notify();
      return result;
    };
  }
  window.addEventListener('popstate', notify);
})();
""" % {"fn": BRIDGE_FUNCTION}


class PlaywrightSession(BrowserSession):
    """
    Chromium page driven through Playwright.

    Main-frame navigation requests become navigation-started events, the page
    ``domcontentloaded`` event becomes document-ready, ``load`` becomes
    navigation-finished, and ``framenavigated`` reports
    address changes. Playwright has no history query, so back/forward depth is
    tracked locally.
    """
    def __init__(self, config: AppConfig | None = None) -> None:
        super().__init__()
        self.config = config or AppConfig()
        self._history = History()
        self._pw: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("PlaywrightSession.start() has not been awaited")
        return self._page

    @property
    def current_url(self) -> Optional[str]:
        return self._page.url if self._page is not None else None

    async def start(self) -> None:
        if self._page is not None:
            return
        self._pw = await async_playwright().start()
        self._browser = await self._pw.chromium.launch(headless=self.config.headless)
        self._context = await self._browser.new_context(user_agent=self.config.user_agent)
        await self._context.expose_function(BRIDGE_FUNCTION, self._on_bridge)
        await self._context.add_init_script(BRIDGE_SCRIPT)
        page = await self._context.new_page()
        page.set_default_navigation_timeout(self.config.request_timeout * 1000)
        page.on("request", self._on_request)
        page.on("framenavigated", self._on_frame_navigated)
        page.on("domcontentloaded", self._on_dom_content_loaded)
        page.on("load", self._on_load)
        self._page = page
        logger.debug("Playwright session started (headless=%s, browsers=%s)", self.config.headless, BROWSERS_DIR)

    async def close(self) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._pw is not None:
            await self._pw.stop()
        self._page = self._context = self._browser = self._pw = None

    # ---- Capability ----

    async def navigate(self, url: str) -> None:
        await self.page.goto(url, wait_until="domcontentloaded")

    def can_go_back(self) -> bool:
        return self._history.can_go_back()

    def can_go_forward(self) -> bool:
        return self._history.can_go_forward()

    async def go_back(self) -> None:
        if self._history.back() is not None:
            await self.page.go_back(wait_until="domcontentloaded")

    async def go_forward(self) -> None:
        if self._history.forward() is not None:
            await self.page.go_forward(wait_until="domcontentloaded")

    async def reload(self) -> None:
        await self.page.reload(wait_until="domcontentloaded")

    async def snapshot(self) -> PageSnapshot:
        return PageSnapshot(url=self.page.url, html=await self.page.content())

    # ---- Playwright event handlers ----

    def _on_request(self, request: Request) -> None:
        if self._page is None or not request.is_navigation_request():
            return
        # redirect hops belong to the navigation that is already running
        if request.frame == self._page.main_frame and request.redirected_from is None:
            self.emit(NAVIGATION_STARTED, request.url)

    def _on_frame_navigated(self, frame: Frame) -> None:
        if self._page is None or frame != self._page.main_frame:
            return
        url = frame.url
        if url == self._history.current:
            return
        self._history.push(url)
        self.emit(URL_CHANGED, url)

    def _on_dom_content_loaded(self, page: Page) -> None:
        self.emit(DOCUMENT_READY, page.url)

    def _on_load(self, page: Page) -> None:
        self.emit(NAVIGATION_FINISHED, page.url)

    def _on_bridge(self, message: Any) -> None:
        if not isinstance(message, str):
            message = json.dumps(message)
        self.emit(BRIDGE_MESSAGE, message)
