from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Coroutine, List, Optional, Set, TypeVar

from .adapters.base import ProductInfo
from .engines.base import BrowserSession
from .router import UrlRouter
from .utils.parsing import normalize_url, parse_price

logger = logging.getLogger(__name__)

DEFAULT_LOAD_TIMEOUT = 5.0
# A product-like page that has not rendered its data yet is re-read after
# retry_delay * n seconds, n = 1..max_retries
DEFAULT_RETRY_DELAY = 0.8
DEFAULT_MAX_RETRIES = 8

T = TypeVar("T")


class MonitorState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PRODUCT_DETECTED = "product_detected"
    SETTLED = "settled"
    TIMED_OUT = "timed_out"


class PageMonitor:
    """
    Tracks the page shown in a BrowserSession and publishes three streams:
    loading state, detected product (or None) and current URL.

    All state lives on one asyncio loop. Every navigation gets a new sequence
    number; extraction results, bridge messages and timeouts carry the number
    they were started under and are dropped once it is no longer current. Each
    navigation sees at most one terminal outcome (product, settled, timed out).

    A navigation owns the addresses it was started at or redirected through;
    finish events for any other address come from an overtaken load and are
    ignored. Extraction runs on document ready and again on finish, and a
    product-shaped page without its data yet is re-read on a growing delay
    until it renders, retries run out, or the timeout fires.
    """
    def __init__(
        self,
        browser: BrowserSession,
        router: UrlRouter | None = None,
        *,
        load_timeout: float = DEFAULT_LOAD_TIMEOUT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.browser = browser
        self.router = router or UrlRouter()
        self.load_timeout = load_timeout
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self._loop = loop

        self.state = MonitorState.IDLE
        self._seq = 0
        self._terminal = False
        self._dismissed = False
        self._loading = False
        self._pending_programmatic = False
        self._product: Optional[ProductInfo] = None
        self._url: Optional[str] = None
        # normalized addresses the current navigation has been seen at
        self._nav_urls: Set[str] = set()
        self._finished_seq = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._idle: Optional[asyncio.Event] = None

        self._loading_subscribers: List[Callable[[bool], None]] = []
        self._product_subscribers: List[Callable[[Optional[ProductInfo]], None]] = []
        self._url_subscribers: List[Callable[[str], None]] = []

        self._detach = [
            browser.on_navigation_started(self.handle_navigation_started),
            browser.on_navigation_finished(self._on_browser_finished),
            browser.on_url_changed(self.handle_url_changed),
            browser.on_document_ready(self._on_document_ready),
            browser.on_bridge_message(self.handle_bridge_message),
        ]

    # ---- Read-only state ----

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def product(self) -> Optional[ProductInfo]:
        return self._product

    @property
    def current_url(self) -> Optional[str]:
        return self._url

    @property
    def navigation_seq(self) -> int:
        return self._seq

    # ---- Subscriptions ----

    def on_loading_state_changed(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        return self._subscribe(self._loading_subscribers, callback)

    def on_product_info_changed(self, callback: Callable[[Optional[ProductInfo]], None]) -> Callable[[], None]:
        return self._subscribe(self._product_subscribers, callback)

    def on_url_changed(self, callback: Callable[[str], None]) -> Callable[[], None]:
        return self._subscribe(self._url_subscribers, callback)

    def _subscribe(self, subscribers: List[Callable[[T], None]], callback: Callable[[T], None]) -> Callable[[], None]:
        subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in subscribers:
                subscribers.remove(callback)

        return unsubscribe

    def _publish(self, subscribers: List[Callable[[T], None]], value: T) -> None:
        for callback in list(subscribers):
            try:
                callback(value)
            except Exception as exc:
                logger.warning("Subscriber %r failed: %r", callback, exc)

    # ---- Navigation entry points ----

    async def initialize(self, url: str) -> None:
        await self.browser.start()
        await self.load_url(url)

    async def load_url(self, url: str) -> None:
        """Start a navigation; any earlier navigation's outcome is abandoned."""
        self._bind_loop()
        self._begin(url)
        # the session echoes this navigation as a start event; that echo must not open a second cycle
        self._pending_programmatic = True
        try:
            await self.browser.navigate(url)
        except Exception as exc:
            # the timer still bounds the loading indicator
            self._pending_programmatic = False
            logger.warning("Navigation to %s failed: %r", url, exc)

    def handle_navigation_started(self, url: str) -> None:
        if self._pending_programmatic:
            self._pending_programmatic = False
            if url:
                self._nav_urls.add(normalize_url(url))
            self._set_url(url)
            return
        self._begin(url)

    async def handle_navigation_finished(self, url: str) -> None:
        seq = self._seq
        if self._terminal:
            logger.debug("Navigation %s already settled; ignoring finish for %s", seq, url)
            return
        if url and not self._belongs(url):
            # a load that an earlier navigation started and a newer one overtook
            logger.debug("Finish for %s does not belong to navigation %s; ignoring", url, seq)
            return
        self._pending_programmatic = False
        if seq == self._finished_seq:
            logger.debug("Navigation %s finished twice; keeping the first", seq)
            return
        self._finished_seq = seq
        if url:
            self._set_url(url)
        await self._detect(seq, url or self._url or "")

    async def handle_document_ready(self, url: str) -> None:
        """
        Early extraction once the DOM is parsed. A hit settles the navigation
        before the page's load event; a miss leaves it to navigation-finished.
        """
        seq = self._seq
        if self._terminal or self.state is not MonitorState.LOADING:
            return
        if url and not self._belongs(url):
            return
        result = await self._extract(url or self._url or "", seq)
        if result is not None and result.is_product:
            self._deliver(seq, result)

    def handle_url_changed(self, url: str) -> None:
        if not url:
            return
        same_page = self._url is not None and normalize_url(url) == normalize_url(self._url)
        self._set_url(url)
        if self.state is MonitorState.LOADING:
            # redirects and in-page hops during a load belong to it
            self._nav_urls.add(normalize_url(url))
            return
        if same_page:
            return
        # client-side route change: new silent cycle, no loading indicator
        self._seq += 1
        self._cancel_timer()
        self._terminal = False
        self._dismissed = False
        self._nav_urls = {normalize_url(url)}
        self.state = MonitorState.IDLE
        logger.debug("URL changed to %s outside a load; navigation %s", url, self._seq)
        self._set_product(None)

    def handle_bridge_message(self, raw: Any) -> None:
        """
        Accept a message posted by the injected page script: a product JSON
        object, a ``{"navigated": true, "url": ...}`` notification, or the legacy
        ``price|title`` string.
        """
        data: Any = raw
        if isinstance(raw, (str, bytes)):
            try:
                data = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError):
                data = None

        if isinstance(data, dict):
            if data.get("navigated") and isinstance(data.get("url"), str):
                self.handle_url_changed(data["url"])
                return
            if data.get("isProductPage") is True:
                try:
                    product = ProductInfo.from_dict(data)
                except (TypeError, ValueError) as exc:
                    logger.warning("Unreadable product message: %r", exc)
                    return
                self._deliver_from_bridge(product)
                return
            logger.debug("Bridge message without product or navigation data: %s", sorted(data))
            return

        if isinstance(raw, str) and "|" in raw:
            price_text, _, title = raw.partition("|")
            price = parse_price(price_text)
            if price is not None and title.strip():
                self._deliver_from_bridge(ProductInfo(
                    url=self._url or "",
                    is_product_page=True,
                    success=True,
                    title=title.strip(),
                    price=price,
                    extraction_method="bridge-legacy",
                ))
                return
        logger.warning("Ignoring malformed bridge message: %.200r", raw)

    def dismiss_loading(self) -> None:
        """User closed the loading indicator; the pending timer must not touch it again."""
        self._dismissed = True
        self._set_loading(False)

    # ---- Navigation controls ----

    def can_go_back(self) -> bool:
        return self.browser.can_go_back()

    def can_go_forward(self) -> bool:
        return self.browser.can_go_forward()

    async def go_back(self) -> None:
        if self.browser.can_go_back():
            await self.browser.go_back()

    async def go_forward(self) -> None:
        if self.browser.can_go_forward():
            await self.browser.go_forward()

    async def reload(self) -> None:
        await self.browser.reload()

    async def wait_until_idle(self, timeout: float | None = None) -> Optional[ProductInfo]:
        """Wait for the loading indicator to clear and return the shown product."""
        self._bind_loop()
        if self._idle is None or self._idle.is_set():
            return self._product
        await asyncio.wait_for(self._idle.wait(), timeout)
        return self._product

    # ---- Cross-thread entry points ----

    def _call_threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        if self._loop is None:
            raise RuntimeError("PageMonitor is not bound to an event loop yet")
        self._loop.call_soon_threadsafe(callback, *args)

    def handle_navigation_started_threadsafe(self, url: str) -> None:
        self._call_threadsafe(self.handle_navigation_started, url)

    def handle_navigation_finished_threadsafe(self, url: str) -> None:
        self._call_threadsafe(self._on_browser_finished, url)

    def handle_url_changed_threadsafe(self, url: str) -> None:
        self._call_threadsafe(self.handle_url_changed, url)

    def handle_bridge_message_threadsafe(self, raw: Any) -> None:
        self._call_threadsafe(self.handle_bridge_message, raw)

    def dismiss_loading_threadsafe(self) -> None:
        self._call_threadsafe(self.dismiss_loading)

    def close(self) -> None:
        self._cancel_timer()
        for detach in self._detach:
            detach()
        self._detach = []
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    # ---- Internals ----

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        if self._idle is None:
            self._idle = asyncio.Event()
            if not self._loading:
                self._idle.set()
        return self._loop

    def _begin(self, url: str) -> None:
        loop = self._bind_loop()
        self._seq += 1
        self._cancel_timer()
        self._terminal = False
        self._dismissed = False
        self._nav_urls = {normalize_url(url)} if url else set()
        self.state = MonitorState.LOADING
        logger.debug("Navigation %s started: %s", self._seq, url)
        self._set_url(url)
        self._set_product(None)
        self._set_loading(True)
        self._timer = loop.call_later(self.load_timeout, self._on_timeout, self._seq)

    def _belongs(self, url: str) -> bool:
        return not self._nav_urls or normalize_url(url) in self._nav_urls

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        loop = self._bind_loop()
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_browser_finished(self, url: str) -> None:
        self._spawn(self.handle_navigation_finished(url))

    def _on_document_ready(self, url: str) -> None:
        self._spawn(self.handle_document_ready(url))

    async def _detect(self, seq: int, url: str) -> None:
        attempt = 0
        while True:
            result = await self._extract(url, seq)
            if seq != self._seq or self._terminal:
                return
            if result is not None and result.is_product:
                self._deliver(seq, result)
                return
            # product-shaped page whose data is still rendering
            rendering = result is not None and result.is_product_page
            if not rendering or attempt >= self.max_retries:
                if result is not None:
                    logger.debug("No product on %s (%s)", url, result.extraction_method)
                self._deliver(seq, None)
                return
            attempt += 1
            logger.debug("Product data on %s incomplete; retry %s/%s", url, attempt, self.max_retries)
            await asyncio.sleep(self.retry_delay * attempt)
            if seq != self._seq or self._terminal:
                return

    async def _extract(self, url: str, seq: int) -> Optional[ProductInfo]:
        _, adapter = self.router.resolve_adapter(url)
        if adapter is None:
            logger.debug("No retailer for %s; nothing to extract", url)
            return None
        try:
            snapshot = await self.browser.snapshot()
        except Exception as exc:
            logger.warning("Could not snapshot %s: %r", url, exc)
            return None
        if seq != self._seq:
            return None
        if snapshot.url and not self._belongs(snapshot.url):
            logger.debug("Snapshot of %s is not the page of navigation %s", snapshot.url, seq)
            return None
        try:
            return adapter.extract(snapshot)
        except Exception as exc:
            logger.warning("Adapter %s failed on %s: %r", getattr(adapter, "name", adapter), url, exc)
            return None

    def _deliver_from_bridge(self, product: ProductInfo) -> None:
        if not product.success:
            logger.debug("Bridge reported an incomplete product for %s", product.url)
            return
        if product.url and self._url and normalize_url(product.url) != normalize_url(self._url):
            logger.debug("Dropping bridge product for %s; now on %s", product.url, self._url)
            return
        self._deliver(self._seq, product)

    def _deliver(self, seq: int, product: Optional[ProductInfo]) -> bool:
        if seq != self._seq:
            logger.debug("Discarding outcome of navigation %s (current is %s)", seq, self._seq)
            return False
        if self._terminal:
            logger.debug("Navigation %s already has an outcome", seq)
            return False
        self._terminal = True
        self._cancel_timer()
        if product is not None:
            self.state = MonitorState.PRODUCT_DETECTED
            self._product = product
            self._publish(self._product_subscribers, product)
        else:
            self.state = MonitorState.SETTLED
            self._product = None
            self._publish(self._product_subscribers, None)
        self._set_loading(False)
        return True

    def _on_timeout(self, seq: int) -> None:
        if seq != self._seq:
            return
        self._timer = None
        if self._terminal:
            return
        self._terminal = True
        self.state = MonitorState.TIMED_OUT
        logger.debug("Navigation %s timed out after %ss", seq, self.load_timeout)
        if not self._dismissed:
            self._set_loading(False)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set_loading(self, loading: bool) -> None:
        if loading == self._loading:
            return
        self._loading = loading
        if self._idle is not None:
            if loading:
                self._idle.clear()
            else:
                self._idle.set()
        self._publish(self._loading_subscribers, loading)

    def _set_product(self, product: Optional[ProductInfo]) -> None:
        if product is None and self._product is None:
            return
        self._product = product
        self._publish(self._product_subscribers, product)

    def _set_url(self, url: str) -> None:
        if url and url != self._url:
            self._url = url
            self._publish(self._url_subscribers, url)
