import asyncio
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from shoplens.adapters.base import PageSnapshot, ProductInfo
from shoplens.engines.base import DOCUMENT_READY, NAVIGATION_FINISHED, NAVIGATION_STARTED, BrowserSession, History
from shoplens.router import UrlRouter
from shoplens.storage.json_store import MemoryStore

FIXTURES = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


class FakeBrowserSession(BrowserSession):
    """
    Scriptable browser for PageMonitor tests.

    navigate() only reports the start; tests decide when a page finishes with
    finish(). Setting snapshot_gate makes snapshot() block until the event is
    set, which lets a test overlap two navigations.
    """
    def __init__(self, pages: Optional[Dict[str, str]] = None) -> None:
        super().__init__()
        self.pages = dict(pages or {})
        self.history = History()
        self.navigations: List[str] = []
        self.reloads = 0
        self.snapshots = 0
        self.snapshot_gate: Optional[asyncio.Event] = None
        self.fail_snapshot = False

    @property
    def current_url(self) -> Optional[str]:
        return self.history.current

    async def navigate(self, url: str) -> None:
        self.navigations.append(url)
        self.history.push(url)
        self.emit(NAVIGATION_STARTED, url)

    def click(self, url: str) -> None:
        """A link click inside the page: the browser starts the navigation itself."""
        self.history.push(url)
        self.emit(NAVIGATION_STARTED, url)

    def finish(self, url: Optional[str] = None) -> None:
        self.emit(NAVIGATION_FINISHED, url or self.current_url or "")

    def ready(self, url: Optional[str] = None) -> None:
        self.emit(DOCUMENT_READY, url or self.current_url or "")

    def can_go_back(self) -> bool:
        return self.history.can_go_back()

    def can_go_forward(self) -> bool:
        return self.history.can_go_forward()

    async def go_back(self) -> None:
        url = self.history.back()
        if url is not None:
            self.emit(NAVIGATION_STARTED, url)

    async def go_forward(self) -> None:
        url = self.history.forward()
        if url is not None:
            self.emit(NAVIGATION_STARTED, url)

    async def reload(self) -> None:
        self.reloads += 1
        self.emit(NAVIGATION_STARTED, self.current_url or "")

    async def snapshot(self) -> PageSnapshot:
        self.snapshots += 1
        if self.fail_snapshot:
            raise RuntimeError("page crashed")
        url = self.current_url or ""
        html = self.pages.get(url, "<html><body></body></html>")
        if self.snapshot_gate is not None:
            await self.snapshot_gate.wait()
        return PageSnapshot(url=url, html=html)


async def settle(rounds: int = 5) -> None:
    """Let scheduled callbacks and spawned tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def jsonld_page(name: str, price: str, currency: str = "TRY", brand: Optional[str] = None) -> str:
    brand_part = f', "brand": {{"@type": "Brand", "name": "{brand}"}}' if brand else ""
    return (
        '<html><head><script type="application/ld+json">'
        f'{{"@context": "https://schema.org", "@type": "Product", "name": "{name}"{brand_part},'
        f' "offers": {{"@type": "Offer", "price": "{price}", "priceCurrency": "{currency}",'
        ' "availability": "https://schema.org/InStock"}}'
        "</script></head><body></body></html>"
    )


@pytest.fixture
def router() -> UrlRouter:
    return UrlRouter()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def product() -> ProductInfo:
    return ProductInfo(
        url="https://www.zara.com/tr/en/linen-shirt-p04786123.html",
        is_product_page=True,
        success=True,
        title="Linen Shirt",
        price=Decimal("1299.90"),
        currency="TRY",
        brand="Zara",
        sku="4786/123",
    )
