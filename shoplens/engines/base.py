from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from ..adapters.base import PageSnapshot

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]

NAVIGATION_STARTED = "navigation_started"
NAVIGATION_FINISHED = "navigation_finished"
URL_CHANGED = "url_changed"
# DOM parsed; subresources may still be loading
DOCUMENT_READY = "document_ready"
BRIDGE_MESSAGE = "bridge_message"


class History:
    """Back/forward list kept by sessions whose driver does not expose one."""

    def __init__(self) -> None:
        self._entries: List[str] = []
        self._index = -1

    @property
    def current(self) -> Optional[str]:
        return self._entries[self._index] if self._index >= 0 else None

    def push(self, url: str) -> None:
        if url == self.current:
            return
        del self._entries[self._index + 1:]
        self._entries.append(url)
        self._index = len(self._entries) - 1

    def replace(self, url: str) -> None:
        if self._index < 0:
            self.push(url)
        else:
            self._entries[self._index] = url

    def can_go_back(self) -> bool:
        return self._index > 0

    def can_go_forward(self) -> bool:
        return self._index < len(self._entries) - 1

    def back(self) -> Optional[str]:
        if not self.can_go_back():
            return None
        self._index -= 1
        return self.current

    def forward(self) -> Optional[str]:
        if not self.can_go_forward():
            return None
        self._index += 1
        return self.current


class BrowserSession(ABC):
    """
    Embedded-browser capability the PageMonitor drives.

    Implementations own the page lifecycle and report what happens through event
    hooks: navigation started/finished, document ready, address changes and
    messages posted by the injected page script. Sessions without an early DOM
    signal never fire document ready. Listeners are plain callables; sessions
    call them on the event loop that owns the monitor.
    """
    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {
            NAVIGATION_STARTED: [],
            NAVIGATION_FINISHED: [],
            URL_CHANGED: [],
            DOCUMENT_READY: [],
            BRIDGE_MESSAGE: [],
        }

    # ---- Event hooks ----

    def add_listener(self, event: str, listener: Listener) -> Callable[[], None]:
        listeners = self._listeners[event]
        listeners.append(listener)

        def remove() -> None:
            if listener in listeners:
                listeners.remove(listener)

        return remove

    def on_navigation_started(self, listener: Listener) -> Callable[[], None]:
        return self.add_listener(NAVIGATION_STARTED, listener)

    def on_navigation_finished(self, listener: Listener) -> Callable[[], None]:
        return self.add_listener(NAVIGATION_FINISHED, listener)

    def on_url_changed(self, listener: Listener) -> Callable[[], None]:
        return self.add_listener(URL_CHANGED, listener)

    def on_document_ready(self, listener: Listener) -> Callable[[], None]:
        return self.add_listener(DOCUMENT_READY, listener)

    def on_bridge_message(self, listener: Listener) -> Callable[[], None]:
        return self.add_listener(BRIDGE_MESSAGE, listener)

    def emit(self, event: str, payload: str) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(payload)
            except Exception as exc:
                logger.warning("%s listener %r failed: %r", event, listener, exc)

    # ---- Lifecycle ----

    async def start(self) -> None:
        """Acquire driver resources. Default: nothing to do."""

    async def close(self) -> None:
        """Release driver resources. Default: nothing to do."""

    # ---- Capability ----

    @property
    @abstractmethod
    def current_url(self) -> Optional[str]:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def navigate(self, url: str) -> None:  # pragma: no cover - interface
        ...

    @abstractmethod
    def can_go_back(self) -> bool:  # pragma: no cover - interface
        ...

    @abstractmethod
    def can_go_forward(self) -> bool:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def go_back(self) -> None:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def go_forward(self) -> None:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def reload(self) -> None:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def snapshot(self) -> PageSnapshot:  # pragma: no cover - interface
        """Serialize the currently loaded page for the extraction adapters."""
        ...
