from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from ..config import AppConfig
from ..utils.logging import setup_logging
from ..utils.loader import load_symbol
from ..adapters.base import PageSnapshot, ProductInfo
from ..engines.base import BrowserSession
from ..engines.simple_engine import StaticSession
from ..formatting import format_availability, format_price
from ..monitor import PageMonitor
from ..router import UrlRouter
from ..storage.collection import CollectionStore, cart_store, favorites_store
from ..storage.json_store import JSONFileStore

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="ShopLens product extraction CLI")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--storage", type=str, default=None, help="Cart/favorites store path (default from config)")
    p.add_argument("--extra-adapters", type=str, default=None,
                   help="Comma-separated dotted paths for additional adapters")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    sub = p.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Validate a URL and find its retailer")
    resolve.add_argument("url")

    sub.add_parser("retailers", help="List supported retailers")

    search = sub.add_parser("search", help="Build a retailer search URL")
    search.add_argument("retailer", help="Retailer index or name")
    search.add_argument("query")

    extract = sub.add_parser("extract", help="Load a page and print the detected product")
    extract.add_argument("url")
    extract.add_argument("--html", type=str, default=None, help="Extract from a saved HTML file instead of loading")
    extract.add_argument("--browser", action="store_true", help="Use the configured browser engine instead of plain HTTP")

    watch = sub.add_parser("watch", help="Open a browser and report products while you browse")
    watch.add_argument("url")

    for name in ("cart", "favorites"):
        coll = sub.add_parser(name, help=f"Manage the {name} list")
        actions = coll.add_subparsers(dest="action", required=True)
        actions.add_parser("list")
        add = actions.add_parser("add", help="Add a product (extracted from a URL, or read from JSON)")
        add.add_argument("url", nargs="?", default=None)
        add.add_argument("--json", type=str, default=None, help="Product JSON file")
        remove = actions.add_parser("remove", help="Remove the entry at a list position")
        remove.add_argument("position", type=int, help="1-based position as shown by 'list'")
        actions.add_parser("clear")

    serve = sub.add_parser("serve", help="Run REST API server")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="API host")
    serve.add_argument("--port", type=int, default=8000, help="API port")
    return p


def _load_config(args: argparse.Namespace) -> AppConfig:
    if args.config:
        cfg = AppConfig.from_file(args.config)
    else:
        cfg = AppConfig.from_env()

    if args.storage:
        cfg.storage_path = args.storage
    if args.extra_adapters:
        cfg.extra_adapters = [a.strip() for a in args.extra_adapters.split(",") if a.strip()]

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    try:
        import uvicorn  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dep
        raise SystemExit("To run the API, install dependencies: pip install fastapi uvicorn pydantic") from exc
    uvicorn.run("shoplens.apis.app:app", host=host, port=port)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _describe(product: ProductInfo) -> str:
    parts = [product.title or "(untitled)"]
    if product.brand:
        parts.insert(0, product.brand)
    line = " | ".join(parts)
    if product.price is not None:
        line += f" | {format_price(product.price, product.currency)}"
        if product.has_discount:
            line += f" (was {format_price(product.original_price, product.currency)})"
    line += f" | {format_availability(product.availability)}"
    return line


def make_browser(cfg: AppConfig, *, static: bool = False) -> BrowserSession:
    if static:
        return StaticSession(cfg)
    session_cls = load_symbol(cfg.browser_engine)
    return session_cls(cfg)


async def extract_product(cfg: AppConfig, router: UrlRouter, url: str, *, static: bool = True) -> Optional[ProductInfo]:
    """Drive one navigation through a PageMonitor and return what it settled on."""
    browser = make_browser(cfg, static=static)
    # a fetch may legitimately take the whole request timeout before the page exists
    monitor = PageMonitor(browser, router, load_timeout=cfg.load_timeout + cfg.request_timeout)
    try:
        await monitor.initialize(url)
        return await monitor.wait_until_idle()
    finally:
        monitor.close()
        await browser.close()


async def _watch(cfg: AppConfig, router: UrlRouter, url: str) -> None:
    cfg.headless = False
    browser = make_browser(cfg)
    monitor = PageMonitor(browser, router, load_timeout=cfg.load_timeout)
    monitor.on_url_changed(lambda u: logger.info("Now on %s", u))
    monitor.on_loading_state_changed(lambda loading: logger.info("Analyzing page..." if loading else "Idle"))

    def _show(product: Optional[ProductInfo]) -> None:
        if product is not None:
            print(_describe(product), flush=True)

    monitor.on_product_info_changed(_show)
    try:
        await monitor.initialize(url)
        while True:
            await asyncio.sleep(3600)
    finally:
        monitor.close()
        await browser.close()


def _retailer_index(router: UrlRouter, value: str) -> int:
    if value.isdigit():
        return int(value)
    for i, definition in enumerate(router.retailers):
        if definition.name.casefold() == value.casefold():
            return i
    return -1


def _run_collection(cfg: AppConfig, router: UrlRouter, args: argparse.Namespace) -> int:
    persistence = JSONFileStore(cfg.storage_path)
    store: CollectionStore = cart_store(persistence) if args.command == "cart" else favorites_store(persistence)

    if args.action == "list":
        products = store.list()
        if not products:
            print(f"{args.command} is empty")
        for i, product in enumerate(products, start=1):
            print(f"{i:>3}. {_describe(product)}\n     {product.url}")
        return 0

    if args.action == "clear":
        return 0 if store.clear() else 1

    if args.action == "remove":
        products = store.list()
        if not 1 <= args.position <= len(products):
            print(f"No entry at position {args.position}")
            return 1
        return 0 if store.remove(products[args.position - 1]) else 1

    # add
    if args.json:
        product = ProductInfo.from_dict(json.loads(Path(args.json).read_text(encoding="utf-8")))
    elif args.url:
        resolution = router.process_url(args.url)
        if not resolution.is_valid:
            print(resolution.error_message)
            return 1
        product = asyncio.run(extract_product(cfg, router, resolution.normalized_url))
    else:
        print("Give a product URL or --json FILE")
        return 2
    if product is None or not product.is_product:
        print("No product detected")
        return 1
    if not store.add(product):
        print(f"Failed to add to {args.command}")
        return 1
    print(f"Added: {_describe(product)}")
    return 0


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "serve":
        run_server(args.host, args.port)
        return 0

    try:
        cfg = _load_config(args)
    except (OSError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    router = UrlRouter.from_config(cfg)

    if args.command == "resolve":
        resolution = router.process_url(args.url)
        _print_json(resolution.to_dict())
        return 0 if resolution.is_valid else 1

    if args.command == "retailers":
        for i, definition in enumerate(router.retailers):
            print(f"{i:>3}  {definition.name:<20} {definition.default_url}")
        return 0

    if args.command == "search":
        url = router.retailers.search_url(_retailer_index(router, args.retailer), args.query)
        if not url:
            print(f"Unknown retailer {args.retailer!r}")
            return 1
        print(url)
        return 0

    if args.command == "extract":
        if args.html:
            _, adapter = router.resolve_adapter(args.url)
            if adapter is None:
                adapter = router.adapters.generic
            html = Path(args.html).read_text(encoding="utf-8")
            product = adapter.extract(PageSnapshot(url=args.url, html=html))
        else:
            resolution = router.process_url(args.url)
            if not resolution.is_valid:
                print(resolution.error_message)
                return 1
            product = asyncio.run(
                extract_product(cfg, router, resolution.normalized_url, static=not args.browser)
            )
        if product is None or not product.is_product:
            print("No product detected")
            return 1
        _print_json(product.to_dict())
        return 0

    if args.command == "watch":
        resolution = router.process_url(args.url)
        if not resolution.is_valid:
            print(resolution.error_message)
            return 1
        try:
            asyncio.run(_watch(cfg, router, resolution.normalized_url))
        except KeyboardInterrupt:
            pass
        return 0

    return _run_collection(cfg, router, args)
