from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Optional
import logging

try:
    from fastapi import Depends, FastAPI, HTTPException
    from pydantic import BaseModel
except Exception as exc:  # pragma: no cover - optional dependency
    raise RuntimeError(
        "FastAPI not installed. Install with `pip install fastapi pydantic uvicorn` "
        "or avoid using the API server."
    ) from exc

from ..config import AppConfig
from ..adapters.base import PageSnapshot, ProductInfo
from ..router import UrlRouter
from ..storage.base import Persistence
from ..storage.collection import CollectionStore, cart_store, favorites_store
from ..storage.json_store import JSONFileStore
from ..storage.settings import Settings
from ..ui.cli import extract_product
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="shoplens API", version=__version__)


class ResolveRequest(BaseModel):
    url: str


class ExtractRequest(BaseModel):
    url: str
    # Serialized page; when given, nothing is fetched
    html: Optional[str] = None


class ProductPayload(BaseModel):
    product: Dict[str, Any]


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    cfg = AppConfig.from_env()
    cfg.validate()
    return cfg


@lru_cache(maxsize=1)
def get_router() -> UrlRouter:
    return UrlRouter.from_config(get_config())


@lru_cache(maxsize=1)
def get_persistence() -> Persistence:
    return JSONFileStore(get_config().storage_path)


def _collection(name: str, persistence: Persistence) -> CollectionStore:
    return cart_store(persistence) if name == "cart" else favorites_store(persistence)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


@app.get("/retailers")
async def retailers(router: UrlRouter = Depends(get_router)) -> List[Dict[str, Any]]:
    return [dict(d.to_dict(), index=i) for i, d in enumerate(router.retailers)]


@app.post("/resolve")
async def resolve(req: ResolveRequest, router: UrlRouter = Depends(get_router)) -> Dict[str, Any]:
    return router.process_url(req.url).to_dict()


@app.get("/search-url")
async def search_url(retailer: int, q: str, router: UrlRouter = Depends(get_router)) -> Dict[str, str]:
    url = router.retailers.search_url(retailer, q)
    if not url:
        raise HTTPException(status_code=404, detail=f"No retailer at index {retailer}")
    return {"url": url}


@app.post("/extract")
async def extract(
    req: ExtractRequest,
    router: UrlRouter = Depends(get_router),
    cfg: AppConfig = Depends(get_config),
) -> Dict[str, Any]:
    resolution = router.process_url(req.url)
    if not resolution.is_valid:
        raise HTTPException(status_code=422, detail=resolution.error_message)

    if req.html is not None:
        _, adapter = router.resolve_adapter(resolution.normalized_url)
        try:
            product: Optional[ProductInfo] = adapter.extract(
                PageSnapshot(url=resolution.normalized_url, html=req.html)
            )
        except Exception as exc:
            logger.warning("Adapter %s failed on %s: %r", adapter.name, resolution.normalized_url, exc)
            product = None
    else:
        product = await extract_product(cfg, router, resolution.normalized_url)

    if product is None or not product.is_product:
        return {"isProductPage": False, "product": None}
    return {"isProductPage": True, "product": product.to_dict()}


def _register_collection(name: str) -> None:
    @app.get(f"/{name}", name=f"list_{name}")
    async def list_entries(persistence: Persistence = Depends(get_persistence)) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in _collection(name, persistence).list()]

    @app.post(f"/{name}", name=f"add_{name}")
    async def add_entry(payload: ProductPayload, persistence: Persistence = Depends(get_persistence)) -> Dict[str, Any]:
        product = ProductInfo.from_dict(payload.product)
        if not product.url:
            raise HTTPException(status_code=422, detail="product.url is required")
        if not product.is_product:
            raise HTTPException(status_code=422, detail="product must have isProductPage and success set")
        store = _collection(name, persistence)
        return {"added": store.add(product), "count": store.count()}

    @app.post(f"/{name}/remove", name=f"remove_{name}")
    async def remove_entry(payload: ProductPayload, persistence: Persistence = Depends(get_persistence)) -> Dict[str, Any]:
        store = _collection(name, persistence)
        return {"removed": store.remove(ProductInfo.from_dict(payload.product)), "count": store.count()}

    @app.post(f"/{name}/contains", name=f"contains_{name}")
    async def contains_entry(payload: ProductPayload, persistence: Persistence = Depends(get_persistence)) -> Dict[str, bool]:
        return {"contains": _collection(name, persistence).contains(ProductInfo.from_dict(payload.product))}

    @app.delete(f"/{name}", name=f"clear_{name}")
    async def clear_entries(persistence: Persistence = Depends(get_persistence)) -> Dict[str, bool]:
        return {"cleared": _collection(name, persistence).clear()}


_register_collection("cart")
_register_collection("favorites")


class SettingsPayload(BaseModel):
    currency: Optional[str] = None
    dark_mode: Optional[bool] = None
    enable_notifications: Optional[bool] = None
    last_retailer_index: Optional[int] = None


@app.get("/settings")
async def get_settings(persistence: Persistence = Depends(get_persistence)) -> Dict[str, Any]:
    return Settings.load(persistence).to_dict()


@app.put("/settings")
async def put_settings(payload: SettingsPayload, persistence: Persistence = Depends(get_persistence)) -> Dict[str, Any]:
    settings = Settings.load(persistence)
    for key, value in payload.model_dump(exclude_none=True).items():
        setattr(settings, key, value)
    try:
        saved = settings.save(persistence)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if not saved:
        raise HTTPException(status_code=500, detail="Settings could not be saved")
    return settings.to_dict()
