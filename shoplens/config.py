from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from typing import List, Optional, Dict, Any
from pathlib import Path
import logging
import os
import json

from .version import __version__, CONFIG_SCHEMA_VERSION

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class AppConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) to stay upgrade-friendly.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    # Seconds before the loading indicator is force-cleared for a navigation
    load_timeout: float = 5.0
    storage_path: str = "data/shoplens.json"
    # Optional JSON list replacing the built-in retailer table
    retailers_path: Optional[str] = None
    # Extra adapters (dotted class paths) to register at startup
    extra_adapters: List[str] = field(default_factory=list)
    # Dotted path of the BrowserSession implementation
    browser_engine: str = "shoplens.engines.browser_engine:PlaywrightSession"
    headless: bool = True
    request_timeout: float = 15.0
    retries: int = 2
    user_agent: str = f"shoplens/{__version__}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Build config from environment variables (all optional).
        """
        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        return cls(
            load_timeout=float(_get("SHOPLENS_LOAD_TIMEOUT", "5.0")),
            storage_path=_get("SHOPLENS_STORAGE_PATH", "data/shoplens.json"),
            retailers_path=os.getenv("SHOPLENS_RETAILERS_PATH") or None,
            extra_adapters=[a.strip() for a in _get("SHOPLENS_EXTRA_ADAPTERS", "").split(",") if a.strip()],
            browser_engine=_get("SHOPLENS_BROWSER_ENGINE", "shoplens.engines.browser_engine:PlaywrightSession"),
            headless=_get("SHOPLENS_HEADLESS", "true").strip().lower() in _TRUE,
            request_timeout=float(_get("SHOPLENS_REQUEST_TIMEOUT", "15.0")),
            retries=int(_get("SHOPLENS_RETRIES", "2")),
            user_agent=_get("SHOPLENS_USER_AGENT", f"shoplens/{__version__}"),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "AppConfig":
        """
        Load configuration from a JSON file. Supports schema migration for older files.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    # ---------- Validation ----------

    def validate(self) -> None:
        if self.load_timeout <= 0:
            raise ValueError("load_timeout must be > 0")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if not self.storage_path:
            raise ValueError("storage_path cannot be empty")
        if self.retailers_path and not Path(self.retailers_path).is_file():
            raise ValueError(f"retailers_path {self.retailers_path} does not exist")
        # Validate storage path parent exists or is creatable
        parent = Path(self.storage_path).parent
        parent.mkdir(parents=True, exist_ok=True)


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    raw = dict(raw)
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # v1 called the loading bound "timeout" and the store "output_path"
        if "timeout" in raw:
            raw.setdefault("load_timeout", raw.pop("timeout"))
        if "output_path" in raw:
            raw.setdefault("storage_path", raw.pop("output_path"))
        raw["schema_version"] = 2

    # Ensure a schema_version is present
    raw.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return raw
