import json
import logging

import pytest

from shoplens.config import AppConfig, migrate_config
from shoplens.utils.loader import load_symbol
from shoplens.utils.logging import setup_logging
from shoplens.version import CONFIG_SCHEMA_VERSION


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SHOPLENS_LOAD_TIMEOUT", "2.5")
    monkeypatch.setenv("SHOPLENS_STORAGE_PATH", str(tmp_path / "db.json"))
    monkeypatch.setenv("SHOPLENS_EXTRA_ADAPTERS", "a.b:C, d.e:F")
    monkeypatch.setenv("SHOPLENS_HEADLESS", "false")
    monkeypatch.setenv("SHOPLENS_RETRIES", "0")
    cfg = AppConfig.from_env()
    assert cfg.load_timeout == 2.5
    assert cfg.extra_adapters == ["a.b:C", "d.e:F"]
    assert cfg.headless is False
    assert cfg.retries == 0
    cfg.validate()


def test_defaults():
    cfg = AppConfig()
    assert cfg.load_timeout == 5.0
    assert cfg.schema_version == CONFIG_SCHEMA_VERSION
    assert cfg.browser_engine.endswith(":PlaywrightSession")


def test_from_file_migrates_v1(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"timeout": 3, "output_path": "out/store.json", "max_depth": 4}))
    cfg = AppConfig.from_file(path)
    assert cfg.load_timeout == 3
    assert cfg.storage_path == "out/store.json"
    assert cfg.schema_version == 2


def test_migrate_leaves_current_schema_alone():
    raw = {"schema_version": 2, "load_timeout": 1.0}
    assert migrate_config(raw) == raw


@pytest.mark.parametrize(
    "overrides",
    [{"load_timeout": 0}, {"request_timeout": -1}, {"retries": -1}, {"storage_path": ""},
     {"retailers_path": "/nonexistent/retailers.json"}],
)
def test_validate_rejects(overrides, tmp_path):
    cfg = AppConfig(storage_path=str(tmp_path / "db.json"))
    for key, value in overrides.items():
        setattr(cfg, key, value)
    with pytest.raises(ValueError):
        cfg.validate()


def test_validate_creates_storage_dir(tmp_path):
    AppConfig(storage_path=str(tmp_path / "a" / "b" / "db.json")).validate()
    assert (tmp_path / "a" / "b").is_dir()


def test_library_loggers_follow_their_own_level(monkeypatch):
    monkeypatch.delenv("SHOPLENS_LIB_LOG_LEVEL", raising=False)
    chatty = logging.getLogger("aiohttp.access")
    try:
        setup_logging("DEBUG")
        assert chatty.level == logging.WARNING
        monkeypatch.setenv("SHOPLENS_LIB_LOG_LEVEL", "debug")
        setup_logging("DEBUG")
        assert chatty.level == logging.DEBUG
    finally:
        chatty.setLevel(logging.NOTSET)


def test_load_symbol_forms():
    assert load_symbol("shoplens.config:AppConfig") is AppConfig
    assert load_symbol("shoplens.config.migrate_config") is migrate_config
    with pytest.raises(ImportError):
        load_symbol("shoplens.config:Missing")
    with pytest.raises(ImportError):
        load_symbol("AppConfig")
