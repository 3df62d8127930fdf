from __future__ import annotations

import importlib
from typing import Any


def load_symbol(dotted: str) -> Any:
    """
    Resolve a configured plugin path to the object it names.
    Accepts "package.module:ClassName" and "package.module.ClassName".
    Raises ImportError for malformed paths and missing names.
    """
    dotted = dotted.strip()
    if ":" in dotted:
        module_name, _, symbol_name = dotted.partition(":")
    else:
        module_name, _, symbol_name = dotted.rpartition(".")
    if not module_name or not symbol_name:
        raise ImportError(f"expected 'module:Name' or 'module.Name', got {dotted!r}")

    module = importlib.import_module(module_name)
    try:
        return getattr(module, symbol_name)
    except AttributeError:
        raise ImportError(f"{module_name} has no attribute {symbol_name!r}") from None
