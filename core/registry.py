"""Name -> implementation registries shared by detectors, cameras and extractors."""

from __future__ import annotations

import importlib
from collections.abc import MutableMapping
from typing import TypeVar

T = TypeVar("T")


def register_named(registry: MutableMapping[str, T], *names: str):
    """Class/function decorator recording ``obj`` under every name given."""

    def decorator(obj: T) -> T:
        registry.update(dict.fromkeys(names, obj))
        return obj

    return decorator


def resolve_registered(
    registry: MutableMapping[str, T],
    name: str,
    *,
    package: str,
    unknown_label: str,
) -> T:
    """Look ``name`` up, importing ``<package>.<name>`` on first use.

    Backends with native dependencies (ZBar, OpenCV capture) only load when a
    config selects them. An import error is surfaced in the ValueError hint.
    """
    if name in registry:
        return registry[name]
    hint = ""
    try:
        importlib.import_module(f"{package}.{name}")
    except ImportError as e:
        hint = f" (import failed: {e})"
    if name not in registry:
        known = ", ".join(sorted(registry)) or "none"
        raise ValueError(f"Unknown {unknown_label} '{name}'. Available: {known}{hint}")
    return registry[name]


__all__ = ["register_named", "resolve_registered"]
