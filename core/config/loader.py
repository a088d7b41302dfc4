"""YAML loader: one ``main_*.yaml`` per config directory, typed section blocks."""

from __future__ import annotations

import glob
import importlib
import os
from typing import Any

import yaml

from .schema import (
    CameraConfigBlock,
    ConfigError,
    CoverConfigBlock,
    FillerConfigBlock,
    LoadedConfig,
    LookupConfigBlock,
    RuntimeConfig,
    ScannerConfigBlock,
)

# Flat sections; ``camera`` is merged separately (common + selected type).
_FLAT_SECTIONS = {
    "runtime": RuntimeConfig,
    "scanner": ScannerConfigBlock,
    "lookup": LookupConfigBlock,
    "cover": CoverConfigBlock,
    "filler": FillerConfigBlock,
}
_TOP_LEVEL_KEYS = {"imports", "camera", *_FLAT_SECTIONS}


def load_config(config_dir: str = "config") -> LoadedConfig:
    main_path = _find_main_config(config_dir)
    data = _read_yaml(main_path)
    unknown = sorted(str(k) for k in data if k not in _TOP_LEVEL_KEYS)
    if unknown:
        raise ConfigError(f"Unknown section '{unknown[0]}' in {main_path}")

    imports = data.get("imports") or []
    _import_modules(imports, main_path)

    sections = {
        name: _build_block(cls, _mapping(data, name, main_path), main_path, name)
        for name, cls in _FLAT_SECTIONS.items()
    }
    return LoadedConfig(
        imports=imports,
        camera=_build_camera_block(_mapping(data, "camera", main_path), main_path),
        paths={"main": main_path},
        **sections,
    )


def _find_main_config(config_dir: str) -> str:
    found = sorted(
        path
        for ext in ("yaml", "yml")
        for path in glob.glob(os.path.join(config_dir, f"main_*.{ext}"))
    )
    if not found:
        raise ConfigError(f"No main_*.yaml found under {config_dir}")
    if len(found) > 1:
        raise ConfigError(f"Expected exactly one main_*.yaml, found: {', '.join(found)}")
    return found[0]


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"YAML root must be a mapping: {path}")
    return data


def _mapping(data: dict[str, Any], key: str, main_path: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be a mapping in {main_path}")
    return value


def _build_block(cls, values: dict[str, Any], main_path: str, section: str, skip=()):
    block = cls()
    allowed = set(cls.__dataclass_fields__) - set(skip)
    for key, value in values.items():
        if key not in allowed:
            raise ConfigError(f"Unknown field {section}.{key} in {main_path}")
        setattr(block, key, value)
    return block


def _build_camera_block(data: dict[str, Any], main_path: str) -> CameraConfigBlock:
    """``camera.common`` first, then the block named by ``camera.type``.

    Blocks for the other camera types may stay in the file; they are ignored.
    """
    camera_type = str(data.get("type") or CameraConfigBlock.type).strip()
    for key, value in data.items():
        if key not in ("type", "common") and not isinstance(value, dict):
            raise ConfigError(
                f"camera.{key} must be nested under camera.common or "
                f"camera.{camera_type} in {main_path}"
            )

    merged: dict[str, Any] = {}
    for section in ("common", camera_type):
        block = _mapping(data, section, main_path)
        _build_block(CameraConfigBlock, block, main_path, f"camera.{section}", skip=("type",))
        merged.update(block)
    cfg = _build_block(CameraConfigBlock, merged, main_path, "camera", skip=("type",))
    cfg.type = camera_type
    return cfg


def _import_modules(imports: Any, main_path: str):
    if not isinstance(imports, list):
        raise ConfigError(f"'imports' must be a list in {main_path}")
    for path in imports:
        if not isinstance(path, str) or not path:
            raise ConfigError(f"Invalid import path {path!r} in {main_path}")
        importlib.import_module(path)


__all__ = ["load_config"]
