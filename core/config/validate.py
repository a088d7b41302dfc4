"""Config value validation."""

from __future__ import annotations

from typing import Any

from .schema import ConfigError, LoadedConfig

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}
_SCAN_MODES = {"auto", "debug"}
_MEDIA_KINDS = {"books", "audio", "video"}
_CATEGORIES = {"mangas", "books", "bds", "cds", "dvds"}


def validate_config(cfg: LoadedConfig) -> None:
    # runtime
    _require_choice("runtime.log_level", str(cfg.runtime.log_level).lower(), _LOG_LEVELS)
    _require_nonempty_str("runtime.save_dir", cfg.runtime.save_dir)

    # camera
    _require_nonempty_str("camera.type", cfg.camera.type)
    _require_int("camera.max_devices", cfg.camera.max_devices, min_v=1)
    _require_int("camera.width", cfg.camera.width, min_v=0)
    _require_int("camera.height", cfg.camera.height, min_v=0)
    _require_int("camera.read_timeout_ms", cfg.camera.read_timeout_ms, min_v=1)
    _require_int("camera.frame_interval_ms", cfg.camera.frame_interval_ms, min_v=0)
    _require_str_list("camera.labels", cfg.camera.labels)
    if cfg.camera.type == "mock":
        _require_nonempty_str("camera.image_dir", cfg.camera.image_dir)

    # scanner
    _require_nonempty_str("scanner.detector", cfg.scanner.detector)
    _require_str_list("scanner.formats", cfg.scanner.formats)
    factor = _require_float("scanner.downscale_factor", cfg.scanner.downscale_factor, max_v=1.0)
    if factor <= 0:
        raise ConfigError("scanner.downscale_factor must be > 0")
    _require_int("scanner.interval_ms", cfg.scanner.interval_ms, min_v=1)
    _require_int("scanner.cooldown_ms", cfg.scanner.cooldown_ms, min_v=0)
    _require_choice("scanner.mode", str(cfg.scanner.mode).lower(), _SCAN_MODES)
    if not isinstance(cfg.scanner.preferred_label, str):
        raise ConfigError("scanner.preferred_label must be a string")

    # lookup
    _require_url("lookup.base_url", cfg.lookup.base_url)
    _require_nonempty_str("lookup.version", cfg.lookup.version)
    _require_nonempty_str("lookup.record_schema", cfg.lookup.record_schema)
    _require_float("lookup.timeout_s", cfg.lookup.timeout_s, min_v=0.1)
    _require_int("lookup.max_redirects", cfg.lookup.max_redirects, min_v=0)

    # cover
    if cfg.cover.enabled:
        _require_url("cover.url_prefix", cfg.cover.url_prefix)
        _require_nonempty_str("cover.media_dir", cfg.cover.media_dir)
    _require_float("cover.timeout_s", cfg.cover.timeout_s, min_v=0.1)

    # filler
    _require_choice("filler.default_category", cfg.filler.default_category, _CATEGORIES)
    kinds = _require_str_list("filler.overwrite_title_kinds", cfg.filler.overwrite_title_kinds)
    for i, kind in enumerate(kinds):
        if kind not in _MEDIA_KINDS:
            raise ConfigError(
                f"filler.overwrite_title_kinds[{i}] must be one of {sorted(_MEDIA_KINDS)}"
            )


def _require_int(
    name: str, value: Any, *, min_v: int | None = None, max_v: int | None = None
) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer")
    try:
        iv = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer") from e
    if min_v is not None and iv < min_v:
        op = ">=" if min_v != 1 else ">"
        threshold = min_v if min_v != 1 else 0
        raise ConfigError(f"{name} must be {op} {threshold}")
    if max_v is not None and iv > max_v:
        raise ConfigError(f"{name} must be <= {max_v}")
    return iv


def _require_float(
    name: str, value: Any, *, min_v: float | None = None, max_v: float | None = None
) -> float:
    try:
        fv = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number") from e
    if min_v is not None and fv < min_v:
        raise ConfigError(f"{name} must be >= {min_v:g}")
    if max_v is not None and fv > max_v:
        raise ConfigError(f"{name} must be <= {max_v:g}")
    return fv


def _require_nonempty_str(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{name} must be a non-empty string")
    return value


def _require_choice(name: str, value: Any, choices: set[str]) -> str:
    if value not in choices:
        raise ConfigError(f"{name} must be one of {sorted(choices)}, got {value!r}")
    return value


def _require_url(name: str, value: Any) -> str:
    text = _require_nonempty_str(name, value)
    if not text.startswith(("http://", "https://")):
        raise ConfigError(f"{name} must be an http(s) URL")
    return text


def _require_str_list(name: str, value: Any) -> list[str]:
    if not isinstance(value, list):
        raise ConfigError(f"{name} must be a list of strings")
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise ConfigError(f"{name}[{i}] must be a string")
    return value


__all__ = ["validate_config"]
