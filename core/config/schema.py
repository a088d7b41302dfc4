"""Typed config schema blocks shared by loader/validator/main."""

from dataclasses import dataclass, field
from typing import Dict, List


class ConfigError(Exception):
    pass


@dataclass
class RuntimeConfig:
    save_dir: str = "data"
    log_level: str = "info"


@dataclass
class CameraConfigBlock:
    type: str = "opencv"
    max_devices: int = 4
    width: int = 0
    height: int = 0
    read_timeout_ms: int = 2000
    image_dir: str = ""
    order: str = "name_asc"
    end_mode: str = "loop"
    frame_interval_ms: int = 33
    labels: List[str] = field(default_factory=list)


@dataclass
class ScannerConfigBlock:
    detector: str = "zbar"
    formats: List[str] = field(default_factory=list)
    downscale_factor: float = 1.0
    interval_ms: int = 40
    cooldown_ms: int = 1000
    mode: str = "auto"
    preferred_label: str = "back"


@dataclass
class LookupConfigBlock:
    base_url: str = "https://catalogue.bnf.fr/api/SRU"
    version: str = "1.2"
    record_schema: str = "unimarcXchange"
    timeout_s: float = 30.0
    max_redirects: int = 5
    user_agent: str = "media-scan"


@dataclass
class CoverConfigBlock:
    enabled: bool = True
    url_prefix: str = "https://catalogue.bnf.fr/couverture"
    media_dir: str = "media"
    timeout_s: float = 30.0


@dataclass
class FillerConfigBlock:
    default_category: str = "books"
    overwrite_title_kinds: List[str] = field(default_factory=lambda: ["audio", "video"])


@dataclass
class LoadedConfig:
    imports: List[str]
    runtime: RuntimeConfig
    camera: CameraConfigBlock
    scanner: ScannerConfigBlock
    lookup: LookupConfigBlock
    cover: CoverConfigBlock
    filler: FillerConfigBlock
    paths: Dict[str, str] = field(default_factory=dict)


__all__ = [
    "ConfigError",
    "RuntimeConfig",
    "CameraConfigBlock",
    "ScannerConfigBlock",
    "LookupConfigBlock",
    "CoverConfigBlock",
    "FillerConfigBlock",
    "LoadedConfig",
]
