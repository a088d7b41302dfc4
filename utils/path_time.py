from __future__ import annotations

import os
import re
from datetime import datetime, timezone

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def coerce_utc_datetime(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def safe_file_stem(name: str, default: str = "file") -> str:
    stem = _UNSAFE_CHARS.sub("_", str(name or "")).strip("._")
    return stem or default


def format_media_filename(media_id: str, ext: str, ts_utc: datetime | None = None) -> str:
    """``HH-MM-SS.mmmZ_<id><ext>`` in UTC."""
    ref = coerce_utc_datetime(ts_utc)
    ext = ext if not ext or ext.startswith(".") else f".{ext}"
    return f"{ref:%H-%M-%S}.{ref.microsecond // 1000:03d}Z_{safe_file_stem(media_id)}{ext}"


class UtcDailyDirCache:
    """Remembers the day directory last created under a root.

    The directory is created again if it disappeared in between (media
    folders get cleaned up by hand).
    """

    def __init__(self):
        self._key: tuple[str, str] | None = None
        self._dir_path = ""

    def get_or_create(self, root_dir: str, ts_utc: datetime | None) -> str:
        day = coerce_utc_datetime(ts_utc).date().isoformat()
        key = (os.path.abspath(root_dir), day)
        if key != self._key or not os.path.isdir(self._dir_path):
            self._dir_path = os.path.join(root_dir, day)
            os.makedirs(self._dir_path, exist_ok=True)
            self._key = key
        return self._dir_path


def build_dated_media_path(
    root_dir: str,
    media_id: str,
    ext: str,
    *,
    ts_utc: datetime | None,
    cache: UtcDailyDirCache,
) -> tuple[str, datetime]:
    """``<root>/<YYYY-MM-DD>/<HH-MM-SS.mmmZ>_<id><ext>`` plus the timestamp used."""
    ref = coerce_utc_datetime(ts_utc)
    day_dir = cache.get_or_create(root_dir, ref)
    return os.path.join(day_dir, format_media_filename(media_id, ext, ts_utc=ref)), ref


__all__ = [
    "UtcDailyDirCache",
    "build_dated_media_path",
    "coerce_utc_datetime",
    "format_media_filename",
    "safe_file_stem",
]
