"""Cover resolution: catalog page -> cover image -> local media store."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
from html.parser import HTMLParser
from typing import Protocol
from urllib.parse import urljoin

import cv2
import numpy as np
import requests

from core.contracts import CoverResult
from core.errors import CoverResolutionFailure
from utils.path_time import UtcDailyDirCache, build_dated_media_path

L = logging.getLogger("media_scan.cover")

DEFAULT_COVER_PREFIX = "https://catalogue.bnf.fr/couverture"
COVER_OK_MESSAGE = "Cover fetched and uploaded successfully"
COVER_NOT_FOUND_MESSAGE = "Cover image not found"


class _ImgSrcCollector(HTMLParser):
    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.sources: list[str] = []

    def handle_starttag(self, tag, attrs):
        if tag.lower() != "img":
            return
        for name, value in attrs:
            if name.lower() == "src" and value:
                self.sources.append(value.strip())


def find_cover_src(html: str, prefix: str = DEFAULT_COVER_PREFIX) -> str | None:
    """First ``<img src>`` containing ``prefix``, in document order."""
    collector = _ImgSrcCollector()
    collector.feed(html or "")
    collector.close()
    for src in collector.sources:
        if prefix in src:
            return src
    return None


class MediaStore(Protocol):
    def save(self, data: bytes, ext: str, source_url: str) -> str:
        """Persist an image and return its upload id."""
        ...


class DirectoryMediaStore:
    """Stores images as ``<root>/<YYYY-MM-DD>/<time>_<id><ext>``."""

    def __init__(self, root_dir: str):
        self.root_dir = root_dir
        self._cache = UtcDailyDirCache()

    def save(self, data: bytes, ext: str, source_url: str) -> str:
        media_id = hashlib.sha1(source_url.encode("utf-8")).hexdigest()[:12]
        path, _ = build_dated_media_path(
            self.root_dir, media_id, ext, ts_utc=None, cache=self._cache
        )
        with open(path, "wb") as f:
            f.write(data)
        return os.path.relpath(path, self.root_dir)


def _image_ext(data: bytes, content_type: str) -> str:
    if data.startswith(b"\x89PNG"):
        return ".png"
    if data[:4] == b"GIF8":
        return ".gif"
    if "png" in content_type:
        return ".png"
    # Catalog covers are served without an extension; JPEG is the default.
    return ".jpg"


class CoverResolver:
    def __init__(
        self,
        store: MediaStore,
        *,
        url_prefix: str = DEFAULT_COVER_PREFIX,
        timeout_s: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.store = store
        self.url_prefix = url_prefix
        self.timeout_s = float(timeout_s)
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, block, session: requests.Session | None = None) -> "CoverResolver":
        return cls(
            DirectoryMediaStore(block.media_dir),
            url_prefix=block.url_prefix,
            timeout_s=block.timeout_s,
            session=session,
        )

    def _get(self, url: str, what: str) -> requests.Response:
        try:
            r = self.session.get(url, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise CoverResolutionFailure(f"Failed to load {what}: {e}") from e
        if r.status_code >= 400:
            raise CoverResolutionFailure(f"Failed to load {what}: HTTP {r.status_code}")
        return r

    def resolve(self, page_url: str) -> CoverResult:
        """Blocking resolution; raises CoverResolutionFailure."""
        page_url = (page_url or "").strip()
        if not page_url.startswith(("http://", "https://")):
            raise CoverResolutionFailure("Invalid or empty URL")
        page = self._get(page_url, "URL")
        src = find_cover_src(page.text, self.url_prefix)
        if not src:
            raise CoverResolutionFailure(COVER_NOT_FOUND_MESSAGE)
        cover_url = urljoin(page_url, src)
        image = self._get(cover_url, "cover image")
        data = image.content or b""
        decoded = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR) if data else None
        if decoded is None:
            raise CoverResolutionFailure("Error uploading image: not a decodable image")
        ext = _image_ext(data, image.headers.get("Content-Type", ""))
        try:
            upload_id = self.store.save(data, ext, cover_url)
        except OSError as e:
            raise CoverResolutionFailure(f"Error uploading image: {e}") from e
        L.info(
            "Cover stored id=%s size=%dx%d bytes=%d",
            upload_id,
            decoded.shape[1],
            decoded.shape[0],
            len(data),
        )
        return CoverResult(cover_url=cover_url, upload_id=upload_id, message=COVER_OK_MESSAGE)

    async def resolve_cover(self, page_url: str) -> CoverResult:
        return await asyncio.to_thread(self.resolve, page_url)

    def close(self):
        self.session.close()


__all__ = [
    "COVER_NOT_FOUND_MESSAGE",
    "COVER_OK_MESSAGE",
    "CoverResolver",
    "DEFAULT_COVER_PREFIX",
    "DirectoryMediaStore",
    "MediaStore",
    "find_cover_src",
]
