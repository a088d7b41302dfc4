from __future__ import annotations

from enum import Enum


class MediaKind(str, Enum):
    BOOKS = "books"
    AUDIO = "audio"
    VIDEO = "video"


class Category(str, Enum):
    """Closed set of destination categories (post types)."""

    MANGAS = "mangas"
    BOOKS = "books"
    BDS = "bds"
    CDS = "cds"
    DVDS = "dvds"

    @property
    def kind(self) -> MediaKind:
        return _KIND_BY_CATEGORY[self]

    @classmethod
    def parse(cls, value: object) -> Category | None:
        """Category from a raw name such as ``"cds"`` or ``"books_scanner"``."""
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        # Field names are prefixed with the post type: "<category>_<field>".
        raw = raw.split("_", 1)[0]
        try:
            return cls(raw)
        except ValueError:
            return None


_KIND_BY_CATEGORY = {
    Category.MANGAS: MediaKind.BOOKS,
    Category.BOOKS: MediaKind.BOOKS,
    Category.BDS: MediaKind.BOOKS,
    Category.CDS: MediaKind.AUDIO,
    Category.DVDS: MediaKind.VIDEO,
}


__all__ = ["MediaKind", "Category"]
