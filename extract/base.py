import logging
from typing import Callable, Dict, Protocol

from core.contracts import Metadata
from core.registry import register_named, resolve_registered
from record.model import Record

from .categories import Category, MediaKind

L = logging.getLogger("media_scan.extract")


class Extractor(Protocol):
    def __call__(self, record: Record) -> Metadata:
        """Walk a record into the media kind's Metadata."""
        ...


_registry: Dict[str, Callable[[Record], Metadata]] = {}


def register_extractor(kind: MediaKind):
    return register_named(_registry, kind.value)


def get_extractor(kind: MediaKind) -> Extractor:
    return resolve_registered(
        _registry,
        kind.value,
        package=__package__ or "extract",
        unknown_label="media kind",
    )


def extract_metadata(record: Record, category: object) -> Metadata | None:
    """Metadata for the category, or None when the category is unknown."""
    cat = Category.parse(category)
    if cat is None:
        L.warning("Unknown category %r; nothing extracted", category)
        return None
    metadata = get_extractor(cat.kind)(record)
    L.debug("Extracted %s metadata: %s", cat.value, metadata.to_dict())
    return metadata


__all__ = ["Extractor", "register_extractor", "get_extractor", "extract_metadata"]
