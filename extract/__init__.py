from .base import Extractor, extract_metadata, get_extractor, register_extractor
from .categories import Category, MediaKind

__all__ = [
    "Category",
    "MediaKind",
    "Extractor",
    "extract_metadata",
    "get_extractor",
    "register_extractor",
]
