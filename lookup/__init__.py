from .catalog import DEFAULT_BASE_URL, CatalogClient, build_query_url
from .cover import (
    COVER_NOT_FOUND_MESSAGE,
    COVER_OK_MESSAGE,
    CoverResolver,
    DirectoryMediaStore,
    MediaStore,
    find_cover_src,
)

__all__ = [
    "COVER_NOT_FOUND_MESSAGE",
    "COVER_OK_MESSAGE",
    "CatalogClient",
    "CoverResolver",
    "DEFAULT_BASE_URL",
    "DirectoryMediaStore",
    "MediaStore",
    "build_query_url",
    "find_cover_src",
]
