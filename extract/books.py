from core.contracts import BookMetadata, Dimensions
from record.model import Record
from record.years import extract_record_year

from .base import register_extractor
from .categories import MediaKind
from .common import extract_author, extract_title, first_subfield_text

# Series (461) before series statement (225).
VOLUME_NUMBER_FIELDS = (("461", "v"), ("225", "v"))
SERIES_TITLE_FIELDS = (("225", "a"), ("461", "t"))
# Publication (214) before the older publication/distribution field (210).
EDITOR_FIELDS = (("214", "c"), ("210", "c"))
# Summary (330) before general note (830).
EXCERPT_FIELDS = (("330", "a"), ("830", "a"))
HEIGHT_FIELDS = (("215", "d"), ("280", "d"))
ISBN_FIELD = ("010", "a")


@register_extractor(MediaKind.BOOKS)
def extract_book(record: Record) -> BookMetadata:
    return BookMetadata(
        title=extract_title(record),
        author=extract_author(record, include_statement=True),
        editor=first_subfield_text(record, EDITOR_FIELDS),
        excerpt=first_subfield_text(record, EXCERPT_FIELDS),
        isbn=record.subfield_text(*ISBN_FIELD),
        volume_number=first_subfield_text(record, VOLUME_NUMBER_FIELDS),
        series_title=first_subfield_text(record, SERIES_TITLE_FIELDS),
        dimensions=Dimensions(height=first_subfield_text(record, HEIGHT_FIELDS)),
        year=extract_record_year(record),
        cover=record.cover_page_url,
    )


__all__ = ["extract_book"]
