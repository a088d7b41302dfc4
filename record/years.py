import logging
import re
from collections.abc import Iterable, Sequence

from .model import Record

L = logging.getLogger("media_scan.record.years")

MIN_YEAR = 1000
MAX_YEAR = 9999

# Publication then distribution statement ($d = date).
PUBLICATION_DATE_FIELDS: tuple[tuple[str, str], ...] = (("214", "d"), ("210", "d"))

# A 19xx/20xx year not glued to other digits; letters may touch it ("c1998").
_YEAR_RE = re.compile(r"(?<!\d)(?:19|20)\d{2}(?!\d)")


def _valid_year(text: str) -> str | None:
    if len(text) != 4 or not text.isdigit():
        return None
    value = int(text)
    if MIN_YEAR <= value <= MAX_YEAR:
        return text
    return None


def extract_year(creation_date: str | None) -> str | None:
    """Year from a YYYYMMDD cataloging date, or None when malformed."""
    text = (creation_date or "").strip()
    if len(text) < 4:
        return None
    return _valid_year(text[:4])


def extract_year_from_dates(creation_dates: Iterable[str]) -> str | None:
    for text in creation_dates:
        year = extract_year(text)
        if year:
            return year
    return None


def parse_publication_year(date_text: str | None) -> str | None:
    """First standalone 19xx/20xx year in free text such as "impr. 2024"."""
    match = _YEAR_RE.search(date_text or "")
    if match is None:
        return None
    return _valid_year(match.group(0))


def extract_publication_year(
    record: Record,
    candidates: Sequence[tuple[str, str]] = PUBLICATION_DATE_FIELDS,
) -> str | None:
    for tag, code in candidates:
        date_text = record.subfield_text(tag, code)
        if not date_text:
            continue
        year = parse_publication_year(date_text)
        if year:
            return year
        L.debug("No year in %s$%s=%r", tag, code, date_text)
    return None


def extract_record_year(
    record: Record,
    candidates: Sequence[tuple[str, str]] = PUBLICATION_DATE_FIELDS,
) -> str | None:
    """Publication year, falling back to the cataloging date."""
    return extract_publication_year(record, candidates) or extract_year_from_dates(
        record.creation_dates()
    )


__all__ = [
    "PUBLICATION_DATE_FIELDS",
    "extract_year",
    "extract_year_from_dates",
    "parse_publication_year",
    "extract_publication_year",
    "extract_record_year",
]
