from core.contracts import AudioMetadata, Dimensions
from record.model import Record
from record.years import extract_record_year

from .base import register_extractor
from .categories import MediaKind
from .common import (
    STATEMENT_OF_RESPONSIBILITY,
    extract_author,
    extract_title,
    first_subfield_text,
)

# Standard number for sound recordings, then EAN.
ID_NUMBER_FIELDS = (("071", "a"), ("073", "a"))
ISNI_FIELDS = (("710", "o"), ("700", "o"))
HEIGHT_FIELD = ("215", "d")
SUMMARY_FIELD = ("330", "a")
TRACK_TAG = "464"
TRACK_TITLE_CODE = "t"
TRACKLIST_LABEL = "Tracklist:"


def extract_tracklist(record: Record) -> list[str]:
    """Track titles across every analytic entry, in document order."""
    tracks: list[str] = []
    for df in record.all_datafields(TRACK_TAG):
        tracks.extend(df.subfield_texts(TRACK_TITLE_CODE))
    return tracks


def format_tracklist(tracks: list[str]) -> str:
    if not tracks:
        return ""
    return f"{TRACKLIST_LABEL} {', '.join(tracks)}"


@register_extractor(MediaKind.AUDIO)
def extract_audio(record: Record) -> AudioMetadata:
    artist = extract_author(record, include_statement=False)
    if not artist:
        # Raw statement of responsibility; performer credits have no prefix to strip.
        artist = record.subfield_text(*STATEMENT_OF_RESPONSIBILITY)
    excerpt = format_tracklist(extract_tracklist(record)) or record.subfield_text(
        *SUMMARY_FIELD
    )
    return AudioMetadata(
        title=extract_title(record),
        artist=artist,
        id_number=first_subfield_text(record, ID_NUMBER_FIELDS),
        isni=first_subfield_text(record, ISNI_FIELDS),
        excerpt=excerpt,
        dimensions=Dimensions(height=record.subfield_text(*HEIGHT_FIELD)),
        year=extract_record_year(record),
        cover=record.cover_page_url,
    )


__all__ = ["extract_audio", "extract_tracklist", "format_tracklist"]
