from core.contracts import Dimensions, VideoMetadata
from record.model import Record
from record.years import extract_record_year

from .base import register_extractor
from .categories import MediaKind
from .common import (
    STATEMENT_OF_RESPONSIBILITY,
    extract_title,
    first_subfield_text,
    format_person_name,
)

CONTRIBUTOR_TAG = "702"
ROLE_CODE = "4"
DIRECTOR_ROLE = "300"
EDITOR_FIELDS = (("210", "c"), ("214", "c"))
ID_NUMBER_FIELD = ("073", "a")
# 300$a carries bonus features and technical notes, never the synopsis.
SUMMARY_FIELD = ("330", "a")
HEIGHT_FIELD = ("215", "d")


def extract_director(record: Record) -> str:
    for df in record.all_datafields(CONTRIBUTOR_TAG):
        if not df.has_subfield(ROLE_CODE, DIRECTOR_ROLE):
            continue
        name = format_person_name(df.subfield_text("b"), df.subfield_text("a"))
        if name:
            return name
    # Catalog convention: "Surname, réal., scénario".
    statement = record.subfield_text(*STATEMENT_OF_RESPONSIBILITY)
    if statement:
        return statement.split(",", 1)[0].strip()
    return ""


@register_extractor(MediaKind.VIDEO)
def extract_video(record: Record) -> VideoMetadata:
    return VideoMetadata(
        title=extract_title(record),
        director=extract_director(record),
        editor=first_subfield_text(record, EDITOR_FIELDS),
        id_number=record.subfield_text(*ID_NUMBER_FIELD),
        excerpt=record.subfield_text(*SUMMARY_FIELD),
        dimensions=Dimensions(height=record.subfield_text(*HEIGHT_FIELD)),
        year=extract_record_year(record),
        cover=record.cover_page_url,
    )


__all__ = ["extract_director", "extract_video"]
