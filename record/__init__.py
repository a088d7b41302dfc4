from .model import (
    Controlfield,
    Datafield,
    ExtraRecordData,
    Record,
    Subfield,
    build_record,
)
from .parser import parse_record_payload
from .years import (
    extract_publication_year,
    extract_record_year,
    extract_year,
    parse_publication_year,
)

__all__ = [
    "Controlfield",
    "Datafield",
    "ExtraRecordData",
    "Record",
    "Subfield",
    "build_record",
    "parse_record_payload",
    "extract_publication_year",
    "extract_record_year",
    "extract_year",
    "parse_publication_year",
]
