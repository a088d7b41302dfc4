"""Derivation primitives shared by every media extractor.

Fallback chains are explicit tuples of (tag, code) pairs; the first non-empty
answer wins, so chain priority (not document order) decides.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from record.model import Record

TITLE_TAG = "200"
TITLE_PART_CODES = ("a", "e", "h", "i")
TITLE_SEPARATOR = " : "
STATEMENT_OF_RESPONSIBILITY = ("200", "f")

PERSONAL_NAME_TAGS = ("700", "701", "702")
CORPORATE_NAME_TAGS = ("710", "711", "712")

# Leading "[illustrations de]", "par" or "de" in a statement of responsibility.
_STATEMENT_PREFIX_RE = re.compile(r"^(?:\[.*?\]|par\b|de\b)\s*", re.IGNORECASE)


def first_subfield_text(record: Record, candidates: Sequence[tuple[str, str]]) -> str:
    for tag, code in candidates:
        text = record.subfield_text(tag, code)
        if text:
            return text
    return ""


def extract_title(record: Record) -> str:
    title = record.subfield_text_multiple(TITLE_TAG, TITLE_PART_CODES, TITLE_SEPARATOR)
    if title:
        return title
    return record.subfield_text(TITLE_TAG, "a")


def format_person_name(first_name: str, surname: str) -> str:
    return " ".join(part for part in (first_name, surname) if part)


def strip_statement_prefix(statement: str) -> str:
    return _STATEMENT_PREFIX_RE.sub("", statement.strip(), count=1).strip()


def extract_personal_name(record: Record, tags: Sequence[str] = PERSONAL_NAME_TAGS) -> str:
    for tag in tags:
        for df in record.all_datafields(tag):
            surname = df.subfield_text("a")
            first_name = df.subfield_text("b")
            if surname or first_name:
                return format_person_name(first_name, surname)
    return ""


def extract_corporate_name(
    record: Record, tags: Sequence[str] = CORPORATE_NAME_TAGS
) -> str:
    for tag in tags:
        for df in record.all_datafields(tag):
            name = df.subfield_text("a")
            if name:
                return name
    return ""


def extract_author(record: Record, include_statement: bool = True) -> str:
    """Personal names, then corporate names, then 200$f when allowed."""
    author = extract_personal_name(record) or extract_corporate_name(record)
    if author or not include_statement:
        return author
    statement = record.subfield_text(*STATEMENT_OF_RESPONSIBILITY)
    if statement:
        return strip_statement_prefix(statement)
    return ""


__all__ = [
    "TITLE_TAG",
    "PERSONAL_NAME_TAGS",
    "CORPORATE_NAME_TAGS",
    "STATEMENT_OF_RESPONSIBILITY",
    "first_subfield_text",
    "extract_title",
    "format_person_name",
    "strip_statement_prefix",
    "extract_personal_name",
    "extract_corporate_name",
    "extract_author",
]
