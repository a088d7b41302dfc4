"""Immutable catalog record: datafields, controlfields and extra record data.

Tags are not unique inside a record (a book can carry several 701 contributor
fields), so accessors come in two flavours: the ``*_text`` helpers answer from
the first matching field only, ``all_datafields`` returns every match in
document order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

COVER_PAGE_TAG = "003"
CREATION_DATE_ATTR = "CreationDate"


@dataclass(slots=True, frozen=True)
class Subfield:
    code: str
    text: str = ""


@dataclass(slots=True, frozen=True)
class Datafield:
    tag: str
    subfields: tuple[Subfield, ...] = ()
    ind1: str = " "
    ind2: str = " "

    def subfield_text(self, code: str) -> str:
        for sub in self.subfields:
            if sub.code == code:
                return sub.text
        return ""

    def subfield_texts(self, code: str) -> list[str]:
        """Every non-empty text carried under ``code``, in document order."""
        return [sub.text for sub in self.subfields if sub.code == code and sub.text]

    def has_subfield(self, code: str, text: str) -> bool:
        return any(sub.code == code and sub.text == text for sub in self.subfields)


@dataclass(slots=True, frozen=True)
class Controlfield:
    tag: str
    text: str = ""


@dataclass(slots=True, frozen=True)
class ExtraRecordData:
    attributes: tuple[tuple[str, str], ...] = ()

    def get(self, name: str) -> str:
        for key, value in self.attributes:
            if key == name:
                return value
        return ""

    def get_all(self, name: str) -> list[str]:
        return [value for key, value in self.attributes if key == name]


@dataclass(slots=True, frozen=True)
class Record:
    datafields: tuple[Datafield, ...] = ()
    controlfields: tuple[Controlfield, ...] = ()
    extra: ExtraRecordData | None = None
    leader: str = field(default="", compare=False)

    def first_datafield(self, tag: str) -> Datafield | None:
        for df in self.datafields:
            if df.tag == tag:
                return df
        return None

    def all_datafields(self, tag: str) -> list[Datafield]:
        return [df for df in self.datafields if df.tag == tag]

    def subfield_text(self, tag: str, code: str) -> str:
        df = self.first_datafield(tag)
        if df is None:
            return ""
        return df.subfield_text(code)

    def subfield_text_multiple(
        self, tag: str, codes: Iterable[str], separator: str = " "
    ) -> str:
        df = self.first_datafield(tag)
        if df is None:
            return ""
        wanted = set(codes)
        # Document order wins over the order of `codes`.
        parts = [sub.text for sub in df.subfields if sub.code in wanted and sub.text]
        return separator.join(parts)

    def controlfield_text(self, tag: str) -> str:
        for cf in self.controlfields:
            if cf.tag == tag:
                return cf.text
        return ""

    def creation_dates(self) -> list[str]:
        if self.extra is None:
            return []
        return self.extra.get_all(CREATION_DATE_ATTR)

    @property
    def cover_page_url(self) -> str:
        return self.controlfield_text(COVER_PAGE_TAG)


def build_record(
    datafields: Iterable[tuple[str, Iterable[tuple[str, str]]]] = (),
    controlfields: Iterable[tuple[str, str]] = (),
    extra: Iterable[tuple[str, str]] | None = None,
) -> Record:
    """Build a Record from plain tuples (used by tests and fixtures)."""
    return Record(
        datafields=tuple(
            Datafield(tag=tag, subfields=tuple(Subfield(c, t) for c, t in subs))
            for tag, subs in datafields
        ),
        controlfields=tuple(Controlfield(tag, text) for tag, text in controlfields),
        extra=ExtraRecordData(tuple(extra)) if extra is not None else None,
    )


__all__ = [
    "COVER_PAGE_TAG",
    "CREATION_DATE_ATTR",
    "Subfield",
    "Datafield",
    "Controlfield",
    "ExtraRecordData",
    "Record",
    "build_record",
]
