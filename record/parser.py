"""SRU / MarcXchange payload parser.

Elements are matched on their local name so the parser does not depend on the
prefixes (``srw:``, ``mxc:``, ``ixm:``) the catalog happens to emit. The first
``record`` element in document order is the SRU envelope record when present,
otherwise a bare MarcXchange record.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from core.errors import LookupFailure, RecordNotFound

from .model import Controlfield, Datafield, ExtraRecordData, Record, Subfield

L = logging.getLogger("media_scan.record.parser")


def _local(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].split(":")[-1]


def _text(el: ET.Element) -> str:
    return "".join(el.itertext()).strip()


def _first(root: ET.Element, name: str) -> ET.Element | None:
    for el in root.iter():
        if _local(el.tag) == name:
            return el
    return None


def _iter_named(root: ET.Element, name: str):
    for el in root.iter():
        if _local(el.tag) == name:
            yield el


def parse_record_payload(payload: str | bytes | None) -> Record:
    """Parse the catalog response into a Record.

    Raises LookupFailure for empty or malformed payloads and RecordNotFound
    when the catalog reports zero hits.
    """
    if payload is None or not payload.strip():
        raise LookupFailure("Empty response from the catalog")
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        raise LookupFailure(f"Unreadable catalog response: {e}") from e

    hits_el = _first(root, "numberOfRecords")
    if hits_el is not None and _text(hits_el) == "0":
        raise RecordNotFound("No record found for this barcode")

    record_el = root if _local(root.tag) == "record" else _first(root, "record")
    if record_el is None:
        raise RecordNotFound("No record found for this barcode")
    return _build_record(record_el)


def _build_record(record_el: ET.Element) -> Record:
    datafields = []
    for df_el in _iter_named(record_el, "datafield"):
        subfields = tuple(
            Subfield(code=str(sub.get("code") or ""), text=_text(sub))
            for sub in df_el
            if _local(sub.tag) == "subfield"
        )
        datafields.append(
            Datafield(
                tag=str(df_el.get("tag") or ""),
                subfields=subfields,
                ind1=str(df_el.get("ind1") or " "),
                ind2=str(df_el.get("ind2") or " "),
            )
        )
    controlfields = tuple(
        Controlfield(tag=str(cf.get("tag") or ""), text=_text(cf))
        for cf in _iter_named(record_el, "controlfield")
    )
    extra = None
    extra_el = _first(record_el, "extraRecordData")
    if extra_el is not None:
        extra = ExtraRecordData(
            tuple(
                (str(attr.get("name") or ""), _text(attr))
                for attr in _iter_named(extra_el, "attr")
            )
        )
    leader_el = _first(record_el, "leader")
    record = Record(
        datafields=tuple(datafields),
        controlfields=controlfields,
        extra=extra,
        leader=_text(leader_el) if leader_el is not None else "",
    )
    L.debug(
        "Parsed record datafields=%d controlfields=%d extra=%s",
        len(record.datafields),
        len(record.controlfields),
        "yes" if extra is not None else "no",
    )
    return record


__all__ = ["parse_record_payload"]
