"""Barcode -> catalog record -> metadata -> filled form."""

from __future__ import annotations

import logging
import time
from typing import Protocol

from core.contracts import FillOutcome
from core.errors import LookupFailure, RecordNotFound, ScanError
from extract.base import extract_metadata
from extract.categories import Category
from output.filler import TITLE_FIELD, FieldFiller
from output.sink import FieldSink
from record.parser import parse_record_payload

L = logging.getLogger("media_scan.pipeline")

NO_DATA_MESSAGE = "No data could be retreived"
UNKNOWN_CATEGORY_MESSAGE = "Unknown category"
NO_TITLE_FIELD_MESSAGE = "No title field to fill"
NOTHING_FILLED_MESSAGE = "Title already set; nothing filled"


class Catalog(Protocol):
    async def lookup(self, barcode: str, category: str = "") -> str: ...


def normalize_barcode(raw: str) -> str:
    return str(raw or "").replace("-", "").strip()


class ScanPipeline:
    def __init__(self, catalog: Catalog, filler: FieldFiller):
        self.catalog = catalog
        self.filler = filler

    async def process(self, barcode: str, category, sink: FieldSink) -> FillOutcome:
        """Never raises for lookup, parse or fill failures; they become messages."""
        code = normalize_barcode(barcode)
        cat = Category.parse(category)
        outcome = FillOutcome(barcode=code, category=str(getattr(cat, "value", category)))
        if cat is None:
            outcome.messages.append(f"{UNKNOWN_CATEGORY_MESSAGE}: {category}")
            return outcome
        if not code:
            outcome.messages.append(NO_DATA_MESSAGE)
            return outcome

        t0 = time.perf_counter()
        try:
            payload = await self.catalog.lookup(code, cat.value)
            record = parse_record_payload(payload)
        except RecordNotFound as e:
            L.info("No record barcode=%s: %s", code, e)
            outcome.messages.append(NO_DATA_MESSAGE)
            return outcome
        except LookupFailure as e:
            L.warning("Lookup failed barcode=%s: %s", code, e)
            outcome.messages.extend([str(e), NO_DATA_MESSAGE])
            return outcome

        metadata = extract_metadata(record, cat)
        outcome.metadata = metadata
        if metadata is None or not any(v for k, v in metadata.to_dict().items() if k != "dimensions"):
            outcome.messages.append(NO_DATA_MESSAGE)
            return outcome

        try:
            messages = await self.filler.fill(cat, metadata, sink)
        except ScanError as e:
            L.warning("Fill failed barcode=%s: %s", code, e)
            outcome.messages.append(str(e))
            return outcome
        if messages is None:
            outcome.messages.append(
                NOTHING_FILLED_MESSAGE if sink.exists(TITLE_FIELD) else NO_TITLE_FIELD_MESSAGE
            )
            return outcome
        outcome.ok = True
        outcome.messages.extend(messages)
        L.info(
            "[%5s] barcode=%s category=%s total=%.2fms msgs=%s",
            "fill",
            code,
            cat.value,
            (time.perf_counter() - t0) * 1000,
            " | ".join(outcome.messages),
        )
        return outcome


__all__ = ["ScanPipeline", "normalize_barcode", "NO_DATA_MESSAGE"]
