import logging
from typing import Iterable, Protocol

from core.contracts import BookMetadata, CoverResult, Metadata
from core.errors import CoverResolutionFailure
from extract.categories import Category, MediaKind

from .sink import FieldSink, RowHandle

L = logging.getLogger("media_scan.output.filler")

FILLED_MESSAGE = "Data filled successfully"

TITLE_FIELD = "title"
VOLUMES_GROUP = "volumes"
VOLUME_TITLE_FIELD = "volume_title"

# (metadata attribute, sink field); dotted attributes walk nested objects.
BOOK_FIELDS = (
    ("excerpt", "excerpt"),
    ("author", "author"),
    ("editor", "editor"),
    ("dimensions.height", "height"),
)
VOLUME_FIELDS = (
    ("volume_number", "volume_number"),
    ("isbn", "volume_isbn"),
    ("year", "volume_year"),
)
AUDIO_FIELDS = (
    ("excerpt", "excerpt"),
    ("artist", "artist"),
    ("id_number", "number"),
    ("year", "year"),
)
VIDEO_FIELDS = (
    ("excerpt", "excerpt"),
    ("director", "author"),
    ("editor", "editor"),
    ("id_number", "number"),
    ("year", "date"),
)

_FIELDS_BY_KIND = {
    MediaKind.BOOKS: BOOK_FIELDS,
    MediaKind.AUDIO: AUDIO_FIELDS,
    MediaKind.VIDEO: VIDEO_FIELDS,
}


class CoverSource(Protocol):
    async def resolve_cover(self, page_url: str) -> CoverResult: ...


def _value(metadata: Metadata, path: str) -> str | None:
    obj = metadata
    for part in path.split("."):
        obj = getattr(obj, part, None)
        if obj is None:
            return None
    return obj or None


def fill_if_empty(target: FieldSink | RowHandle, name: str, value: str | None) -> bool:
    if not value or not target.exists(name) or not target.is_empty(name):
        return False
    target.set(name, value)
    return True


def fill_fields(target, metadata: Metadata, table: Iterable[tuple[str, str]]) -> list[str]:
    """Non-destructive writes; returns the sink fields actually written."""
    return [
        field for attr, field in table if fill_if_empty(target, field, _value(metadata, attr))
    ]


class FieldFiller:
    """Routes extracted metadata into a sink according to the media kind."""

    def __init__(
        self,
        cover_source: CoverSource | None = None,
        *,
        overwrite_title_kinds: Iterable[str] = (MediaKind.AUDIO.value, MediaKind.VIDEO.value),
    ):
        self.cover_source = cover_source
        self.overwrite_title_kinds = {MediaKind(k) for k in overwrite_title_kinds}

    async def fill(self, category, metadata: Metadata, sink: FieldSink) -> list[str] | None:
        cat = Category.parse(category)
        if cat is None:
            L.warning("Unknown category %r; nothing filled", category)
            return None
        if not sink.exists(TITLE_FIELD):
            L.info("Sink has no %s field; nothing filled", TITLE_FIELD)
            return None
        kind = cat.kind
        title_was_empty = sink.is_empty(TITLE_FIELD)

        if kind is MediaKind.BOOKS:
            written = self._write_title(kind, sink, metadata.title)
            written += fill_fields(sink, metadata, BOOK_FIELDS)
            if sink.has_group(VOLUMES_GROUP):
                written += await self._fill_volume_row(sink, metadata, title_was_empty)
        else:
            if not title_was_empty and not metadata.title:
                L.info("Title already set and none fetched; %s fill skipped", cat.value)
                return None
            written = self._write_title(kind, sink, metadata.title)
            written += fill_fields(sink, metadata, _FIELDS_BY_KIND[kind])

        L.info("Filled category=%s fields=%s", cat.value, ",".join(written) or "-")
        messages = [FILLED_MESSAGE]
        # Books: only a fresh form gets a cover. Audio/video: also when the title was replaced.
        wants_cover = title_was_empty
        if kind is not MediaKind.BOOKS:
            wants_cover = wants_cover or TITLE_FIELD in written
        if metadata.cover and wants_cover:
            message = await self._fetch_cover(metadata.cover)
            if message:
                messages.append(message)
        return messages

    def _write_title(self, kind: MediaKind, sink: FieldSink, title: str | None) -> list[str]:
        if not title:
            return []
        if kind in self.overwrite_title_kinds:
            sink.set(TITLE_FIELD, title)
            return [TITLE_FIELD]
        return [TITLE_FIELD] if fill_if_empty(sink, TITLE_FIELD, title) else []

    async def _fill_volume_row(
        self, sink: FieldSink, metadata: Metadata, title_was_empty: bool
    ) -> list[str]:
        before = sink.rows(VOLUMES_GROUP)
        await sink.append_row(VOLUMES_GROUP)
        after = sink.rows(VOLUMES_GROUP)
        new_rows = [row for row in after if not any(row is old for old in before)]
        if len(new_rows) != 1:
            L.info("Volume row not identified (new rows=%d); row left empty", len(new_rows))
            return []
        row = new_rows[0]
        written = []
        series_title = metadata.series_title if isinstance(metadata, BookMetadata) else None
        if not title_was_empty and series_title and metadata.title:
            if sink.get(TITLE_FIELD).strip() == series_title.strip():
                if fill_if_empty(row, VOLUME_TITLE_FIELD, metadata.title):
                    written.append(f"{VOLUMES_GROUP}.{VOLUME_TITLE_FIELD}")
        written += [
            f"{VOLUMES_GROUP}.{field}" for field in fill_fields(row, metadata, VOLUME_FIELDS)
        ]
        return written

    async def _fetch_cover(self, page_url: str) -> str | None:
        if self.cover_source is None:
            return None
        try:
            result = await self.cover_source.resolve_cover(page_url)
        except CoverResolutionFailure as e:
            L.warning("Cover not resolved page=%s err=%s", page_url, e)
            return str(e)
        return result.message or None


__all__ = [
    "FILLED_MESSAGE",
    "FieldFiller",
    "CoverSource",
    "fill_fields",
    "fill_if_empty",
]
