"""Field sinks: the destination form the filler writes into.

A sink maps logical field names to string slots. A slot that does not exist is
never created by a write; an empty string is an empty slot.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Iterable, Mapping, Protocol

L = logging.getLogger("media_scan.output.sink")


class RowHandle(Protocol):
    def exists(self, name: str) -> bool: ...

    def is_empty(self, name: str) -> bool: ...

    def set(self, name: str, value: str) -> None: ...


class FieldSink(Protocol):
    def exists(self, name: str) -> bool: ...

    def is_empty(self, name: str) -> bool: ...

    def get(self, name: str) -> str: ...

    def set(self, name: str, value: str) -> None: ...

    def has_group(self, group: str) -> bool: ...

    def rows(self, group: str) -> list[RowHandle]: ...

    async def append_row(self, group: str) -> None:
        """Request a new empty row; it may materialize asynchronously."""
        ...


class _Slots:
    def __init__(self, values: Mapping[str, Any] | None = None):
        self.values: dict[str, str] = {
            str(k): "" if v is None else str(v) for k, v in (values or {}).items()
        }

    def exists(self, name: str) -> bool:
        return name in self.values

    def is_empty(self, name: str) -> bool:
        return not self.values.get(name, "")

    def get(self, name: str) -> str:
        return self.values.get(name, "")

    def set(self, name: str, value: str) -> None:
        if name not in self.values:
            raise KeyError(f"no field named {name!r}")
        self.values[name] = "" if value is None else str(value)


class MemoryRow(_Slots):
    pass


class MemoryGroup:
    def __init__(self, fields: Iterable[str], rows: Iterable[Mapping[str, Any]] = ()):
        self.fields = list(fields)
        self.rows: list[MemoryRow] = []
        for row in rows:
            values = dict.fromkeys(self.fields, "")
            values.update(row)
            self.rows.append(MemoryRow(values))

    def new_row(self) -> MemoryRow:
        return MemoryRow(dict.fromkeys(self.fields, ""))


class MemoryFieldSink(_Slots):
    """In-memory form; new group rows appear one loop iteration after the request."""

    def __init__(
        self,
        fields: Mapping[str, Any] | None = None,
        groups: Mapping[str, Iterable[str] | MemoryGroup] | None = None,
    ):
        super().__init__(fields)
        self.groups: dict[str, MemoryGroup] = {}
        for name, group in (groups or {}).items():
            self.groups[name] = group if isinstance(group, MemoryGroup) else MemoryGroup(group)

    def has_group(self, group: str) -> bool:
        return group in self.groups

    def rows(self, group: str) -> list[RowHandle]:
        if group not in self.groups:
            return []
        return list(self.groups[group].rows)

    async def append_row(self, group: str) -> None:
        if group not in self.groups:
            raise KeyError(f"no group named {group!r}")
        await asyncio.sleep(0)
        self.groups[group].rows.append(self.groups[group].new_row())

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": dict(self.values),
            "groups": {
                name: {
                    "fields": list(group.fields),
                    "rows": [dict(row.values) for row in group.rows],
                }
                for name, group in self.groups.items()
            },
        }


class JsonFormSink(MemoryFieldSink):
    """Form persisted as JSON::

        {"fields": {"title": "", ...},
         "groups": {"volumes": {"fields": ["volume_number", ...], "rows": [...]}}}
    """

    def __init__(self, path: str, data: Mapping[str, Any] | None = None):
        data = data or {}
        groups = {
            name: MemoryGroup(block.get("fields") or [], block.get("rows") or [])
            for name, block in (data.get("groups") or {}).items()
        }
        super().__init__(data.get("fields") or {}, groups)
        self.path = path

    @classmethod
    def load(cls, path: str) -> "JsonFormSink":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"form root must be an object: {path}")
        return cls(path, data)

    def save(self) -> str:
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)
        L.info("Form saved: %s", self.path)
        return self.path


__all__ = [
    "FieldSink",
    "RowHandle",
    "MemoryRow",
    "MemoryGroup",
    "MemoryFieldSink",
    "JsonFormSink",
]
