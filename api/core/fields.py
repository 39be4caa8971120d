"""
Presence marker for partial updates.

Update objects default every optional column to `UNSET`. A field holding any
other value, including "" or False, is written; `UNSET` fields are left alone.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Final


class _Unset:
    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> _Unset:
        return self

    def __deepcopy__(self, memo: dict) -> _Unset:
        return self


UNSET: Final = _Unset()


def is_set(value: Any) -> bool:
    return value is not UNSET


def present_fields(obj: Any, *, skip: tuple[str, ...] = ()) -> list[tuple[str, Any]]:
    """
    (name, value) for each dataclass field of `obj` that is not UNSET, in declaration order.
    """
    out: list[tuple[str, Any]] = []
    for f in fields(obj):
        if f.name in skip:
            continue
        value = getattr(obj, f.name)
        if is_set(value):
            out.append((f.name, value))
    return out
