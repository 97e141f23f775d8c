#!/usr/bin/env python3
"""
classifier.py

Address classification for profile symbolication.

Responsibilities:
  - Recognise unresolved address entries ("0x1050") in a string table.
  - Find the library whose [start, end) range owns an absolute address.
  - Convert an owned absolute address into the file offset that addr2line
    expects for that library.

This module does NOT run addr2line or touch the filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union


# The whole entry must be a hex literal. Fallback labels written by a
# previous run ("0x50 in libxul.so") therefore never match again.
_ADDR_RE = re.compile(r"^0x[0-9a-fA-F]+$")


@dataclass(frozen=True)
class Library:
    """
    One loaded library from the capture's "libs" list.

    Fields:
        name:   Base file name of the library (e.g. "libxul.so").
        start:  First absolute address of the mapping.
        end:    One past the last absolute address of the mapping.
        offset: File offset of the mapping start; added to
                (address - start) to get the offset inside the binary.
    """
    name: str
    start: int
    end: int
    offset: int = 0

    def contains(self, address: int) -> bool:
        return self.start <= address < self.end

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Library":
        if not isinstance(raw, dict):
            raise ValueError(f"library entry is not an object: {raw!r}")
        return cls(
            name=str(raw.get("name", "")),
            start=_to_int(raw.get("start", 0)),
            end=_to_int(raw.get("end", 0)),
            offset=_to_int(raw.get("offset", 0)),
        )


def _to_int(value: Union[int, float, str, None]) -> int:
    """
    Accept JSON integers, integral floats (JSON.stringify output for large
    addresses) and "0x..." / decimal strings. Anything else is a ValueError.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError(f"not an address: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"not an integral address: {value!r}")
        return int(value)
    if not isinstance(value, str):
        raise ValueError(f"not an address: {value!r}")
    s = str(value).strip()
    if s.lower().startswith("0x"):
        return int(s, 16)
    return int(s)


def load_libraries(raw_libs: Iterable[Dict[str, Any]]) -> List[Library]:
    """
    Raises ValueError on an entry that is not an object or carries a
    non-numeric start/end/offset.
    """
    return [Library.from_dict(raw) for raw in raw_libs]


def parse_address(entry: Any) -> Optional[int]:
    """
    Return the numeric value of an unresolved address entry, or None if the
    entry is any other string.
    """
    if not isinstance(entry, str) or not _ADDR_RE.match(entry):
        return None
    return int(entry, 16)


def find_owning_library(libs: Iterable[Library], address: int) -> Optional[Library]:
    """
    Linear scan in list order; the first library whose range contains the
    address wins.
    """
    for lib in libs:
        if lib.contains(address):
            return lib
    return None


def relative_offset(lib: Library, address: int) -> int:
    return address - lib.start + lib.offset


def adjusted_offset(lib: Library, address: int) -> int:
    """
    Offset with the low (ARM/Thumb mode) bit cleared, minus one.

    Only used when the run is configured with thumb_adjust=True; whether
    this is the right form for Thumb binaries has not been confirmed.
    """
    return (relative_offset(lib, address) & ~1) - 1


def classify(libs: Iterable[Library], address: int, thumb_adjust: bool = False):
    """
    Return (library, file_offset) for an owned address, or (None, None).
    """
    lib = find_owning_library(libs, address)
    if lib is None:
        return None, None
    if thumb_adjust:
        return lib, adjusted_offset(lib, address)
    return lib, relative_offset(lib, address)


__all__ = [
    "Library",
    "load_libraries",
    "parse_address",
    "find_owning_library",
    "relative_offset",
    "adjusted_offset",
    "classify",
]
