#!/usr/bin/env python3
"""
lib_summary.py

Summarize the libraries of a capture before symbolicating it.

For every entry in "libs" we report:
  - the address range and file offset from the capture,
  - how many unresolved string-table addresses fall in it,
  - the binary the LibraryRegistry would hand to addr2line (or NOT FOUND),
  - the ELF machine and GNU BuildId of that binary, read with pyelftools.

This is meant to answer "why did libfoo.so not symbolicate?" (missing
binary, wrong architecture, stripped/mismatched build) without running
addr2line at all. The machine column also tells whether --thumb-adjust is
worth trying (EM_ARM).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile
from elftools.elf.sections import NoteSection

from psym.classifier import Library, find_owning_library, load_libraries, parse_address
from psym.resolver import LibraryRegistry


LOG = logging.getLogger("lib_summary")


@dataclass
class LibrarySummary:
    lib: Library
    address_count: int = 0
    path: Optional[Path] = None
    machine: Optional[str] = None
    build_id: Optional[str] = None

    @property
    def tags(self) -> List[str]:
        tags: List[str] = []
        if self.path is None:
            tags.append("NOT_FOUND")
        elif self.machine is None:
            tags.append("NOT_ELF")
        elif self.build_id is None:
            tags.append("NO_BUILDID")
        return tags


def read_elf_info(path: Path) -> Tuple[Optional[str], Optional[str]]:
    """
    Return (e_machine, GNU build-id hex) for an ELF file.

    Both are None if the file is not a readable ELF; build-id alone is None
    if the file has no NT_GNU_BUILD_ID note.
    """
    try:
        with path.open("rb") as f:
            elf = ELFFile(f)
            machine = elf.header["e_machine"]
            build_id: Optional[str] = None
            for sec in elf.iter_sections():
                if not isinstance(sec, NoteSection):
                    continue
                for note in sec.iter_notes():
                    if note["n_type"] == "NT_GNU_BUILD_ID":
                        build_id = note["n_desc"]
                        break
                if build_id:
                    break
    except (OSError, ELFError) as e:
        LOG.debug("Not a readable ELF: %s (%s)", path, e)
        return None, None

    return str(machine), build_id


def summarize_libraries(
    profile: Dict[str, Any],
    registry: LibraryRegistry,
) -> List[LibrarySummary]:
    libs = load_libraries(profile.get("libs") or [])
    summaries = [LibrarySummary(lib=lib) for lib in libs]
    by_name: Dict[str, LibrarySummary] = {}
    for s in summaries:
        by_name.setdefault(s.lib.name, s)

    for thread in profile.get("threads") or []:
        if not isinstance(thread, dict):
            continue
        for entry in thread.get("stringTable") or []:
            address = parse_address(entry)
            if address is None:
                continue
            lib = find_owning_library(libs, address)
            if lib is not None:
                by_name[lib.name].address_count += 1

    for s in summaries:
        s.path = registry.resolve(s.lib.name)
        if s.path is not None:
            s.machine, s.build_id = read_elf_info(s.path)

    return summaries


def format_summary(summaries: List[LibrarySummary]) -> List[str]:
    lines: List[str] = []
    for s in summaries:
        lines.append(
            "\t".join(
                [
                    s.lib.name,
                    f"0x{s.lib.start:x}-0x{s.lib.end:x}+0x{s.lib.offset:x}",
                    f"addrs={s.address_count}",
                    str(s.path) if s.path else "NOT FOUND",
                    f"machine={s.machine or '-'}",
                    f"BuildId:{s.build_id or 'None'}",
                    ",".join(s.tags),
                ]
            ).rstrip()
        )
    return lines


__all__ = [
    "LibrarySummary",
    "read_elf_info",
    "summarize_libraries",
    "format_summary",
]
