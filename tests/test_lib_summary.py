"""Tests for psym.lib_summary."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

from psym.lib_summary import format_summary, read_elf_info, summarize_libraries
from psym.resolver import LibraryRegistry


def test_non_elf_file(tmp_path: Path) -> None:
    path = tmp_path / "libfake.so"
    path.write_bytes(b"not an elf file at all")
    assert read_elf_info(path) == (None, None)


@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="needs an ELF interpreter binary")
def test_reads_machine_from_real_elf() -> None:
    machine, _build_id = read_elf_info(Path(sys.executable).resolve())
    assert machine is not None and machine.startswith("EM_")


def test_summary_counts_and_tags(tmp_path: Path) -> None:
    libc = tmp_path / "libc.so"
    libc.write_bytes(b"\x00" * 16)
    profile = {
        "libs": [
            {"name": "libxul.so", "start": 0x1000, "end": 0x2000, "offset": 0},
            {"name": "libc.so", "start": 0x5000, "end": 0x6000, "offset": 0},
        ],
        "threads": [
            {"stringTable": ["0x1001", "0x1002", "0x5001", "0x9999", "foo"]},
            {"stringTable": ["0x1003"]},
        ],
    }

    summaries = summarize_libraries(profile, LibraryRegistry.from_mapping({"libc.so": libc}))

    assert [(s.lib.name, s.address_count) for s in summaries] == [("libxul.so", 3), ("libc.so", 1)]
    assert summaries[0].tags == ["NOT_FOUND"]
    assert summaries[1].tags == ["NOT_ELF"]

    lines = format_summary(summaries)
    assert lines[0].split("\t")[3] == "NOT FOUND"
    assert lines[1].split("\t")[3] == str(libc)
