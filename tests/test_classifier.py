"""Tests for psym.classifier: address recognition and library lookup."""
from __future__ import annotations

import pytest

from psym.classifier import (
    Library,
    adjusted_offset,
    classify,
    find_owning_library,
    load_libraries,
    parse_address,
    relative_offset,
)


LIBS = [
    Library(name="libxul.so", start=0x1000, end=0x2000, offset=0),
    Library(name="libc.so", start=0x5000, end=0x6000, offset=0x300),
]


def test_parse_address_accepts_only_whole_hex_literals() -> None:
    assert parse_address("0x1050") == 0x1050
    assert parse_address("0xDEADbeef") == 0xDEADBEEF

    assert parse_address("MyFunc(int)") is None
    assert parse_address("0x50 in libxul.so") is None
    assert parse_address("0x") is None
    assert parse_address("1050") is None
    assert parse_address(1050) is None


def test_in_range_address_is_owned_with_relative_offset() -> None:
    for lib in LIBS:
        for address in (lib.start, lib.start + 0x50, lib.end - 1):
            assert find_owning_library(LIBS, address) is lib
            assert relative_offset(lib, address) == address - lib.start + lib.offset


def test_out_of_range_address_is_unowned() -> None:
    assert find_owning_library(LIBS, 0x9999) is None
    # end is exclusive
    assert find_owning_library(LIBS, 0x2000) is None
    assert find_owning_library(LIBS, 0xFFF) is None
    assert classify(LIBS, 0x9999) == (None, None)


def test_first_matching_library_wins() -> None:
    first = Library(name="a.so", start=0x0, end=0x100)
    second = Library(name="b.so", start=0x0, end=0x100)
    assert find_owning_library([first, second], 0x10) is first


def test_classify_uses_plain_offset_unless_thumb_adjust() -> None:
    lib, off = classify(LIBS, 0x5051)
    assert lib.name == "libc.so"
    assert off == 0x351

    lib, off = classify(LIBS, 0x5051, thumb_adjust=True)
    assert off == adjusted_offset(lib, 0x5051) == 0x34F


def test_load_libraries_accepts_ints_and_hex_strings() -> None:
    libs = load_libraries(
        [
            {"name": "libxul.so", "start": 4096, "end": 8192, "offset": 0},
            {"name": "libm.so", "start": "0x9000", "end": "0xa000"},
        ]
    )
    assert libs[0] == Library("libxul.so", 0x1000, 0x2000, 0)
    assert libs[1] == Library("libm.so", 0x9000, 0xA000, 0)


def test_load_libraries_accepts_integral_floats() -> None:
    libs = load_libraries([{"name": "libxul.so", "start": 4096.0, "end": 8192.0, "offset": 0.0}])
    assert libs[0] == Library("libxul.so", 0x1000, 0x2000, 0)


@pytest.mark.parametrize(
    "raw",
    [
        {"name": "a.so", "start": 4096.5, "end": 8192},
        {"name": "a.so", "start": "not-hex", "end": 8192},
        {"name": "a.so", "start": True, "end": 8192},
        {"name": "a.so", "start": 0, "end": {"x": 1}},
        "a.so",
        None,
    ],
)
def test_load_libraries_rejects_malformed_entries(raw) -> None:
    with pytest.raises(ValueError):
        load_libraries([raw])
