#!/usr/bin/env python3
"""
addr2line_runner.py

Helper module to run addr2line for a batch of offsets in one library.

This module provides:

  - lookup_offsets(): run addr2line once for many offsets of the same
    binary and return one symbol (or None) per offset, in request order.
  - run_addr2line_batch(): the same, with fallback labels filled in.
  - split_batches(): split a list of work items into fixed-size batches.
  - fallback_label(): the "0xOFFSET in LIBNAME" label used whenever no
    symbol could be obtained for an offset.

The goal is to reduce overhead by invoking addr2line once per batch of
offsets rather than once per address, while keeping the argument list
bounded.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence, TypeVar

LOG = logging.getLogger("addr2line_runner")

DEFAULT_ADDR2LINE = "addr2line"
DEFAULT_BATCH_SIZE = 1000
DEFAULT_TIMEOUT = 120.0

# addr2line prints these when it has no line information.
_UNKNOWN_LOCATIONS = ("??:0", "??:?", "")

T = TypeVar("T")


def format_offset(offset: int) -> str:
    return "0x" + format(offset, "x")


def fallback_label(offset: int, lib_name: str) -> str:
    return f"{format_offset(offset)} in {lib_name}"


def split_batches(items: Sequence[T], size: int = DEFAULT_BATCH_SIZE) -> List[List[T]]:
    """
    Split items into consecutive chunks of at most `size` elements.
    """
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def _run(cmd: List[str], timeout: Optional[float]) -> str:
    """
    Run addr2line and return its stdout. Every failure mode is reported as
    an empty string so that callers fall back per offset.

    Output is decoded leniently: a symbol or path that is not valid UTF-8
    comes back with replacement characters instead of failing the batch.
    """
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout,
        )
    except FileNotFoundError:
        LOG.error("addr2line not found when running: %s", cmd[0])
        return ""
    except subprocess.TimeoutExpired:
        LOG.warning("addr2line timed out after %ss for %s", timeout, cmd[2])
        return ""
    except (OSError, ValueError) as e:
        LOG.error("Failed to run addr2line: %s", e)
        return ""

    if proc.returncode != 0:
        # Partial output is still usable; missing positions fall back.
        LOG.warning(
            "addr2line exited with code %d for %s: %s",
            proc.returncode,
            cmd[2],
            (proc.stderr or "").strip(),
        )
    return proc.stdout or ""


def lookup_offsets(
    lib_path: Path,
    offsets: Sequence[int],
    addr2line: str = DEFAULT_ADDR2LINE,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    include_location: bool = False,
) -> List[Optional[str]]:
    """
    Resolve all offsets of one batch with a single addr2line process.

    Args:
        lib_path:
            Binary passed to addr2line as -e.
        offsets:
            File offsets inside lib_path. Repeats are allowed.
        addr2line:
            addr2line executable (may carry a cross-toolchain prefix).
        timeout:
            Seconds to wait for the process; a timeout counts as no output.
        include_location:
            If True, append the "file:line" line to the function name when
            addr2line reported one.

    Returns:
        One entry per input offset, same order and length as `offsets`;
        None where addr2line produced no function line.

    With "-f -C", addr2line prints two lines per address in request order:

        func1
        file1:line1
        func2
        file2:line2
        ...
    """
    if not offsets:
        return []

    cmd: List[str] = [
        addr2line,
        "-e",
        str(lib_path),
        "-f",      # print function names
        "-C",      # demangle
    ]
    cmd.extend(format_offset(o) for o in offsets)

    LOG.debug("Running addr2line on %s with %d offsets", lib_path, len(offsets))
    lines = _run(cmd, timeout).split("\n")

    symbols: List[Optional[str]] = []
    for i in range(len(offsets)):
        func = lines[2 * i] if 2 * i < len(lines) else ""
        if not func:
            symbols.append(None)
            continue

        if include_location and 2 * i + 1 < len(lines):
            location = lines[2 * i + 1].strip()
            if location not in _UNKNOWN_LOCATIONS:
                func = f"{func} {location}"
        symbols.append(func)

    return symbols


def run_addr2line_batch(
    lib_path: Path,
    offsets: Sequence[int],
    lib_name: str,
    addr2line: str = DEFAULT_ADDR2LINE,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    include_location: bool = False,
) -> List[str]:
    """
    Like lookup_offsets(), but every unresolved position gets the
    "0xOFFSET in LIBNAME" fallback label.
    """
    symbols = lookup_offsets(
        lib_path,
        offsets,
        addr2line=addr2line,
        timeout=timeout,
        include_location=include_location,
    )
    return [
        sym if sym is not None else fallback_label(offset, lib_name)
        for sym, offset in zip(symbols, offsets)
    ]


__all__ = [
    "DEFAULT_ADDR2LINE",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_TIMEOUT",
    "format_offset",
    "fallback_label",
    "split_batches",
    "lookup_offsets",
    "run_addr2line_batch",
]
