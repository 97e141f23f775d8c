#!/usr/bin/env python3
"""
symbolizer.py

High-level symbolication workflow for psym, using addr2line in batched mode.

Responsibilities:
  - Walk every thread's string table and pick out unresolved "0xADDR"
    entries.
  - Classify each address against the capture's "libs" list and convert it
    to a library file offset (classifier.py).
  - Group offsets per (thread, library), resolve each library's binary
    through the LibraryRegistry (resolver.py), and split the groups into
    fixed-size batches.
  - Run all batches of all threads on one thread pool, one addr2line
    process per batch (addr2line_runner.py).
  - Write every resolved symbol back into the string-table slot it came
    from.

Addresses that no library owns are left untouched. Addresses in a library
whose binary cannot be found get a "0xOFFSET in LIBNAME" label.

This module does NOT read or write capture files.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from psym.addr2line_runner import fallback_label, lookup_offsets, split_batches
from psym.classifier import Library, classify, load_libraries, parse_address
from psym.config import SymbolicateConfig
from psym.resolver import LibraryRegistry


LOG = logging.getLogger("symbolizer")

# (lib_path, offsets, lib_name, config) -> one symbol per offset, None if unresolved
BatchResolver = Callable[[Path, Sequence[int], str, SymbolicateConfig], List[Optional[str]]]


@dataclass
class PendingOffset:
    """
    One string-table entry waiting for its symbol.

    index:
        Position in the owning thread's string table.
    fallback:
        True once `symbol` holds the "0xOFFSET in LIBNAME" label.
    """
    index: int
    lib_name: str
    offset: int
    symbol: Optional[str] = None
    fallback: bool = False


@dataclass
class SymbolicationStats:
    threads: int = 0
    addresses: int = 0
    unowned: int = 0
    resolved: int = 0
    fallback: int = 0
    batches: int = 0


def default_resolve_batch(
    lib_path: Path,
    offsets: Sequence[int],
    lib_name: str,
    config: SymbolicateConfig,
) -> List[Optional[str]]:
    return lookup_offsets(
        lib_path,
        offsets,
        addr2line=config.addr2line,
        timeout=config.timeout,
        include_location=config.include_location,
    )


def collect_pending(
    strings: List[Any],
    libs: List[Library],
    thumb_adjust: bool = False,
    stats: Optional[SymbolicationStats] = None,
) -> Dict[str, List[PendingOffset]]:
    """
    Scan one string table and group its owned addresses by library name.
    Group order follows first appearance in the table.
    """
    groups: Dict[str, List[PendingOffset]] = {}
    for index, entry in enumerate(strings):
        address = parse_address(entry)
        if address is None:
            continue
        if stats is not None:
            stats.addresses += 1

        lib, offset = classify(libs, address, thumb_adjust=thumb_adjust)
        if lib is None:
            if stats is not None:
                stats.unowned += 1
            continue

        groups.setdefault(lib.name, []).append(
            PendingOffset(index=index, lib_name=lib.name, offset=offset)
        )
    return groups


def _resolve_chunk(
    resolve_batch: BatchResolver,
    lib_path: Path,
    chunk: List[PendingOffset],
    config: SymbolicateConfig,
) -> List[PendingOffset]:
    symbols = resolve_batch(lib_path, [p.offset for p in chunk], chunk[0].lib_name, config)
    for i, pending in enumerate(chunk):
        # A short result list degrades the tail only.
        sym = symbols[i] if i < len(symbols) else None
        if sym:
            pending.symbol = sym
        else:
            pending.symbol = fallback_label(pending.offset, pending.lib_name)
            pending.fallback = True
    return chunk


def symbolicate_profile(
    profile: Dict[str, Any],
    registry: LibraryRegistry,
    config: Optional[SymbolicateConfig] = None,
    resolve_batch: Optional[BatchResolver] = None,
) -> SymbolicationStats:
    """
    Symbolicate every thread of `profile` in place.

    Steps:
      1) For each thread, collect unresolved addresses owned by a library.
      2) Resolve each library's binary path once per run.
      3) Libraries with no binary: write fallback labels directly.
      4) Otherwise split into batches and run them all on a thread pool.
      5) Write each symbol back to its recorded (thread, index) slot.

    Returns counters describing what happened.
    """
    config = config or SymbolicateConfig()
    resolve_batch = resolve_batch or default_resolve_batch
    stats = SymbolicationStats()

    libs = load_libraries(profile.get("libs") or [])
    threads = profile.get("threads") or []
    LOG.info("Symbolicating %d threads against %d libraries", len(threads), len(libs))

    lib_paths: Dict[str, Optional[Path]] = {}
    jobs: List[tuple] = []

    for t_index, thread in enumerate(threads):
        strings = thread.get("stringTable") if isinstance(thread, dict) else None
        if not strings:
            continue
        stats.threads += 1

        groups = collect_pending(strings, libs, config.thumb_adjust, stats)
        for lib_name, pendings in groups.items():
            if lib_name not in lib_paths:
                lib_paths[lib_name] = registry.resolve(lib_name)
                if lib_paths[lib_name] is None:
                    LOG.warning("No binary found for %s; using fallback labels", lib_name)
            lib_path = lib_paths[lib_name]

            if lib_path is None:
                for p in pendings:
                    strings[p.index] = fallback_label(p.offset, lib_name)
                stats.fallback += len(pendings)
                continue

            for chunk in split_batches(pendings, config.batch_size):
                jobs.append((t_index, lib_path, chunk))

        LOG.debug("Thread %d: %d libraries referenced", t_index, len(groups))

    stats.batches = len(jobs)
    if not jobs:
        return stats

    LOG.info("Submitting %d addr2line batches (workers=%d)", len(jobs), config.workers)
    with ThreadPoolExecutor(max_workers=max(1, config.workers)) as ex:
        fut_map = {
            ex.submit(_resolve_chunk, resolve_batch, lib_path, chunk, config): t_index
            for t_index, lib_path, chunk in jobs
        }

        for fut in as_completed(fut_map):
            strings = threads[fut_map[fut]]["stringTable"]
            for pending in fut.result():
                strings[pending.index] = pending.symbol
                if pending.fallback:
                    stats.fallback += 1
                else:
                    stats.resolved += 1

    LOG.info(
        "Resolved %d addresses, %d fallback labels, %d not in any library",
        stats.resolved,
        stats.fallback,
        stats.unowned,
    )
    return stats


__all__ = [
    "PendingOffset",
    "SymbolicationStats",
    "BatchResolver",
    "collect_pending",
    "default_resolve_batch",
    "symbolicate_profile",
]
