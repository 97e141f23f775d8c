#!/usr/bin/env python3
"""
resolver.py

Library registry: maps a library base name from the capture's "libs" list
(e.g. "libxul.so") to a binary on disk that addr2line can read.

The registry scans its search roots once, on the first lookup, and keeps
the resulting basename -> path table in memory for the rest of the run.
Roots are scanned in order; when the same base name appears under more
than one root, the last one scanned wins.

A registry is an explicit object passed to the symbolizer, so tests (or a
different discovery mechanism) can supply their own mapping.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Mapping, Optional


LOG = logging.getLogger("resolver")


class LibraryScanError(RuntimeError):
    """
    Raised when walking an existing search root fails.
    """


class LibraryRegistry:
    def __init__(self, search_roots: Iterable[Path]) -> None:
        self.search_roots: List[Path] = [Path(p) for p in search_roots]
        self._lock = Lock()
        self._paths: Optional[Dict[str, Path]] = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Path]) -> "LibraryRegistry":
        """
        Build a registry that never scans and serves the given table.
        """
        reg = cls([])
        reg._paths = {name: Path(p) for name, p in mapping.items()}
        return reg

    @property
    def is_built(self) -> bool:
        return self._paths is not None

    def _scan_root(self, root: Path, table: Dict[str, Path]) -> int:
        def _raise(err: OSError) -> None:
            raise LibraryScanError(f"Failed to scan {root}: {err}") from err

        count = 0
        for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
            for name in filenames:
                full = Path(dirpath) / name
                if not full.is_file():
                    continue
                table[name] = full
                count += 1
        return count

    def _build(self) -> Dict[str, Path]:
        table: Dict[str, Path] = {}
        for root in self.search_roots:
            if not root.is_dir():
                LOG.warning("Library search root not found, skipping: %s", root)
                continue
            n = self._scan_root(root, table)
            LOG.info("Indexed %d files under %s", n, root)
        LOG.info("Library index built: %d unique names", len(table))
        return table

    def resolve(self, name: str) -> Optional[Path]:
        """
        Return the binary path for a library name, or None if it is not
        under any search root.
        """
        # Concurrent first callers block here until the single scan is done.
        with self._lock:
            if self._paths is None:
                self._paths = self._build()
            paths = self._paths

        path = paths.get(name)
        if path is None:
            LOG.debug("Library not found in search roots: %s", name)
        return path


__all__ = [
    "LibraryRegistry",
    "LibraryScanError",
]
