#!/usr/bin/env python3
"""
config.py

Run configuration for psym.

All tunables live in SymbolicateConfig. The CLI builds one from its
arguments (falling back to environment variables); library code only ever
receives the config object.

Environment:
    PSYM_ADDR2LINE     addr2line executable to use.
    PSYM_SEARCH_ROOTS  os.pathsep-separated list of library search roots.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from psym.addr2line_runner import (
    DEFAULT_ADDR2LINE,
    DEFAULT_BATCH_SIZE,
    DEFAULT_TIMEOUT,
)


DEFAULT_SUFFIX = ".sym"
DEFAULT_WORKERS = 4


def default_search_roots() -> List[Path]:
    """
    Library search roots used when none are given.

    Firefox for Android layout: the local objdir dist/ for libxul and
    friends, and ./remote-libs for system libraries pulled with
    "adb pull /system/lib ./remote-libs".
    """
    env = os.environ.get("PSYM_SEARCH_ROOTS")
    if env:
        return [Path(p) for p in env.split(os.pathsep) if p]

    home = Path(os.environ.get("HOME", "~")).expanduser()
    return [
        home / "source" / "objdirs" / "objdir-android-opt" / "dist",
        Path("./remote-libs"),
    ]


@dataclass
class SymbolicateConfig:
    search_roots: List[Path] = field(default_factory=default_search_roots)
    addr2line: str = field(
        default_factory=lambda: os.environ.get("PSYM_ADDR2LINE", DEFAULT_ADDR2LINE)
    )
    batch_size: int = DEFAULT_BATCH_SIZE
    workers: int = DEFAULT_WORKERS
    timeout: Optional[float] = DEFAULT_TIMEOUT
    thumb_adjust: bool = False
    include_location: bool = False
    suffix: str = DEFAULT_SUFFIX

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "SymbolicateConfig":
        cfg = cls()
        if args.search_root:
            cfg.search_roots = [Path(p) for p in args.search_root]

        if args.addr2line:
            cfg.addr2line = args.addr2line
        elif args.cross_prefix:
            cfg.addr2line = args.cross_prefix + "addr2line"

        cfg.batch_size = max(1, args.batch_size)
        cfg.workers = max(1, args.workers)
        cfg.timeout = args.timeout if args.timeout and args.timeout > 0 else None
        cfg.thumb_adjust = args.thumb_adjust
        cfg.include_location = args.with_location
        cfg.suffix = args.suffix
        return cfg


__all__ = [
    "DEFAULT_SUFFIX",
    "DEFAULT_WORKERS",
    "SymbolicateConfig",
    "default_search_roots",
]
