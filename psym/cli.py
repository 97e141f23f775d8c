#!/usr/bin/env python3
"""
cli.py

Main entry point for psym.

Responsibilities:
  - Load a profiler capture via profile_io.py
  - Print a per-library summary (--summary) via lib_summary.py
  - Symbolicate the capture via symbolizer.py + addr2line_runner.py
  - Write the result next to the input ("<input>.sym" by default)
  - Provide CLI interface

Usage examples:

  # Symbolicate with the default search roots
  psym ./profile.json

  # Android capture with libraries pulled from the device
  psym --cross-prefix arm-linux-androideabi- \
      --search-root ~/source/objdirs/objdir-android-opt/dist \
      --search-root ./remote-libs \
      ./profile.json

  # Check which libraries can be found before symbolicating
  psym --summary ./profile.json
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from psym.addr2line_runner import DEFAULT_BATCH_SIZE, DEFAULT_TIMEOUT
from psym.config import DEFAULT_SUFFIX, DEFAULT_WORKERS, SymbolicateConfig
from psym.lib_summary import format_summary, summarize_libraries
from psym.profile_io import (
    ProfileReadError,
    ProfileWriteError,
    output_path_for,
    read_profile,
    write_profile,
)
from psym.resolver import LibraryRegistry, LibraryScanError
from psym.symbolizer import symbolicate_profile


LOG = logging.getLogger("psym")


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="psym",
        description="Symbolicate raw addresses in a sampling-profiler capture using addr2line.",
    )
    p.add_argument(
        "input",
        metavar="PROFILE_PATH",
        help="Path to the profiler capture (JSON).",
    )
    p.add_argument(
        "--search-root",
        action="append",
        metavar="DIR",
        help=(
            "Directory searched recursively for library binaries. "
            "May be given multiple times; later roots win on duplicate names. "
            "Default: $PSYM_SEARCH_ROOTS, else the Android objdir dist/ and ./remote-libs."
        ),
    )
    p.add_argument(
        "--addr2line",
        help="addr2line executable (default: $PSYM_ADDR2LINE or 'addr2line').",
    )
    p.add_argument(
        "--cross-prefix",
        help=(
            "Toolchain prefix; uses PREFIX + 'addr2line' "
            "(e.g. arm-linux-androideabi-). Ignored if --addr2line is set."
        ),
    )
    p.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Addresses per addr2line invocation (default: {DEFAULT_BATCH_SIZE}).",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Number of addr2line processes run in parallel (default: {DEFAULT_WORKERS}).",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=(
            f"Seconds to wait for one addr2line invocation (default: {DEFAULT_TIMEOUT:g}). "
            "0 disables the timeout."
        ),
    )
    p.add_argument(
        "--thumb-adjust",
        action="store_true",
        help="Clear the low (Thumb) bit and subtract one from each offset before lookup.",
    )
    p.add_argument(
        "--with-location",
        action="store_true",
        help="Append addr2line's 'file:line' to each resolved function name.",
    )
    p.add_argument(
        "--suffix",
        default=DEFAULT_SUFFIX,
        help=f"Suffix appended to the input path for the output file (default: {DEFAULT_SUFFIX}).",
    )
    p.add_argument(
        "--output",
        help="Write the symbolicated profile to this path instead of <input><suffix>.",
    )
    p.add_argument(
        "--summary",
        action="store_true",
        help="Print a per-library summary only (no symbolication).",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    return p


def run(args: argparse.Namespace) -> Path | None:
    """
    Execute one CLI invocation. Returns the written output path, or None in
    summary mode. Fatal errors raise SystemExit(1).
    """
    config = SymbolicateConfig.from_args(args)
    profile_path = Path(args.input)

    try:
        profile = read_profile(profile_path)
    except ProfileReadError as e:
        LOG.error("Failed to read profile: %s", e)
        raise SystemExit(1)

    registry = LibraryRegistry(config.search_roots)

    try:
        if args.summary:
            for line in format_summary(summarize_libraries(profile, registry)):
                print(line)
            return None

        stats = symbolicate_profile(profile, registry, config)
    except LibraryScanError as e:
        LOG.error("%s", e)
        raise SystemExit(1)

    LOG.info(
        "Threads: %d, addresses: %d, batches: %d",
        stats.threads,
        stats.addresses,
        stats.batches,
    )

    out_path = Path(args.output) if args.output else output_path_for(profile_path, config.suffix)
    try:
        write_profile(out_path, profile)
    except ProfileWriteError as e:
        LOG.error("Failed to write profile: %s", e)
        raise SystemExit(1)

    print(f"Wrote symbolicated profile to: {out_path}")
    return out_path


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    args = build_argparser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    run(args)


if __name__ == "__main__":
    main()
