# lines.py
# SPDX-License-Identifier: MIT
"""Physical-line helpers shared by discovery and reconstruction."""

from __future__ import annotations

__all__ = ["normalize_line"]


def normalize_line(line: str) -> str:
    """Strip one trailing LF or CR+LF; every other character is kept."""
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    elif line.endswith("\r"):
        # Final line of a CRLF file read without its LF.
        line = line[:-1]
    return line
