# errors.py
# SPDX-License-Identifier: MIT
"""Exception types raised by rowmend.

Malformed records are data, not faults, and never surface here; they are
routed to the rejected stream. I/O errors from the underlying streams are
propagated unchanged and are not wrapped.
"""

from __future__ import annotations

__all__ = ["RowmendError", "FormatUnrecognizedError", "ConfigError"]


class RowmendError(ValueError):
    """Base class for rowmend-specific failures."""


class FormatUnrecognizedError(RowmendError):
    """Raised when discovery finds fewer than two anchors in a file.

    Attributes:
        anchors (int): Number of anchor matches that were found.
        source (str | None): Optional label of the offending input.
    """

    def __init__(self, message: str, *, anchors: int = 0, source: str | None = None) -> None:
        super().__init__(message)
        self.anchors = anchors
        self.source = source


class ConfigError(RowmendError):
    """Raised when a configuration value is out of range or inconsistent."""
