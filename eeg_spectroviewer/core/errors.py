# eeg_spectroviewer/core/errors.py
from __future__ import annotations


class SpectrogramError(Exception):
    """Base class for every error raised by the decoding/rendering pipeline."""


class DecodeError(SpectrogramError, ValueError):
    """Buffer is not a well-formed columnar container."""


class InvalidChannel(SpectrogramError, KeyError):
    """Requested channel is not present in the recording."""

    def __init__(self, channel: str, available=()):
        self.channel = channel
        self.available = tuple(available)
        super().__init__(channel)

    def __str__(self) -> str:
        avail = ", ".join(self.available) or "none"
        return f"channel '{self.channel}' not in recording (available: {avail})"


class RangeError(SpectrogramError, IndexError):
    """Time-index bounds outside the recording."""


class EmptyOffsets(SpectrogramError, ValueError):
    """No segments to combine."""
