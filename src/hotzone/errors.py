from __future__ import annotations


class HotzoneError(Exception):
    """Base class for failures raised by the hotzone pipeline."""


class InvalidRange(HotzoneError, ValueError):
    """Raised for a malformed or empty time window. Always a caller bug."""


class FetchError(HotzoneError):
    """Raised when remote audio cannot be retrieved."""


class DecodeError(HotzoneError):
    """Raised when an audio container cannot be decoded."""


class TranscriptionError(HotzoneError):
    """Raised when the speech-to-text service call fails."""


class CacheWriteError(HotzoneError):
    """Raised by the transcript store when a cache record cannot be written."""
