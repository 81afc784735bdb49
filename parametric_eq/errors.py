from __future__ import annotations


class EngineError(Exception):
    """Base class for every failure raised by the equalizer engine."""


class DecodeError(EngineError):
    """Container bytes are empty, truncated or otherwise unreadable."""


class EncodeError(EngineError):
    """Filtering, encoding or writing the output container failed."""


class MissingInputError(EngineError):
    """The input container path does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Input file not found: {path}")


class InvalidGainError(EngineError):
    """A band gain is outside the configured window, or the band is unknown."""

    def __init__(self, band: str, value, reason: str | None = None):
        self.band = band
        self.value = value
        if reason is None:
            reason = f"Gain value out of range for band: {band} ({value} dB)"
        super().__init__(reason)
