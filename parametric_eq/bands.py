from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from .errors import InvalidGainError


@dataclass(frozen=True)
class Shelf:
    center_frequency_hz: float
    q_factor: float

    @property
    def is_shelf(self) -> bool:
        return True


@dataclass(frozen=True)
class Peaking:
    center_frequency_hz: float
    q_factor: float

    @property
    def is_shelf(self) -> bool:
        return False


BandConfig = Shelf | Peaking

# Cascade order: each band filters the output of the one before it.
BANDS: dict[str, BandConfig] = {
    "bass": Shelf(80.0, 0.7),
    "low_mid": Peaking(200.0, 1.0),
    "mid": Peaking(1000.0, 1.4),
    "high_mid": Peaking(5000.0, 1.0),
    "treble": Shelf(10000.0, 0.7),
}
BAND_ORDER: tuple[str, ...] = tuple(BANDS)

BAND_INFO: dict[str, dict[str, str]] = {
    "bass": {"label": "Bass", "description": "Low frequency enhancement (80Hz)"},
    "low_mid": {"label": "Low Mid", "description": "Lower midrange control (200Hz)"},
    "mid": {"label": "Mid", "description": "Midrange presence (1kHz)"},
    "high_mid": {"label": "High Mid", "description": "Upper midrange clarity (5kHz)"},
    "treble": {"label": "Treble", "description": "High frequency sparkle (10kHz)"},
}


@dataclass
class GainRequest:
    """Requested gain in dB per band name."""

    gains: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "GainRequest":
        """Accept ``{band: gain}`` or ``{band: {"gain": gain}}``."""
        gains: dict[str, float] = {}
        for band, value in settings.items():
            if isinstance(value, Mapping):
                if "gain" not in value:
                    raise InvalidGainError(band, None, f"Invalid EQ settings for band: {band}")
                value = value["gain"]
            try:
                gains[band] = float(value)
            except (TypeError, ValueError) as exc:
                raise InvalidGainError(band, value, f"Gain for band {band} is not a number: {value!r}") from exc
        return cls(gains)

    def validate(self, min_gain_db: float = -18.0, max_gain_db: float = 18.0) -> None:
        validate_gains(self, min_gain_db, max_gain_db)

    def active_bands(self) -> Iterator[tuple[str, BandConfig, float]]:
        """Yield ``(name, band, gain)`` in cascade order, skipping 0 dB bands."""
        for name in BAND_ORDER:
            gain = self.gains.get(name, 0.0)
            if gain != 0:
                yield name, BANDS[name], gain

    def is_flat(self) -> bool:
        return not any(True for _ in self.active_bands())


def validate_gains(request: GainRequest, min_gain_db: float = -18.0, max_gain_db: float = 18.0) -> None:
    """Raise ``InvalidGainError`` on the first unknown band or out-of-range gain."""
    for band, gain in list(request.gains.items()):
        if band not in BANDS:
            raise InvalidGainError(band, gain, f"Unknown EQ band: {band}")
        try:
            value = float(gain)
        except (TypeError, ValueError) as exc:
            raise InvalidGainError(band, gain, f"Gain for band {band} is not a number: {gain!r}") from exc
        if not (min_gain_db <= value <= max_gain_db):
            raise InvalidGainError(band, gain)
        request.gains[band] = value
