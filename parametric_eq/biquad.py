from __future__ import annotations

import math
from dataclasses import dataclass
from functools import singledispatch

import numpy as np
from scipy import signal

from .bands import Peaking, Shelf


@dataclass(frozen=True)
class BiquadCoefficients:
    """Raw, unnormalized transfer-function coefficients."""

    a0: float
    a1: float
    a2: float
    b0: float
    b1: float
    b2: float

    def normalized(self) -> tuple[np.ndarray, np.ndarray]:
        """Return ``(b, a)`` divided through by ``a0`` so that ``a[0] == 1``."""
        if self.a0 == 0.0:
            raise ZeroDivisionError("a0 is zero; coefficients do not describe a filter")
        b = np.array([self.b0, self.b1, self.b2], dtype=np.float64) / self.a0
        a = np.array([1.0, self.a1 / self.a0, self.a2 / self.a0], dtype=np.float64)
        return b, a


def _intermediates(frequency: float, q: float, gain_db: float, sample_rate: int) -> tuple[float, float, float]:
    A = 10.0 ** (gain_db / 40.0)
    w0 = 2.0 * math.pi * frequency / sample_rate
    alpha = math.sin(w0) / (2.0 * q)
    return A, w0, alpha


@singledispatch
def design(band, gain_db: float, sample_rate: int = 44100) -> BiquadCoefficients:
    """Derive biquad coefficients for ``band`` at ``gain_db``."""
    raise TypeError(f"Unsupported band shape: {type(band).__name__}")


@design.register
def _(band: Shelf, gain_db: float, sample_rate: int = 44100) -> BiquadCoefficients:
    # Low-shelf form for both shelf bands; the center frequency alone places it.
    A, w0, alpha = _intermediates(band.center_frequency_hz, band.q_factor, gain_db, sample_rate)
    cos_w0 = math.cos(w0)
    two_sqrt_a_alpha = 2.0 * math.sqrt(A) * alpha
    return BiquadCoefficients(
        a0=(A + 1) + (A - 1) * cos_w0 + two_sqrt_a_alpha,
        a1=-2.0 * ((A - 1) + (A + 1) * cos_w0),
        a2=(A + 1) + (A - 1) * cos_w0 - two_sqrt_a_alpha,
        b0=A * ((A + 1) - (A - 1) * cos_w0 + two_sqrt_a_alpha),
        b1=2.0 * A * ((A - 1) - (A + 1) * cos_w0),
        b2=A * ((A + 1) - (A - 1) * cos_w0 - two_sqrt_a_alpha),
    )


@design.register
def _(band: Peaking, gain_db: float, sample_rate: int = 44100) -> BiquadCoefficients:
    A, w0, alpha = _intermediates(band.center_frequency_hz, band.q_factor, gain_db, sample_rate)
    cos_w0 = math.cos(w0)
    return BiquadCoefficients(
        a0=1.0 + alpha / A,
        a1=-2.0 * cos_w0,
        a2=1.0 - alpha / A,
        b0=1.0 + alpha * A,
        b1=-2.0 * cos_w0,
        b2=1.0 - alpha * A,
    )


def derive_coefficients(
    frequency: float,
    q: float,
    gain_db: float,
    is_shelf: bool,
    sample_rate: int = 44100,
) -> BiquadCoefficients:
    band = Shelf(frequency, q) if is_shelf else Peaking(frequency, q)
    return design(band, gain_db, sample_rate)


@dataclass
class FilterState:
    """Direct-form-I history: last two inputs and last two outputs."""

    x1: float = 0.0
    x2: float = 0.0
    y1: float = 0.0
    y2: float = 0.0


class Biquad:
    """Second-order section that keeps its DF-I history between blocks."""

    def __init__(self, coefficients: BiquadCoefficients, state: FilterState | None = None):
        self.coefficients = coefficients
        self.b, self.a = coefficients.normalized()
        self.state = state or FilterState()

    def reset(self) -> None:
        self.state = FilterState()

    def process(self, block: np.ndarray) -> np.ndarray:
        """Run ``y[n] = b0x[n]+b1x[n-1]+b2x[n-2]-a1y[n-1]-a2y[n-2]`` over ``block``."""
        x = np.asarray(block, dtype=np.float64)
        if x.size == 0:
            return x.copy()
        st = self.state
        zi = signal.lfiltic(self.b, self.a, y=[st.y1, st.y2], x=[st.x1, st.x2])
        y, _ = signal.lfilter(self.b, self.a, x, zi=zi)

        if x.size >= 2:
            self.state = FilterState(x1=float(x[-1]), x2=float(x[-2]), y1=float(y[-1]), y2=float(y[-2]))
        else:
            self.state = FilterState(x1=float(x[0]), x2=st.x1, y1=float(y[0]), y2=st.y1)
        return y

    def response_db(self, freqs_hz: np.ndarray, sample_rate: int = 44100) -> np.ndarray:
        """Magnitude response in dB at ``freqs_hz``."""
        freqs = np.atleast_1d(np.asarray(freqs_hz, dtype=np.float64))
        _, h = signal.freqz(self.b, self.a, worN=freqs, fs=sample_rate)
        return 20.0 * np.log10(np.maximum(np.abs(h), 1e-12))
