from __future__ import annotations

import logging

import numpy as np

from .bands import GainRequest
from .biquad import Biquad, design
from .errors import DecodeError

LOG = logging.getLogger(__name__)


class CascadeFilter:
    """Applies one biquad per requested band, in series, over a whole buffer.

    By default the interleaved buffer is filtered as one flat stream, so each
    section's history mixes neighbouring channels. ``split_channels`` runs an
    independent section per channel instead.
    """

    def __init__(self, sample_rate: int = 44100, channels: int = 2, split_channels: bool = False):
        self.sample_rate = sample_rate
        self.channels = channels
        self.split_channels = split_channels

    def apply(self, samples: np.ndarray, request: GainRequest) -> list[str]:
        """Filter ``samples`` in place. Returns the bands that were applied."""
        if self.split_channels and samples.size % self.channels:
            raise DecodeError(
                f"{samples.size} samples do not divide into {self.channels}-channel frames"
            )

        applied = []
        for name, band, gain in request.active_bands():
            coefficients = design(band, gain, self.sample_rate)
            LOG.debug(
                "Band %s: %+.2f dB @ %.0f Hz, Q %.2f (%s)",
                name,
                gain,
                band.center_frequency_hz,
                band.q_factor,
                "shelf" if band.is_shelf else "peaking",
            )
            if self.split_channels:
                for ch in range(self.channels):
                    samples[ch::self.channels] = Biquad(coefficients).process(samples[ch::self.channels])
            else:
                samples[:] = Biquad(coefficients).process(samples)
            applied.append(name)
        return applied
