from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import numpy as np

from .bands import GainRequest
from .cascade import CascadeFilter
from .dsp_utils import normalize_peak, peak_dbfs
from .errors import EncodeError, EngineError, MissingInputError
from .output_manager import IdGenerator, OutputManager
from .pcm_codec import PcmFormat, encode, probe_mismatch, read_file
from .system_utils import stage

LOG = logging.getLogger(__name__)


@dataclass
class EqualizerConfig:
    sample_rate: int = 44100
    channels: int = 2
    bits_per_sample: int = 16
    header_size: int = 44

    min_gain_db: float = -18.0
    max_gain_db: float = 18.0
    clip_ceiling: float = 0.99

    output_dir: str = "temp/eq"
    retention_hours: float = 24.0
    sweep_after_apply: bool = False

    # Interleaved samples are filtered as one stream unless this is set.
    split_channels: bool = False
    fallback_to_input: bool = False

    @property
    def fmt(self) -> PcmFormat:
        return PcmFormat(
            sample_rate=int(self.sample_rate),
            channels=int(self.channels),
            bits_per_sample=int(self.bits_per_sample),
            header_size=int(self.header_size),
        )


@dataclass
class EqResult:
    output_path: Path
    applied: bool
    bands: list[str] = field(default_factory=list)
    error: EngineError | None = None


class EqualizerEngine:
    """Five-band parametric EQ over fixed-format 16-bit PCM containers."""

    def __init__(
        self,
        config: EqualizerConfig | None = None,
        id_generator: IdGenerator | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or EqualizerConfig()
        self.fmt = self.config.fmt
        self.cascade = CascadeFilter(
            sample_rate=self.fmt.sample_rate,
            channels=self.fmt.channels,
            split_channels=self.config.split_channels,
        )
        self.outputs = OutputManager(self.config.output_dir, id_generator=id_generator, clock=clock)

    def process(self, samples: np.ndarray, request: GainRequest) -> list[str]:
        """Filter and clip-guard ``samples`` in place. ``request`` must be validated."""
        with stage("filter"):
            applied = self.cascade.apply(samples, request)
        with stage("normalize"):
            scale = normalize_peak(samples, self.config.clip_ceiling)
        if scale != 1.0:
            LOG.info("Normalized output by %.4f to stay under %.2f", scale, self.config.clip_ceiling)
        LOG.debug("Output peak %.2f dBFS", peak_dbfs(samples))
        return applied

    def apply_eq(
        self,
        input_path: str | Path,
        gains: GainRequest | Mapping[str, Any],
        fallback: bool | None = None,
    ) -> EqResult:
        """Write an EQ'd copy of ``input_path`` and return where it went.

        Missing input and invalid gains raise before anything touches the disk.
        Later failures remove the partial output and raise, unless ``fallback``
        (default from config) asks for the input path back with ``applied=False``.
        """
        if fallback is None:
            fallback = self.config.fallback_to_input
        request = gains if isinstance(gains, GainRequest) else GainRequest.from_settings(gains)

        input_path = Path(input_path)
        if not input_path.is_file():
            raise MissingInputError(input_path)
        request.validate(self.config.min_gain_db, self.config.max_gain_db)

        output_path = self.outputs.output_path_for(input_path)
        LOG.info("Starting audio processing | input=%s output=%s gains=%s", input_path, output_path, request.gains)

        mismatch = probe_mismatch(input_path, self.fmt)
        if mismatch:
            LOG.warning("Input %s does not match the engine format: %s", input_path, "; ".join(mismatch))

        try:
            with stage("decode"):
                samples = read_file(input_path, self.fmt)
            bands = self.process(samples, request)
            with stage("encode"):
                data = encode(samples, self.fmt)
            with stage("write"):
                size = self.outputs.write(output_path, data)
        except Exception as exc:
            self.outputs.discard(output_path)
            LOG.error("Audio processing failed | input=%s gains=%s error=%s", input_path, request.gains, exc)
            if isinstance(exc, EngineError):
                if not fallback:
                    raise
                error = exc
            else:
                error = EncodeError(f"EQ processing failed: {exc}")
                if not fallback:
                    raise error from exc
                error.__cause__ = exc
            LOG.warning("Falling back to unprocessed input %s", input_path)
            return EqResult(output_path=input_path, applied=False, error=error)

        LOG.info("Audio processing completed | output=%s bands=%s size=%d", output_path, bands, size)
        if self.config.sweep_after_apply:
            self.cleanup_temp_files()
        return EqResult(output_path=output_path, applied=True, bands=bands)

    def cleanup_temp_files(self, hours_old: float | None = None) -> int:
        if hours_old is None:
            hours_old = self.config.retention_hours
        return self.outputs.cleanup(hours_old)

    def processing_stats(self) -> dict:
        return self.outputs.stats()
