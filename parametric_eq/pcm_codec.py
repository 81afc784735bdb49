from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import soundfile as sf

from .errors import DecodeError, EncodeError

LOG = logging.getLogger(__name__)

# RIFF/WAVE with a 16-byte PCM fmt chunk followed directly by the data chunk.
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_PCM_FORMAT_TAG = 1
_DECODE_SCALE = 32768.0
_ENCODE_SCALE = 32767.0


@dataclass(frozen=True)
class PcmFormat:
    """Fixed engine-wide container layout. Never derived from the input header."""

    sample_rate: int = 44100
    channels: int = 2
    bits_per_sample: int = 16
    header_size: int = 44

    def __post_init__(self):
        if self.bits_per_sample != 16:
            raise ValueError(f"Only 16-bit PCM is supported, got {self.bits_per_sample}")
        if self.sample_rate <= 0 or self.channels <= 0:
            raise ValueError("sample_rate and channels must be positive")

    @property
    def bytes_per_sample(self) -> int:
        return self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.channels * self.bytes_per_sample

    @property
    def block_align(self) -> int:
        return self.channels * self.bytes_per_sample


DEFAULT_FORMAT = PcmFormat()


@dataclass
class PcmContainer:
    """Header fields plus raw little-endian payload."""

    fmt: PcmFormat
    payload: bytes

    @property
    def frame_count(self) -> int:
        # Written as the raw sample count, not divided by the channel count.
        return len(self.payload) // self.fmt.bytes_per_sample

    def header(self) -> bytes:
        data_bytes = self.frame_count * self.fmt.bytes_per_sample
        return _HEADER.pack(
            b"RIFF",
            36 + data_bytes,
            b"WAVE",
            b"fmt ",
            16,
            _PCM_FORMAT_TAG,
            self.fmt.channels,
            self.fmt.sample_rate,
            self.fmt.byte_rate,
            self.fmt.block_align,
            self.fmt.bits_per_sample,
            b"data",
            data_bytes,
        )

    def to_bytes(self) -> bytes:
        return self.header() + self.payload

    @classmethod
    def from_bytes(cls, data: bytes, fmt: PcmFormat = DEFAULT_FORMAT) -> "PcmContainer":
        if not data:
            raise DecodeError("Container is empty")
        if len(data) < fmt.header_size:
            raise DecodeError(
                f"Container is {len(data)} bytes, shorter than the {fmt.header_size}-byte header"
            )
        payload = bytes(data[fmt.header_size:])
        usable = len(payload) - len(payload) % fmt.bytes_per_sample
        return cls(fmt=fmt, payload=payload[:usable])


def decode(data: bytes, fmt: PcmFormat = DEFAULT_FORMAT) -> np.ndarray:
    """Skip the fixed header and return the payload as floats in [-1, 1].

    No resampling, remixing or bit-depth conversion happens here; the payload is
    read as interleaved 16-bit little-endian integers whatever the header says.
    """
    container = PcmContainer.from_bytes(data, fmt)
    ints = np.frombuffer(container.payload, dtype="<i2")
    return ints.astype(np.float64) / _DECODE_SCALE


def encode(samples: np.ndarray, fmt: PcmFormat = DEFAULT_FORMAT) -> bytes:
    """Clamp, scale by 32767 and truncate to int16 behind a fixed-format header."""
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim != 1:
        x = x.reshape(-1)
    if not np.isfinite(x).all():
        raise EncodeError("Sample buffer contains non-finite values")
    ints = (np.clip(x, -1.0, 1.0) * _ENCODE_SCALE).astype("<i2")
    return PcmContainer(fmt=fmt, payload=ints.tobytes()).to_bytes()


def read_file(path: str | Path, fmt: PcmFormat = DEFAULT_FORMAT) -> np.ndarray:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DecodeError(f"Failed to read input file {path}: {exc}") from exc
    return decode(data, fmt)


def probe_mismatch(path: str | Path, fmt: PcmFormat = DEFAULT_FORMAT) -> list[str]:
    """List header fields that disagree with ``fmt``.

    Informational only: the engine keeps its fixed format either way, so a
    mismatch means the payload will be misinterpreted.
    """
    try:
        info = sf.info(str(path))
    except Exception as exc:
        LOG.debug("Header probe failed for %s: %s", path, exc)
        return ["unreadable header"]

    problems = []
    if info.samplerate != fmt.sample_rate:
        problems.append(f"sample rate {info.samplerate} != {fmt.sample_rate}")
    if info.channels != fmt.channels:
        problems.append(f"channels {info.channels} != {fmt.channels}")
    if info.subtype != "PCM_16":
        problems.append(f"subtype {info.subtype} != PCM_16")
    return problems
