from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

import numpy as np

from .dsp_utils import peak, rms

LOG = logging.getLogger(__name__)


DEFAULT_SETTINGS: dict[str, Any] = {
    "sample_rate": 44100,
    "channels": 2,
    "bits_per_sample": 16,
    "header_size": 44,
    "min_gain_db": -18.0,
    "max_gain_db": 18.0,
    "clip_ceiling": 0.99,
    "output_dir": "temp/eq",
    "retention_hours": 24.0,
    "split_channels": False,
    "fallback_to_input": False,
    "sweep_after_apply": False,
}


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure console + optional file logging (batch-friendly)."""
    lvl = getattr(logging, str(level).upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s | %(levelname)s | %(message)s",
        handlers=handlers,
        force=True,
    )


@contextmanager
def stage(name: str):
    """Log the start and duration of a processing stage."""
    t0 = time.perf_counter()
    LOG.debug("> %s", name)
    try:
        yield
    finally:
        LOG.debug("< %s (%.3fs)", name, time.perf_counter() - t0)


class ConfigManager:
    """Load/save equalizer settings as JSON."""

    def __init__(self, config_path: str | Path | None = None):
        root = Path(__file__).resolve().parent
        self.config_path = Path(config_path) if config_path else root / "eq_config.json"

    def load_settings(self) -> dict[str, Any]:
        if self.config_path.exists():
            stored = json.loads(self.config_path.read_text(encoding="utf-8"))
            merged = dict(DEFAULT_SETTINGS)
            merged.update({k: v for k, v in stored.items() if k in DEFAULT_SETTINGS})
            return merged
        self.save_settings(DEFAULT_SETTINGS)
        return dict(DEFAULT_SETTINGS)

    def save_settings(self, settings: dict[str, Any]) -> None:
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(json.dumps(settings, indent=2), encoding="utf-8")

    def apply_to(self, config) -> None:
        for key, value in self.load_settings().items():
            if hasattr(config, key):
                setattr(config, key, value)


@dataclass
class TestResult:
    __test__ = False

    ok: bool
    message: str


class TestSuite:
    """Synthetic signals and sanity checks for the EQ pipeline."""

    __test__ = False

    @staticmethod
    def generate_example(
        sr: int = 44100,
        seconds: float = 1.0,
        freq: float = 100.0,
        amplitude: float = 0.5,
        channels: int = 2,
    ) -> np.ndarray:
        """Interleaved sine, identical on every channel."""
        t = np.arange(int(sr * seconds)) / sr
        mono = amplitude * np.sin(2.0 * np.pi * freq * t)
        return np.repeat(mono, channels).astype(np.float64)

    @staticmethod
    def assert_clip_safe(samples: np.ndarray, ceiling: float = 0.99) -> TestResult:
        if not np.isfinite(samples).all():
            return TestResult(False, "Non-finite samples detected.")
        loudest = peak(samples)
        if loudest > ceiling:
            return TestResult(False, f"Peak {loudest:.5f} exceeds ceiling {ceiling:.2f}.")
        return TestResult(True, f"Peak {loudest:.5f}, RMS {rms(samples):.5f}.")
