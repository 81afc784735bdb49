from __future__ import annotations

import numpy as np


def rms(x: np.ndarray, eps: float = 1e-12) -> float:
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x) + eps))


def peak(x: np.ndarray) -> float:
    if x.size == 0:
        return 0.0
    return float(np.max(np.abs(x)))


def peak_dbfs(x: np.ndarray, eps: float = 1e-12) -> float:
    return float(20.0 * np.log10(peak(x) + eps))


def normalize_peak(samples: np.ndarray, ceiling: float = 0.99) -> float:
    """Scale ``samples`` in place so the loudest one sits at ``ceiling``.

    Only applied when the peak exceeds the ceiling; quieter buffers (and
    silence) are left untouched. Returns the linear scale that was applied.
    """
    loudest = peak(samples)
    if loudest <= ceiling:
        return 1.0
    scale = ceiling / loudest
    samples *= scale
    # rounding in the multiply can land one ulp above the ceiling
    np.clip(samples, -ceiling, ceiling, out=samples)
    return scale
