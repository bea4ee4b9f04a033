"""
spectral/polar.py

Polar -> rectangular conversion strategies for the inverse transform.

Two implementations share one interface (to_rectangular(magnitude, phase) -> complex):
  - ExactPolarToRectangular: numpy cos/sin, accurate to float64 rounding.
  - FastPolarToRectangular: truncated Taylor series after range reduction.
    The phase is wrapped to [-pi, pi) and folded into [-pi/2, pi/2] using
    sin(pi - x) = sin(x), cos(pi - x) = -cos(x). On that interval the
    series below (sin to x^9, cos to x^10) have a worst-case absolute error
    under 4e-6 for sin and 5e-7 for cos, so FAST_TRIG_TOLERANCE = 1e-4 is a
    safe documented bound for every finite phase. The reconstructed complex
    value is then off by at most magnitude * 1e-4 per component.

get_polar_strategy(name) returns a strategy from the registry ("exact", "fast").
"""

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

FAST_TRIG_TOLERANCE = 1e-4

# Taylor coefficients of sin (odd powers 1..9) and cos (even powers 0..10)
_SIN_COEFFS = (1.0, -1.0 / 6.0, 1.0 / 120.0, -1.0 / 5040.0, 1.0 / 362880.0)
_COS_COEFFS = (1.0, -0.5, 1.0 / 24.0, -1.0 / 720.0, 1.0 / 40320.0, -1.0 / 3628800.0)


def wrap_phase(phase: np.ndarray) -> np.ndarray:
    """Wrap angles into [-pi, pi)."""
    return np.mod(np.asarray(phase, dtype=np.float64) + np.pi, 2.0 * np.pi) - np.pi


def _horner(x2: np.ndarray, coeffs: Tuple[float, ...]) -> np.ndarray:
    acc = np.full_like(x2, coeffs[-1])
    for c in reversed(coeffs[:-1]):
        acc = acc * x2 + c
    return acc


def fast_sin_cos(phase: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Approximate (sin, cos) of `phase`; absolute error < FAST_TRIG_TOLERANCE."""
    x = wrap_phase(phase)
    half_pi = 0.5 * np.pi
    # fold into [-pi/2, pi/2]; the cosine changes sign for folded samples
    upper = x > half_pi
    lower = x < -half_pi
    folded = np.where(upper, np.pi - x, np.where(lower, -np.pi - x, x))
    sign = np.where(upper | lower, -1.0, 1.0)

    x2 = folded * folded
    sin_v = folded * _horner(x2, _SIN_COEFFS)
    cos_v = sign * _horner(x2, _COS_COEFFS)
    return sin_v, cos_v


@dataclass(frozen=True)
class PolarToRectangular:
    """Base strategy: combine magnitude and phase into a complex plane."""

    name: str = "base"
    max_abs_error: float = 0.0

    def sin_cos(self, phase: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    def to_rectangular(self, magnitude: np.ndarray, phase: np.ndarray) -> np.ndarray:
        if magnitude.shape != phase.shape:
            raise ValueError("Magnitude and phase planes must have the same shape.")
        sin_v, cos_v = self.sin_cos(phase)
        mag = np.asarray(magnitude, dtype=np.float64)
        return mag * cos_v + 1j * (mag * sin_v)


@dataclass(frozen=True)
class ExactPolarToRectangular(PolarToRectangular):
    name: str = "exact"
    max_abs_error: float = 0.0

    def sin_cos(self, phase: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        p = np.asarray(phase, dtype=np.float64)
        return np.sin(p), np.cos(p)


@dataclass(frozen=True)
class FastPolarToRectangular(PolarToRectangular):
    name: str = "fast"
    max_abs_error: float = FAST_TRIG_TOLERANCE

    def sin_cos(self, phase: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        return fast_sin_cos(phase)


_REGISTRY: Dict[str, PolarToRectangular] = {
    "exact": ExactPolarToRectangular(),
    "fast": FastPolarToRectangular(),
}


def available_polar_strategies() -> Tuple[str, ...]:
    return tuple(sorted(_REGISTRY))


def get_polar_strategy(name: str) -> PolarToRectangular:
    key = str(name).lower()
    if key not in _REGISTRY:
        raise ValueError(
            f"Unknown polar conversion '{name}'. Choose one of {', '.join(available_polar_strategies())}."
        )
    return _REGISTRY[key]
