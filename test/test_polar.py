import numpy as np
import pytest
from spectral.polar import (
    FAST_TRIG_TOLERANCE, available_polar_strategies, fast_sin_cos, get_polar_strategy, wrap_phase,
)

def test_registry():
    assert available_polar_strategies() == ("exact", "fast")
    assert get_polar_strategy("FAST").name == "fast"
    with pytest.raises(ValueError):
        get_polar_strategy("cordic")

def test_wrap_phase_range():
    p = np.linspace(-40.0, 40.0, 2001)
    w = wrap_phase(p)
    assert np.all(w >= -np.pi) and np.all(w < np.pi)
    assert np.allclose(np.exp(1j * w), np.exp(1j * p))

def test_fast_trig_within_tolerance():
    p = np.linspace(-50.0, 50.0, 20001)
    s, c = fast_sin_cos(p)
    assert np.max(np.abs(s - np.sin(p))) < FAST_TRIG_TOLERANCE
    assert np.max(np.abs(c - np.cos(p))) < FAST_TRIG_TOLERANCE

def test_exact_and_fast_to_rectangular():
    rng = np.random.default_rng(3)
    mag = rng.random((16, 16)) * 100.0
    phase = rng.uniform(-np.pi, np.pi, (16, 16))
    expected = mag * np.exp(1j * phase)
    exact = get_polar_strategy("exact").to_rectangular(mag, phase)
    fast = get_polar_strategy("fast").to_rectangular(mag, phase)
    assert np.allclose(exact, expected)
    assert np.max(np.abs(fast - expected)) < 100.0 * FAST_TRIG_TOLERANCE * 2

def test_to_rectangular_shape_mismatch():
    with pytest.raises(ValueError):
        get_polar_strategy("exact").to_rectangular(np.ones((4, 4)), np.ones((4, 5)))
