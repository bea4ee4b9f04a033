import numpy as np
import pytest
from spectral.filters import WINDOW_FLOOR, compensate_window, enhance_phase_contrast, smooth_phase
from spectral.fft_engine import hann_window

def test_enhance_phase_contrast_range():
    phase = np.random.rand(32, 40)
    out = enhance_phase_contrast(phase)
    assert out.shape == phase.shape
    assert out.dtype == np.float64
    assert out.min() >= 0.0 and out.max() <= 1.0

def test_enhance_phase_contrast_validation():
    with pytest.raises(ValueError):
        enhance_phase_contrast(np.zeros((8, 8, 3)))
    with pytest.raises(ValueError):
        enhance_phase_contrast(np.zeros((8, 8)), clip_limit=0)
    tiny = np.array([[0.25, 0.75]])
    assert np.array_equal(enhance_phase_contrast(tiny), tiny)

def test_smooth_phase_constant_unchanged():
    plane = np.full((16, 16), 0.3)
    assert np.allclose(smooth_phase(plane), plane)
    with pytest.raises(ValueError):
        smooth_phase(plane, ksize=4)

def test_smooth_phase_reduces_variation():
    plane = np.random.rand(32, 32)
    out = smooth_phase(plane)
    assert out.std() < plane.std()
    assert out.min() >= 0.0 and out.max() <= 1.0

def test_compensate_window():
    x = np.random.rand(16, 16) + 0.5
    w = hann_window((16, 16))
    out = compensate_window(x * w, w)
    above = w > WINDOW_FLOOR
    assert np.allclose(out[above], x[above])
    assert np.array_equal(out[~above], (x * w)[~above])
    with pytest.raises(ValueError):
        compensate_window(x, w[:8])
