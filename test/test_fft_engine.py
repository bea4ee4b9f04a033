import numpy as np
import pytest
from spectral.fft_engine import (
    optimal_dft_size, optimal_padded_shape, pad_to_shape, crop_to_shape, hann_window,
    compute_fft, compute_ifft, swap_quadrants, to_polar, magnitude_spectrum, restore_real_bins,
    fill_conjugate_bins,
)

def test_optimal_dft_size():
    assert optimal_dft_size(1) == 1
    assert optimal_dft_size(7) == 8
    assert optimal_dft_size(11) == 12
    assert optimal_dft_size(13) == 15
    assert optimal_dft_size(64) == 64
    assert optimal_padded_shape((7, 9)) == (8, 9)
    with pytest.raises(ValueError):
        optimal_dft_size(0)

def test_pad_and_crop():
    plane = np.arange(12, dtype=float).reshape(3, 4)
    padded = pad_to_shape(plane, (5, 6))
    assert padded.shape == (5, 6)
    assert np.array_equal(padded[:3, :4], plane)
    assert np.all(padded[3:, :] == 0) and np.all(padded[:, 4:] == 0)
    assert np.array_equal(crop_to_shape(padded, (3, 4)), plane)
    with pytest.raises(ValueError):
        pad_to_shape(plane, (2, 4))
    with pytest.raises(ValueError):
        crop_to_shape(plane, (4, 4))

def test_fft_input_validation():
    arr = np.zeros((16, 16, 3))
    with pytest.raises(ValueError):
        compute_fft(arr)

def test_fft_ifft_roundtrip():
    img = np.random.rand(64, 64)
    F = compute_fft(img)
    back = compute_ifft(F)
    assert back.shape == img.shape
    assert np.allclose(img, back, atol=1e-8)

def test_ifft_warns_for_non_hermitian_spectrum():
    F = np.zeros((8, 8), dtype=complex)
    F[1, 2] = 10.0
    with pytest.warns(RuntimeWarning):
        compute_ifft(F, suppress_warning=False)

def test_swap_quadrants_even_is_involution():
    x = np.random.rand(8, 6)
    s = swap_quadrants(x, (8, 6))
    assert np.array_equal(s, np.fft.fftshift(x))
    assert np.array_equal(swap_quadrants(s, (8, 6)), x)
    assert np.array_equal(swap_quadrants(s, (8, 6), inverse=True), x)

def test_swap_quadrants_odd_roundtrip():
    x = np.random.rand(7, 9)
    s = swap_quadrants(x, (7, 9))
    assert np.array_equal(s, np.roll(x, (-3, -4), axis=(0, 1)))
    assert np.array_equal(swap_quadrants(s, (7, 9), inverse=True), x)

def test_swap_quadrants_shape_mismatch():
    with pytest.raises(ValueError):
        swap_quadrants(np.zeros((7, 9)), (8, 9))

def test_polar_and_magnitude_spectrum():
    img = np.random.rand(32, 32)
    F = compute_fft(img)
    mag, phase = to_polar(F)
    assert np.all(mag >= 0)
    assert np.all(phase <= np.pi) and np.all(phase >= -np.pi)
    assert np.allclose(mag * np.exp(1j * phase), F)
    spec = magnitude_spectrum(F, log=True)
    assert spec.shape == img.shape
    assert np.all(spec >= 0)

def test_restore_real_bins():
    F = np.full((4, 6), 1.0 + 1.0j)
    F[0, 0] = 2.0 * np.exp(1j * 0.2)
    F[2, 3] = 3.0 * np.exp(1j * 3.0)
    out = restore_real_bins(F)
    assert out[0, 0] == pytest.approx(2.0)
    assert out[2, 3] == pytest.approx(-3.0)
    assert out[0, 3].imag == 0 and out[2, 0].imag == 0
    assert out[1, 1] == F[1, 1]
    # odd axes have no Nyquist bin
    G = np.full((5, 5), 1.0 + 1.0j)
    assert restore_real_bins(G)[2, 2] == G[2, 2]

def test_hann_window():
    w = hann_window((9, 16))
    assert w.shape == (9, 16)
    assert np.all(w[0, :] == 0) and np.all(w[:, 0] == 0)
    assert w.max() <= 1.0
    assert np.allclose(hann_window((1, 1)), 1.0)

def test_hann_window_short_axis_is_flat():
    w = hann_window((2, 5))
    assert np.all(w[:, 2] == 1.0)
    assert np.all(w[:, 0] == 0)
    assert np.all(hann_window((2, 2)) == 1.0)

def _cropped_and_known(plane, padded):
    F = compute_fft(pad_to_shape(plane, padded))
    cropped = crop_to_shape(swap_quadrants(F, padded), plane.shape)
    G = swap_quadrants(pad_to_shape(cropped, padded), padded, inverse=True)
    known = swap_quadrants(pad_to_shape(np.ones(plane.shape), padded) > 0, padded, inverse=True)
    return F, G, known

def test_fill_conjugate_bins_recovers_cropped_rows():
    plane = np.random.rand(7, 9)
    F, G, known = _cropped_and_known(plane, (8, 9))
    assert not np.allclose(G, F)
    filled, lost = fill_conjugate_bins(G, known)
    assert lost == 0
    assert np.allclose(filled, F)

def test_fill_conjugate_bins_reports_unrecoverable():
    plane = np.random.rand(7, 11)
    F, G, known = _cropped_and_known(plane, (8, 12))
    filled, lost = fill_conjugate_bins(G, known)
    # one conjugate pair lies entirely in the cropped row and column
    assert lost == 2
    assert np.allclose(filled[known], F[known])
    assert np.count_nonzero(~np.isclose(filled, F)) <= lost
    with pytest.raises(ValueError):
        fill_conjugate_bins(G, known[:4])
