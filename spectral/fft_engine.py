'''
FFT engine helpers shared by the forward and inverse spectral transforms.

Functions:
- optimal_dft_size / optimal_padded_shape: FFT-efficient sizes (OpenCV rule, 2^a * 3^b * 5^c)
- pad_to_shape / crop_to_shape: zero-pad at bottom/right, crop from top-left
- hann_window: separable 2D Hann window
- compute_fft: 2D FFT of a single-channel plane (returns complex array)
- compute_ifft: inverse FFT, returns real part
- swap_quadrants: zero-frequency centering by quadrant swap, odd-size aware
- to_polar: complex spectrum -> (magnitude, phase)
- restore_real_bins: snap DC / Nyquist bins back onto the real axis
- magnitude_spectrum: log-scaled magnitude for visualization
- fill_conjugate_bins: recover cropped bins from their Hermitian mirror
'''

import warnings
from typing import Tuple

import cv2
import numpy as np


def optimal_dft_size(n: int) -> int:
    """Smallest FFT-efficient size >= n."""
    if int(n) < 1:
        raise ValueError("DFT size must be >= 1.")
    return int(cv2.getOptimalDFTSize(int(n)))


def optimal_padded_shape(shape: Tuple[int, int]) -> Tuple[int, int]:
    rows, cols = shape
    return optimal_dft_size(rows), optimal_dft_size(cols)


def pad_to_shape(plane: np.ndarray, shape: Tuple[int, int], value: float = 0.0) -> np.ndarray:
    """
    Pad a 2D plane at the bottom and right edges up to `shape`.
    Raises ValueError if the plane is larger than `shape` on either axis.
    """
    if plane.ndim != 2:
        raise ValueError("pad_to_shape expects a 2D array.")
    rows, cols = plane.shape
    target_rows, target_cols = int(shape[0]), int(shape[1])
    if target_rows < rows or target_cols < cols:
        raise ValueError(f"Cannot pad a {rows}x{cols} plane down to {target_rows}x{target_cols}.")
    if (rows, cols) == (target_rows, target_cols):
        return plane.copy()
    return np.pad(
        plane,
        ((0, target_rows - rows), (0, target_cols - cols)),
        mode="constant",
        constant_values=value,
    )


def crop_to_shape(plane: np.ndarray, shape: Tuple[int, int]) -> np.ndarray:
    """Crop the top-left `shape` region of a 2D plane (copy)."""
    rows, cols = int(shape[0]), int(shape[1])
    if plane.shape[0] < rows or plane.shape[1] < cols:
        raise ValueError(f"Cannot crop a {plane.shape[0]}x{plane.shape[1]} plane to {rows}x{cols}.")
    return plane[:rows, :cols].copy()


def _hann_1d(n: int) -> np.ndarray:
    # np.hanning(2) is [0, 0]; axes this short are left untapered
    if n <= 2:
        return np.ones(n)
    return np.hanning(n)


def hann_window(shape: Tuple[int, int]) -> np.ndarray:
    """
    Separable 2D Hann window (outer product of two 1D windows).
    Border rows and columns are zero. Axes of length 1 or 2 get weight 1
    everywhere, otherwise the whole plane would be zeroed.
    """
    rows, cols = shape
    return np.outer(_hann_1d(int(rows)), _hann_1d(int(cols)))


def compute_fft(plane: np.ndarray) -> np.ndarray:
    """
    Compute 2D FFT of a single-channel plane.
    Raises ValueError for non-2D inputs.
    """
    if plane.ndim != 2:
        raise ValueError("compute_fft expects a 2D single-channel array.")
    return np.fft.fft2(plane.astype(np.float64))


def compute_ifft(F: np.ndarray, imag_tol: float = 1e-9, suppress_warning: bool = True) -> np.ndarray:
    """
    Compute inverse 2D FFT (1/MN scaled) and return real part.
    Warns if imaginary part is larger than imag_tol.
    """
    if F.ndim != 2:
        raise ValueError("compute_ifft expects a 2D frequency-domain array.")
    img_back = np.fft.ifft2(F)
    imag_max = float(np.max(np.abs(np.imag(img_back)))) if img_back.size else 0.0
    if not suppress_warning and imag_max > imag_tol:
        warnings.warn(
            f"Inverse FFT has non-negligible imaginary component (max abs = {imag_max}). "
            "Returning real part; the spectrum is probably not Hermitian-symmetric.",
            RuntimeWarning
        )
    return np.real(img_back)


def swap_quadrants(spectrum: np.ndarray, padded_shape: Tuple[int, int], inverse: bool = False) -> np.ndarray:
    """
    Move the zero-frequency term to the centre by swapping quadrants.

    The split point is (cy, cx) = (rows // 2, cols // 2) of `padded_shape`.
    For odd sizes the bottom/right quadrants are one sample larger
    (rows - cy, cols - cx). Quadrant (0,0) is exchanged with (1,1) and
    (0,1) with (1,0); the inverse direction splits at (rows - cy, cols - cx)
    so that swap_quadrants(swap_quadrants(x, s), s, inverse=True) == x for
    any size. For even sizes both directions are the same involution.

    `padded_shape` must be the FFT shape used by the forward pass, never
    the shape of a cropped image.
    """
    if spectrum.ndim != 2:
        raise ValueError("swap_quadrants expects a 2D array.")
    rows, cols = int(padded_shape[0]), int(padded_shape[1])
    if spectrum.shape != (rows, cols):
        raise ValueError(
            f"Spectrum shape {spectrum.shape} does not match padded shape {(rows, cols)}."
        )
    cy, cx = rows // 2, cols // 2
    if inverse:
        cy, cx = rows - cy, cols - cx

    q0 = spectrum[:cy, :cx]   # top-left
    q1 = spectrum[:cy, cx:]   # top-right
    q2 = spectrum[cy:, :cx]   # bottom-left
    q3 = spectrum[cy:, cx:]   # bottom-right

    top = np.concatenate([q3, q2], axis=1)
    bottom = np.concatenate([q1, q0], axis=1)
    return np.concatenate([top, bottom], axis=0)


def to_polar(F: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Return (magnitude, phase) with phase in (-pi, pi]."""
    return np.abs(F), np.angle(F)


def magnitude_spectrum(F: np.ndarray, log: bool = True) -> np.ndarray:
    """Modulus of a complex (or real) plane, ln(1 + |F|) when `log` is set. Used for previews."""
    mag = np.abs(np.nan_to_num(F))
    return np.log1p(mag) if log else mag


def restore_real_bins(F: np.ndarray) -> np.ndarray:
    """
    Project the self-conjugate bins of an uncentred spectrum onto the real axis.

    For a real-valued plane the DC term (and, on even axes, the Nyquist
    terms) are real. Their magnitude is kept and their phase snapped to 0 or
    pi, whichever is closer. Returns a new array.
    """
    if F.ndim != 2:
        raise ValueError("restore_real_bins expects a 2D array.")
    out = np.array(F, dtype=np.complex128, copy=True)
    rows, cols = out.shape
    row_idx = [0] + ([rows // 2] if rows % 2 == 0 and rows > 1 else [])
    col_idx = [0] + ([cols // 2] if cols % 2 == 0 and cols > 1 else [])
    for i in row_idx:
        for j in col_idx:
            value = out[i, j]
            sign = -1.0 if value.real < 0 else 1.0
            out[i, j] = sign * abs(value)
    return out


def conjugate_mirror(F: np.ndarray) -> np.ndarray:
    """M[u, v] = F[(-u) % rows, (-v) % cols] for an uncentred 2D spectrum."""
    return np.roll(np.flip(F, axis=(0, 1)), 1, axis=(0, 1))


def fill_conjugate_bins(F: np.ndarray, known: np.ndarray) -> Tuple[np.ndarray, int]:
    """
    Recover missing bins of an uncentred spectrum of a real-valued plane.

    A real plane has F[u, v] == conj(F[-u, -v]). Every bin where `known` is
    False but its mirror is known is set to the conjugate of the mirror.
    Bins whose mirror is missing too stay as they are (zero after padding).
    Returns (filled spectrum, number of bins left unrecovered).
    """
    if F.ndim != 2 or F.shape != known.shape:
        raise ValueError("fill_conjugate_bins expects a 2D spectrum and a mask of the same shape.")
    known = np.asarray(known, dtype=bool)
    mirror_known = conjugate_mirror(known)
    fill = ~known & mirror_known
    out = np.array(F, dtype=np.complex128, copy=True)
    out[fill] = np.conj(conjugate_mirror(out)[fill])
    return out, int(np.count_nonzero(~known & ~mirror_known))
