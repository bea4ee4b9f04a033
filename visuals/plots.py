"""
visuals/plots.py

Preview and comparison utilities for spectra and reconstructions.

APIs:
- spectrum_preview(plane, log=False) -> 2D/3D float array in [0,1]
- save_spectral_pair(pair, out_dir, base_name='spectrum') -> (magnitude_path, phase_path)
- compare_and_save(original, reconstructed, out_path=None, titles=None)

Notes:
- Spectrum previews are written as raw PNGs through Pillow (no Matplotlib).
- compare_and_save uses Matplotlib; if out_path is None the Figure is returned.
"""

from typing import Optional, Sequence, Tuple
import os
import numpy as np
import matplotlib.pyplot as plt
from PIL import Image

from spectral.fft_engine import magnitude_spectrum
from spectral.forward import SpectralPair


# Helper to ensure outdir exists
def _ensure_outdir(out_path: Optional[str]):
    if out_path is None:
        return None
    d = os.path.dirname(out_path)
    if d:
        os.makedirs(d, exist_ok=True)
    return out_path


def spectrum_preview(plane: np.ndarray, log: bool = False) -> np.ndarray:
    """
    Min/max-normalize a spectrum plane (HxW) or image (HxWxC) to [0,1] for display.
    Each channel is stretched independently; constant channels map to 0.
    """
    a = np.array(plane, dtype=np.float64, copy=True)
    a = np.nan_to_num(a, nan=0.0, posinf=0.0, neginf=0.0)
    if log:
        a = magnitude_spectrum(a, log=True)
    if a.ndim == 2:
        a = a[..., np.newaxis]
        squeeze = True
    else:
        squeeze = False
    out = np.zeros_like(a)
    for c in range(a.shape[2]):
        ch = a[..., c]
        amin, amax = float(ch.min()), float(ch.max())
        if amax > amin:
            out[..., c] = (ch - amin) / (amax - amin)
    return out[..., 0] if squeeze else out


def _save_raw_array_image(out_path: str, arr: np.ndarray, log_scale: bool = False) -> str:
    """
    Save a numeric array as a raw 8-bit PNG.
    2D arrays are written as grayscale, HxWx3+ arrays as RGB (first three channels).
    """
    _ensure_outdir(out_path)
    a = np.asarray(arr)
    if a.ndim == 3:
        a = a[..., :3]
    norm = spectrum_preview(a, log=log_scale)
    img_arr = np.clip(np.rint(norm * 255.0), 0, 255).astype(np.uint8)
    Image.fromarray(np.ascontiguousarray(img_arr)).save(out_path)
    return out_path


def save_spectral_pair(
    pair: SpectralPair,
    out_dir: str,
    base_name: str = "spectrum",
    log_magnitude: bool = False,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Write the magnitude and phase images of a SpectralPair as RGB PNG previews.
    Returns (magnitude_path, phase_path), or (None, None) for an empty pair.
    log_magnitude is useful for RAW-mode spectra that were not log-compressed.
    """
    if pair.is_empty:
        return None, None
    os.makedirs(out_dir, exist_ok=True)
    mag_path = os.path.join(out_dir, f"{base_name}_magnitude.png")
    phase_path = os.path.join(out_dir, f"{base_name}_phase.png")
    _save_raw_array_image(mag_path, pair.magnitude, log_scale=log_magnitude)
    # phase is already in [0,1]; write it without stretching
    phase_u8 = np.clip(np.rint(np.asarray(pair.phase)[..., :3] * 255.0), 0, 255).astype(np.uint8)
    Image.fromarray(np.ascontiguousarray(phase_u8)).save(phase_path)
    return mag_path, phase_path


def _display_rgb(image: np.ndarray) -> np.ndarray:
    a = np.asarray(image, dtype=np.float64)
    if a.ndim == 3 and a.shape[2] >= 3:
        a = a[..., :3]
    return np.clip(a, 0.0, 1.0)


def compare_and_save(
    original: np.ndarray,
    reconstructed: np.ndarray,
    out_path: Optional[str] = None,
    titles: Optional[Sequence[str]] = None,
):
    """
    Original (left) | Reconstructed (right), with the mean absolute error in the title.
    Both images are float RGBA/RGB in [0,1]; only RGB is shown.
    """
    titles = titles or ("Original", "Reconstructed")
    fig, axs = plt.subplots(1, 2, figsize=(12, 6))

    left = _display_rgb(original)
    right = _display_rgb(reconstructed)
    for ax, img, title in zip(axs, (left, right), titles):
        if img.ndim == 2:
            ax.imshow(img, cmap="gray", vmin=0.0, vmax=1.0, interpolation="nearest")
        else:
            ax.imshow(img, interpolation="nearest")
        ax.set_title(title)
        ax.axis("off")

    if left.shape == right.shape and left.size:
        mae = float(np.mean(np.abs(left - right)))
        fig.suptitle(f"MAE (RGB) = {mae:.5f}")

    if out_path:
        _ensure_outdir(out_path)
        fig.savefig(out_path, dpi=150, bbox_inches="tight", pad_inches=0.05)
        plt.close(fig)
        return out_path
    return fig
