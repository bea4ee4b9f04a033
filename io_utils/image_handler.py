# io_utils/image_handler.py
"""
Image read/write helpers using Pillow.

The spectral transforms work on HxWx4 float32 RGBA rasters in [0,1].
This module converts to and from that layout.

Functions:
- to_rgba_float(array) -> HxWx4 float32 (gray / gray+alpha / RGB / RGBA, integer or float input)
- from_rgba_float(image, dtype) -> HxWx4 integer array for saving
- read_image_rgba(path) -> (HxWx4 float32, meta)
- save_image_rgba(path, image) -> writes RGBA (or RGB when alpha is opaque)
- detect_has_alpha(array) -> bool
"""

from PIL import Image
import pillow_avif  # noqa: F401  (registers the AVIF plugin)
import numpy as np
from typing import Tuple


def _scale_to_unit(arr: np.ndarray) -> np.ndarray:
    """Integer dtypes are scaled by their max value; floats are kept as-is."""
    if np.issubdtype(arr.dtype, np.integer):
        info = np.iinfo(arr.dtype)
        return arr.astype(np.float32) / float(info.max)
    return arr.astype(np.float32)


def to_rgba_float(array: np.ndarray) -> np.ndarray:
    """
    Convert an image array to HxWx4 float32 RGBA.
    - HxW or HxWx1: gray replicated to RGB, alpha 1.0
    - HxWx2: gray + alpha
    - HxWx3: RGB, alpha 1.0
    - HxWx4: RGBA
    Float inputs are not clamped.
    """
    arr = np.asarray(array)
    if arr.ndim == 2:
        arr = arr[..., np.newaxis]
    if arr.ndim != 3 or arr.shape[2] not in (1, 2, 3, 4):
        raise ValueError(f"Unsupported image layout {arr.shape}.")
    unit = _scale_to_unit(arr)
    h, w, c = unit.shape
    out = np.ones((h, w, 4), dtype=np.float32)
    if c in (1, 2):
        out[..., :3] = unit[..., :1]
        if c == 2:
            out[..., 3] = unit[..., 1]
    else:
        out[..., :3] = unit[..., :3]
        if c == 4:
            out[..., 3] = unit[..., 3]
    return out


def from_rgba_float(image: np.ndarray, dtype=np.uint8) -> np.ndarray:
    """Clip an RGBA float image to [0,1] and scale to the full range of an integer dtype."""
    if image.ndim != 3 or image.shape[2] != 4:
        raise ValueError("from_rgba_float expects an HxWx4 array.")
    vmax = float(np.iinfo(dtype).max)
    return np.rint(np.clip(image, 0.0, 1.0) * vmax).astype(dtype)


def detect_has_alpha(array: np.ndarray) -> bool:
    return array.ndim == 3 and array.shape[2] in (2, 4)


def read_image_rgba(path: str) -> Tuple[np.ndarray, dict]:
    """
    Read an image from `path` and return (HxWx4 float32, meta).
    Meta contains the source mode, size and whether the file carried alpha.
    """
    img = Image.open(path)
    mode = img.mode
    has_alpha = mode in ("RGBA", "LA", "PA") or ("transparency" in img.info)
    if mode.startswith("I;16"):
        rgba = to_rgba_float(np.asarray(img, dtype=np.uint16))
    else:
        img = img.convert("RGBA" if has_alpha else "RGB")
        rgba = to_rgba_float(np.asarray(img))
    meta = {"mode": mode, "size": img.size, "has_alpha": bool(has_alpha)}
    return rgba, meta


def save_image_rgba(path: str, image: np.ndarray):
    """
    Save an HxWx4 float image to `path` as 8-bit.
    Fully opaque images are written as RGB so formats without alpha (JPEG) work.
    """
    arr = from_rgba_float(image, np.uint8)
    if np.all(arr[..., 3] == 255):
        Image.fromarray(np.ascontiguousarray(arr[..., :3])).save(path)
    else:
        Image.fromarray(arr).save(path)
