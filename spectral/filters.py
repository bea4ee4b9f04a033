import numpy as np
import cv2

# Below this weight a windowed sample is treated as unrecoverable
WINDOW_FLOOR = 1e-3


def _quantize_unit(plane: np.ndarray) -> np.ndarray:
    """Map a [0,1] float plane to uint8 (values outside are clipped)."""
    return np.clip(np.rint(np.asarray(plane, dtype=np.float64) * 255.0), 0, 255).astype(np.uint8)


# --- Phase contrast (lossy) ---
def enhance_phase_contrast(
        phase01: np.ndarray,
        clip_limit: float = 2.0,
        tile_grid: int = 8
    ) -> np.ndarray:
    """
    Contrast-limited adaptive histogram equalisation of a normalized phase plane.
    The plane is quantised to 8 bits before equalisation, so the step is
    lossy and cannot be undone exactly. Returns float64 in [0,1].
    Planes smaller than 2x2 are returned unchanged.
    """
    if phase01.ndim != 2:
        raise ValueError("enhance_phase_contrast expects a 2D array.")
    if clip_limit <= 0:
        raise ValueError("clip_limit must be positive.")
    if int(tile_grid) < 1:
        raise ValueError("tile_grid must be >= 1.")
    if min(phase01.shape) < 2:
        return np.clip(np.asarray(phase01, dtype=np.float64), 0.0, 1.0)
    clahe = cv2.createCLAHE(clipLimit=float(clip_limit), tileGridSize=(int(tile_grid), int(tile_grid)))
    enhanced = clahe.apply(_quantize_unit(phase01))
    return enhanced.astype(np.float64) / 255.0


def smooth_phase(phase01: np.ndarray, ksize: int = 3, sigma: float = 0.5) -> np.ndarray:
    """
    Gaussian smoothing of a normalized phase plane.

    Approximate inverse of enhance_phase_contrast: it softens the
    equalisation steps but cannot restore the original histogram. Expect
    residual phase error of a few percent of the [0,1] range, and larger
    error where the phase wraps (the blur does not treat 0 and 1 as
    neighbours). Planes smaller than 2x2 are returned unchanged.
    """
    if phase01.ndim != 2:
        raise ValueError("smooth_phase expects a 2D array.")
    if ksize < 1 or ksize % 2 == 0:
        raise ValueError("ksize must be a positive odd integer.")
    plane = np.asarray(phase01, dtype=np.float64)
    if min(plane.shape) < 2:
        return plane.copy()
    blurred = cv2.GaussianBlur(plane, (int(ksize), int(ksize)), float(sigma))
    return np.clip(blurred, 0.0, 1.0)


# --- Window compensation ---
def compensate_window(plane: np.ndarray, window: np.ndarray, floor: float = WINDOW_FLOOR) -> np.ndarray:
    """
    Divide out a spatial window where its weight is above `floor`.
    Samples below the floor keep their windowed value.
    """
    if plane.shape != window.shape:
        raise ValueError("Plane and window must have the same shape.")
    w = np.asarray(window, dtype=np.float64)
    safe = np.where(w > floor, w, 1.0)
    return np.where(w > floor, plane / safe, plane)
