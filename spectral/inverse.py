"""
spectral/inverse.py

Inverse spectral transform: (magnitude, phase) spectra [+ ReconstructionMetadata] -> RGBA image.

Parameters are resolved once per call (resolve_parameters):
  - auto_detect and metadata present: every flag, shape and magnitude
    maximum the metadata carries overrides the caller's assumptions;
  - otherwise the caller's assumed_* flags are used, shapes are inferred
    from the spectra (padded = optimal DFT size of the current shape) and
    missing magnitude maxima are estimated (see estimate_magnitude_max).

Per-channel pipeline (R, G, B, and A only when alpha was transformed):
  1) decide whether the magnitude is display-normalized (metadata, else range check)
  2) de-normalize with the stored (or estimated) max, undo preview gamma,
     undo log compression with expm1, apply magnitude_scale
  3) phase [0,1] -> (-pi, pi]
  4) phase-enhanced input (quality >= HIGH): Gaussian smoothing of the phase
     (approximate inverse of the CLAHE step)
  5) polar -> rectangular through the selected PolarToRectangular strategy
  6) zero-pad to the padded shape
  7) undo the quadrant swap using the padded shape; bins lost to cropping
     are refilled from their conjugate mirror where that mirror survived
  8) phase-enhanced input: snap DC / Nyquist bins back onto the real axis
  9) inverse 2D FFT, real part; crop to the original shape
  10) windowed input: divide out the Hann window above its floor
  11) clamp to [0,1]; when the magnitude scale had to be estimated and the
      result is abnormally dark (max < 0.3), apply a bounded brightness boost

Fidelity notes:
  - with complete metadata and no lossy forward options the round trip is
    limited only by float32 storage and FFT rounding (MAE well below 1e-3);
  - cropped spectra (the default for sizes the FFT has to pad) lose the
    bins whose mirror was cropped as well; every other missing bin is
    recovered, so sizes like 7x9 still round-trip exactly while sizes
    like 7x11 keep an error of a few percent;
  - without metadata the magnitude maximum is estimated from a mid-gray
    image of the same size, so each channel comes back scaled by roughly
    0.5 / true_mean (a source with mean 0.15 is brightened about 3.3x and
    clips); only a mid-gray source reconstructs at its true level;
  - phase smoothing does not recover the equalised phase; expect visible
    ringing and a mean absolute error of several percent for natural images.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

import numpy as np

from .fft_engine import (
    compute_ifft, crop_to_shape, fill_conjugate_bins, hann_window, optimal_padded_shape, pad_to_shape,
    restore_real_bins, swap_quadrants,
)
from .filters import compensate_window, smooth_phase
from .forward import CHANNEL_NAMES, EPS, SpectralPair
from .metadata import ReconstructionMetadata, extract_metadata
from .options import InverseOptions, ReconstructionQuality
from .polar import PolarToRectangular, get_polar_strategy

logger = logging.getLogger(__name__)

# Heuristic constants used when reconstruction metadata is missing
HEURISTIC_MEAN_INTENSITY = 0.5   # assumed mean pixel value of the source image
DARK_OUTPUT_THRESHOLD = 0.3      # plane max below this counts as abnormally dark
DARK_OUTPUT_TARGET = 0.8         # boosted plane max
MAX_BRIGHTNESS_BOOST = 10.0
NORMALIZED_TOLERANCE = 1e-6
LOG_DOMAIN_CEILING = 700.0       # expm1 overflows float64 just above 709


@dataclass(frozen=True)
class ResolvedParameters:
    """Working parameters for one inverse call, derived from metadata and/or options."""

    log_transform: bool
    centered: bool
    windowed: bool
    phase_enhanced: bool
    alpha_transformed: bool
    original_shape: Tuple[int, int]
    padded_shape: Tuple[int, int]
    magnitude_normalized: Optional[bool]
    preview_gamma: float
    channel_storage_max: Tuple[Optional[float], ...]
    from_metadata: bool

    def storage_max(self, channel: int) -> Optional[float]:
        if channel < len(self.channel_storage_max):
            return self.channel_storage_max[channel]
        return None


def estimate_magnitude_max(original_shape: Tuple[int, int], windowed: bool) -> float:
    """
    Estimate the pre-log magnitude maximum of an unknown source plane.

    For a non-negative plane the DC term is the largest magnitude and equals
    the (windowed) pixel sum, so a mid-gray plane of the same shape is used.
    """
    rows, cols = original_shape
    if windowed:
        weight = float(np.sum(hann_window((rows, cols))))
    else:
        weight = float(rows * cols)
    return max(HEURISTIC_MEAN_INTENSITY * weight, EPS)


def _storage_max(pre: Optional[float], post: Optional[float], log_transform: bool) -> Optional[float]:
    """Max of the stored (pre-normalization) magnitude values, from whichever value is known."""
    if post is not None:
        return post
    if pre is not None:
        return float(np.log1p(pre)) if log_transform else pre
    return None


def resolve_parameters(
    spectra_shape: Tuple[int, int],
    metadata: Optional[ReconstructionMetadata],
    options: InverseOptions,
) -> ResolvedParameters:
    """Resolve flags, shapes and magnitude maxima for one inverse call."""
    use_metadata = bool(options.auto_detect and metadata is not None)

    def flag(meta_value: Optional[bool], assumed: bool) -> bool:
        if use_metadata and meta_value is not None:
            return bool(meta_value)
        return bool(assumed)

    log_transform = flag(metadata.log_transform_applied if metadata else None, options.assumed_log_transform)
    centered = flag(metadata.centering_applied if metadata else None, options.assumed_centered)
    windowed = flag(metadata.window_applied if metadata else None, options.assumed_windowed)
    phase_enhanced = flag(metadata.phase_contrast_enhanced if metadata else None, options.assumed_phase_enhanced)
    alpha_transformed = flag(
        metadata.alpha_channel_transformed if metadata else None, options.assumed_alpha_transformed
    )

    current = (int(spectra_shape[0]), int(spectra_shape[1]))
    original = metadata.original_shape if use_metadata else None
    padded = metadata.padded_shape if use_metadata else None

    if original is None:
        original = current
    if padded is None:
        padded = optimal_padded_shape(original)
    if padded[0] < current[0] or padded[1] < current[1]:
        # spectra larger than the recorded FFT shape: trust the spectra
        logger.warning(
            "Spectra %s exceed the padded shape %s; using the spectra shape as FFT shape", current, padded
        )
        padded = (max(padded[0], current[0]), max(padded[1], current[1]))
    original = (min(original[0], padded[0]), min(original[1], padded[1]))

    magnitude_normalized = None
    preview_gamma = 1.0
    storage = [None, None, None, None]
    if use_metadata:
        magnitude_normalized = metadata.magnitude_normalized
        if metadata.preview_gamma is not None:
            preview_gamma = float(metadata.preview_gamma)
        for idx in range(4):
            pre, post = metadata.magnitude_maxima(idx)
            storage[idx] = _storage_max(pre, post, log_transform)

    params = ResolvedParameters(
        log_transform=log_transform,
        centered=centered,
        windowed=windowed,
        phase_enhanced=phase_enhanced,
        alpha_transformed=alpha_transformed,
        original_shape=original,
        padded_shape=padded,
        magnitude_normalized=magnitude_normalized,
        preview_gamma=preview_gamma,
        channel_storage_max=tuple(storage),
        from_metadata=use_metadata,
    )
    logger.debug("Resolved inverse parameters: %s", params)
    return params


def _looks_normalized(magnitude: np.ndarray) -> bool:
    finite = magnitude[np.isfinite(magnitude)]
    if finite.size == 0:
        return False
    return float(finite.min()) >= -NORMALIZED_TOLERANCE and float(finite.max()) <= 1.0 + NORMALIZED_TOLERANCE


def _recover_magnitude(
    stored: np.ndarray,
    channel: int,
    params: ResolvedParameters,
    options: InverseOptions,
) -> Tuple[np.ndarray, bool]:
    """Undo normalization / gamma / log compression. Returns (linear magnitude, scale_known)."""
    mag = np.nan_to_num(np.asarray(stored, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)

    detected = _looks_normalized(mag)
    normalized = detected if params.magnitude_normalized is None else params.magnitude_normalized
    if params.magnitude_normalized is not None and normalized != detected:
        logger.debug(
            "Channel %s: metadata says normalized=%s but value range suggests %s; following metadata",
            CHANNEL_NAMES[channel], normalized, detected,
        )

    scale_known = True
    if normalized:
        mag = np.clip(mag, 0.0, None)
        if params.preview_gamma != 1.0:
            mag = np.power(mag, 1.0 / params.preview_gamma)
        storage_max = params.storage_max(channel)
        if storage_max is None:
            scale_known = False
            estimate = estimate_magnitude_max(params.original_shape, params.windowed)
            storage_max = float(np.log1p(estimate)) if params.log_transform else estimate
            logger.debug(
                "Channel %s: no stored magnitude max, using estimate %g", CHANNEL_NAMES[channel], storage_max
            )
        mag = mag * storage_max

    if params.log_transform:
        mag = np.expm1(np.minimum(mag, LOG_DOMAIN_CEILING))

    mag = np.clip(mag, 0.0, None) * float(options.magnitude_scale)
    return mag, scale_known


def _boost_dark_plane(plane: np.ndarray) -> np.ndarray:
    """Stretch an abnormally dark plane so its max lands near DARK_OUTPUT_TARGET (bounded gain)."""
    peak = float(np.max(plane)) if plane.size else 0.0
    if peak <= EPS or peak >= DARK_OUTPUT_THRESHOLD:
        return plane
    factor = min(DARK_OUTPUT_TARGET / peak, MAX_BRIGHTNESS_BOOST)
    logger.debug("Boosting dark plane (max=%g) by %g", peak, factor)
    return np.clip(plane * factor, 0.0, 1.0)


def _inverse_channel(
    stored_magnitude: np.ndarray,
    phase01: np.ndarray,
    channel: int,
    params: ResolvedParameters,
    options: InverseOptions,
    strategy: PolarToRectangular,
) -> np.ndarray:
    magnitude, scale_known = _recover_magnitude(stored_magnitude, channel, params, options)

    phase01 = np.clip(np.nan_to_num(np.asarray(phase01, dtype=np.float64), nan=0.5), 0.0, 1.0)
    if params.phase_enhanced and options.quality >= ReconstructionQuality.HIGH:
        phase01 = smooth_phase(phase01)
    phase = phase01 * 2.0 * np.pi - np.pi

    F = strategy.to_rectangular(magnitude, phase)
    known = None
    if F.shape != params.padded_shape:
        known = pad_to_shape(np.ones(F.shape), params.padded_shape) > 0
        F = pad_to_shape(F, params.padded_shape)
    if params.centered:
        F = swap_quadrants(F, params.padded_shape, inverse=True)
        if known is not None:
            known = swap_quadrants(known, params.padded_shape, inverse=True)
    if known is not None:
        F, lost = fill_conjugate_bins(F, known)
        logger.debug("Channel %s: %d cropped bins had no mirror to recover from", CHANNEL_NAMES[channel], lost)
    if params.phase_enhanced:
        F = restore_real_bins(F)

    plane = crop_to_shape(compute_ifft(F), params.original_shape)
    if params.windowed:
        plane = compensate_window(plane, hann_window(params.original_shape))

    plane = np.clip(plane, 0.0, 1.0)
    if not scale_known and options.boost_dark_output:
        plane = _boost_dark_plane(plane)
    return plane


def empty_image() -> np.ndarray:
    return np.zeros((0, 0, 4), dtype=np.float32)


def inverse_transform(
    spectra: Optional[SpectralPair],
    metadata: Optional[ReconstructionMetadata] = None,
    options: Optional[InverseOptions] = None,
) -> np.ndarray:
    """
    Reconstruct an HxWx4 float32 RGBA image from magnitude and phase spectra.

    Missing or empty spectra return an empty (0, 0, 4) image. Spectra with
    mismatched shapes or an unsupported channel layout raise ValueError.
    """
    options = options or InverseOptions()
    if spectra is None or spectra.is_empty:
        return empty_image()

    magnitude = np.asarray(spectra.magnitude)
    phase = np.asarray(spectra.phase)
    if magnitude.shape != phase.shape:
        raise ValueError(f"Magnitude shape {magnitude.shape} does not match phase shape {phase.shape}.")
    if magnitude.ndim != 3 or magnitude.shape[2] not in (3, 4):
        raise ValueError(
            f"Expected HxWx4 (or HxWx3) spectra, got shape {magnitude.shape}."
        )

    params = resolve_parameters(magnitude.shape[:2], metadata, options)
    strategy = get_polar_strategy(options.polar_method)

    n_channels = 4 if params.alpha_transformed and magnitude.shape[2] == 4 else 3
    planes = []
    for idx in range(n_channels):
        planes.append(_inverse_channel(magnitude[:, :, idx], phase[:, :, idx], idx, params, options, strategy))
    if n_channels == 3:
        planes.append(np.ones(params.original_shape, dtype=np.float64))

    return np.stack(planes, axis=2).astype(np.float32)


class InverseSpectralTransform:
    """
    Stateless inverse transform bound to a set of InverseOptions.

    transform() takes an explicit metadata record; process() reads it from a
    host side channel first. Neither mutates the metadata.
    """

    def __init__(self, options: Optional[InverseOptions] = None):
        self.options = options or InverseOptions()

    def transform(
        self,
        spectra: Optional[SpectralPair],
        metadata: Optional[ReconstructionMetadata] = None,
    ) -> np.ndarray:
        return inverse_transform(spectra, metadata, self.options)

    def process(
        self,
        magnitude: Optional[np.ndarray],
        phase: Optional[np.ndarray],
        side_channel: Optional[Mapping[str, Any]] = None,
    ) -> np.ndarray:
        if magnitude is None or phase is None:
            return empty_image()
        metadata = extract_metadata(side_channel)
        if metadata is None:
            logger.debug("No reconstruction metadata in side channel; using assumed parameters")
        return self.transform(SpectralPair(np.asarray(magnitude), np.asarray(phase)), metadata)
