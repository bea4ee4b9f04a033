"""
spectral/forward.py

Forward spectral transform: RGBA image -> (magnitude, phase) spectra + ReconstructionMetadata.

Per-channel pipeline (R, G, B, and A only when transform_alpha_channel):
  1) FFT-efficient padded shape (cv2.getOptimalDFTSize per axis)
  2) optional separable Hann window on the unpadded data
  3) zero-pad, 2D FFT
  4) optional quadrant swap (zero frequency to the centre, odd-size aware)
  5) polar form: magnitude, phase in (-pi, pi]
  6) record pre-log magnitude max
  7) optional ln(1 + magnitude); record post-log max
  8) DISPLAY mode: divide by the current max (then optional preview gamma);
     RAW mode: store values as computed
  9) phase -> [0,1] via (phase + pi) / 2pi
  10) optional CLAHE on the normalized phase (lossy, flag only is recorded)
  11) crop back to the original shape (unless crop_spectrum=False)

When the alpha channel is not transformed both output alpha planes are 1.0.

The scalar magnitude maxima in the metadata come from channel 0 (R); the
per-channel maxima are stored alongside so every channel can be
de-normalized with its own values.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, MutableMapping, Optional, Tuple

import numpy as np

from .fft_engine import (
    compute_fft, crop_to_shape, hann_window, optimal_padded_shape, pad_to_shape, swap_quadrants, to_polar,
)
from .filters import enhance_phase_contrast
from .metadata import FORMAT_VERSION, ReconstructionMetadata, inject_metadata
from .options import ForwardOptions

logger = logging.getLogger(__name__)

EPS = 1e-12
CHANNEL_NAMES = ("R", "G", "B", "A")


@dataclass(frozen=True)
class SpectralPair:
    """Magnitude and phase images of identical HxWx4 shape (float32)."""

    magnitude: np.ndarray
    phase: np.ndarray

    @classmethod
    def empty(cls) -> "SpectralPair":
        return cls(np.zeros((0, 0, 4), dtype=np.float32), np.zeros((0, 0, 4), dtype=np.float32))

    @property
    def is_empty(self) -> bool:
        return self.magnitude is None or self.phase is None or self.magnitude.size == 0 or self.phase.size == 0

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.magnitude.shape)


def split_channels(image: np.ndarray) -> List[np.ndarray]:
    """
    Split an HxWx4 (or HxWx3, alpha taken as 1.0) image into four float64 planes.
    Raises ValueError for any other layout.
    """
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        channels = image.shape[2] if image.ndim == 3 else 1
        raise ValueError(
            f"Expected an HxWx4 RGBA (or HxWx3 RGB) image, got shape {image.shape} ({channels} channel(s))."
        )
    planes = [image[:, :, idx].astype(np.float64) for idx in range(image.shape[2])]
    if len(planes) == 3:
        planes.append(np.ones(image.shape[:2], dtype=np.float64))
    return planes


def _forward_channel(
    plane: np.ndarray,
    padded_shape: Tuple[int, int],
    options: ForwardOptions,
) -> Tuple[np.ndarray, np.ndarray, float, float]:
    """Run the forward pipeline on one plane. Returns (magnitude, phase01, pre_max, post_max)."""
    rows, cols = plane.shape
    data = plane
    if options.apply_window:
        # window the real content before padding
        data = data * hann_window((rows, cols))

    F = compute_fft(pad_to_shape(data, padded_shape))
    if options.center_zero_frequency:
        F = swap_quadrants(F, padded_shape)

    magnitude, phase = to_polar(F)
    pre_max = float(np.max(magnitude))

    if options.apply_log_compression:
        magnitude = np.log1p(magnitude)
        post_max = float(np.max(magnitude))
    else:
        post_max = pre_max

    if options.normalizes_magnitude:
        if post_max > EPS:
            magnitude = magnitude / post_max
        else:
            magnitude = np.zeros_like(magnitude)
        if float(options.preview_gamma) != 1.0:
            magnitude = np.power(magnitude, float(options.preview_gamma))

    phase01 = (phase + np.pi) / (2.0 * np.pi)
    if options.enhance_phase_contrast:
        phase01 = enhance_phase_contrast(
            phase01, clip_limit=options.phase_clip_limit, tile_grid=options.phase_tile_grid
        )
    phase01 = np.clip(phase01, 0.0, 1.0)

    if options.crop_spectrum:
        magnitude = crop_to_shape(magnitude, (rows, cols))
        phase01 = crop_to_shape(phase01, (rows, cols))
    return magnitude, phase01, pre_max, post_max


def forward_transform(
    image: Optional[np.ndarray],
    options: Optional[ForwardOptions] = None,
) -> Tuple[SpectralPair, Optional[ReconstructionMetadata]]:
    """
    Decompose an RGBA image into magnitude and phase spectra.

    Returns (SpectralPair, ReconstructionMetadata). An absent or zero-size
    image yields (SpectralPair.empty(), None).
    """
    options = options or ForwardOptions()
    if image is None:
        return SpectralPair.empty(), None
    image = np.asarray(image)
    if image.size == 0:
        return SpectralPair.empty(), None

    planes = split_channels(image)
    rows, cols = planes[0].shape
    padded_shape = optimal_padded_shape((rows, cols))
    out_shape = (rows, cols) if options.crop_spectrum else padded_shape
    logger.debug("Forward transform %dx%d -> padded %dx%d, options=%s", rows, cols, *padded_shape, options)

    n_transformed = 4 if options.transform_alpha_channel else 3
    magnitudes, phases, pre_maxima, post_maxima = [], [], [], []
    for idx in range(n_transformed):
        mag, ph, pre_max, post_max = _forward_channel(planes[idx], padded_shape, options)
        logger.debug("Channel %s: pre-log max=%g, post-log max=%g", CHANNEL_NAMES[idx], pre_max, post_max)
        magnitudes.append(mag)
        phases.append(ph)
        pre_maxima.append(pre_max)
        post_maxima.append(post_max)

    if not options.transform_alpha_channel:
        magnitudes.append(np.ones(out_shape, dtype=np.float64))
        phases.append(np.ones(out_shape, dtype=np.float64))

    pair = SpectralPair(
        magnitude=np.stack(magnitudes, axis=2).astype(np.float32),
        phase=np.stack(phases, axis=2).astype(np.float32),
    )
    metadata = ReconstructionMetadata(
        original_rows=rows,
        original_cols=cols,
        padded_rows=padded_shape[0],
        padded_cols=padded_shape[1],
        log_transform_applied=options.apply_log_compression,
        pre_log_magnitude_max=pre_maxima[0],
        post_log_magnitude_max=post_maxima[0],
        centering_applied=options.center_zero_frequency,
        window_applied=options.apply_window,
        phase_contrast_enhanced=options.enhance_phase_contrast,
        alpha_channel_transformed=options.transform_alpha_channel,
        magnitude_normalized=options.normalizes_magnitude,
        preview_gamma=float(options.preview_gamma) if options.normalizes_magnitude else 1.0,
        channel_pre_log_maxima=tuple(pre_maxima),
        channel_post_log_maxima=tuple(post_maxima),
        producer_id=options.producer_id,
        format_version=FORMAT_VERSION,
    )
    return pair, metadata


class ForwardSpectralTransform:
    """
    Stateless forward transform bound to a set of ForwardOptions.

    transform() returns the spectra and a fresh metadata record; process()
    additionally writes the record into a host side channel
    (first writer wins).
    """

    def __init__(self, options: Optional[ForwardOptions] = None):
        self.options = options or ForwardOptions()

    def transform(self, image: Optional[np.ndarray]) -> Tuple[SpectralPair, Optional[ReconstructionMetadata]]:
        return forward_transform(image, self.options)

    def process(
        self,
        image: Optional[np.ndarray],
        side_channel: Optional[MutableMapping[str, Any]] = None,
    ) -> Tuple[SpectralPair, Optional[ReconstructionMetadata]]:
        pair, metadata = self.transform(image)
        if side_channel is not None and metadata is not None:
            inject_metadata(side_channel, metadata)
        return pair, metadata
