"""
spectral/metadata.py

Reconstruction metadata passed from the forward transform to the inverse
transform through the host pipeline's side channel.

The side channel is a plain string-keyed mapping owned by the host. This
module reserves two top-level keys:

  CONFIG_KEY          -> flags describing what the forward pass did
  RECONSTRUCTION_KEY  -> numbers needed to undo the lossy storage steps

Both entries carry "formatVersion". Writers never overwrite an existing
entry (first writer wins), so re-evaluating a pipeline is idempotent.
Readers are lenient: unknown versions are decoded field by field,
malformed fields become None and the inverse falls back to heuristics.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
CONFIG_KEY = "spectral_transform.config"
RECONSTRUCTION_KEY = "spectral_transform.reconstruction"

# wire name -> attribute name
_CONFIG_FIELDS = {
    "logTransformApplied": "log_transform_applied",
    "centeringApplied": "centering_applied",
    "windowApplied": "window_applied",
    "phaseContrastEnhanced": "phase_contrast_enhanced",
    "alphaChannelTransformed": "alpha_channel_transformed",
    "magnitudeNormalized": "magnitude_normalized",
}
_DIMENSION_FIELDS = {
    "originalRows": "original_rows",
    "originalCols": "original_cols",
    "paddedRows": "padded_rows",
    "paddedCols": "padded_cols",
}
_MAXIMUM_FIELDS = {
    "preLogMagnitudeMax": "pre_log_magnitude_max",
    "postLogMagnitudeMax": "post_log_magnitude_max",
}
_CHANNEL_FIELDS = {
    "channelPreLogMaxima": "channel_pre_log_maxima",
    "channelPostLogMaxima": "channel_post_log_maxima",
}


@dataclass(frozen=True)
class ReconstructionMetadata:
    """
    Immutable record of one forward run.

    Every field except format_version may be None when decoded from a
    partial or damaged side channel. The scalar magnitude maxima belong to
    channel 0 (R); the per-channel tuples hold one value per transformed
    channel in R, G, B(, A) order.
    """

    original_rows: Optional[int] = None
    original_cols: Optional[int] = None
    padded_rows: Optional[int] = None
    padded_cols: Optional[int] = None
    log_transform_applied: Optional[bool] = None
    pre_log_magnitude_max: Optional[float] = None
    post_log_magnitude_max: Optional[float] = None
    centering_applied: Optional[bool] = None
    window_applied: Optional[bool] = None
    phase_contrast_enhanced: Optional[bool] = None
    alpha_channel_transformed: Optional[bool] = None
    magnitude_normalized: Optional[bool] = None
    preview_gamma: Optional[float] = None
    channel_pre_log_maxima: Optional[Tuple[float, ...]] = None
    channel_post_log_maxima: Optional[Tuple[float, ...]] = None
    producer_id: Optional[str] = None
    format_version: int = FORMAT_VERSION

    @property
    def original_shape(self) -> Optional[Tuple[int, int]]:
        if self.original_rows is None or self.original_cols is None:
            return None
        return self.original_rows, self.original_cols

    @property
    def padded_shape(self) -> Optional[Tuple[int, int]]:
        if self.padded_rows is None or self.padded_cols is None:
            return None
        return self.padded_rows, self.padded_cols

    @property
    def is_complete(self) -> bool:
        return all(
            getattr(self, attr) is not None
            for attr in (*_CONFIG_FIELDS.values(), *_DIMENSION_FIELDS.values(), *_MAXIMUM_FIELDS.values())
        )

    def magnitude_maxima(self, channel: int) -> Tuple[Optional[float], Optional[float]]:
        """(pre-log max, post-log max) for a channel, falling back to the channel-0 scalars."""
        pre, post = self.pre_log_magnitude_max, self.post_log_magnitude_max
        if self.channel_pre_log_maxima is not None and channel < len(self.channel_pre_log_maxima):
            pre = self.channel_pre_log_maxima[channel]
        if self.channel_post_log_maxima is not None and channel < len(self.channel_post_log_maxima):
            post = self.channel_post_log_maxima[channel]
        return pre, post

    # --- encoding ---
    def config_entry(self) -> Dict[str, Any]:
        entry = {wire: getattr(self, attr) for wire, attr in _CONFIG_FIELDS.items()}
        entry["previewGamma"] = self.preview_gamma
        entry["formatVersion"] = self.format_version
        return entry

    def reconstruction_entry(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"formatVersion": self.format_version}
        for wire, attr in {**_DIMENSION_FIELDS, **_MAXIMUM_FIELDS}.items():
            entry[wire] = getattr(self, attr)
        for wire, attr in _CHANNEL_FIELDS.items():
            value = getattr(self, attr)
            entry[wire] = list(value) if value is not None else None
        entry["producerId"] = self.producer_id
        return entry

    def encode(self) -> Dict[str, Dict[str, Any]]:
        return {CONFIG_KEY: self.config_entry(), RECONSTRUCTION_KEY: self.reconstruction_entry()}

    @classmethod
    def decode(cls, channel: Optional[Mapping[str, Any]]) -> Optional["ReconstructionMetadata"]:
        return extract_metadata(channel)


# --- lenient field parsers (return None for anything unusable) ---
def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _as_positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(as_float) or as_float < 1 or as_float != int(as_float):
        return None
    return int(as_float)


def _as_non_negative_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(as_float) or as_float < 0.0:
        return None
    return as_float


def _as_float_tuple(value: Any) -> Optional[Tuple[float, ...]]:
    if not isinstance(value, (list, tuple)) or not value:
        return None
    parsed = tuple(_as_non_negative_float(v) for v in value)
    if any(v is None for v in parsed):
        return None
    return parsed


def _entry(channel: Mapping[str, Any], key: str) -> Optional[Mapping[str, Any]]:
    entry = channel.get(key)
    if entry is None:
        return None
    if not isinstance(entry, Mapping):
        logger.warning("Ignoring side-channel entry %r: expected a mapping, got %s", key, type(entry).__name__)
        return None
    return entry


def _decode_fields(entry: Mapping[str, Any], spec: Dict[str, str], parser, out: Dict[str, Any], key: str) -> None:
    for wire, attr in spec.items():
        if wire not in entry or entry[wire] is None:
            continue
        parsed = parser(entry[wire])
        if parsed is None:
            logger.warning("Dropping malformed %s.%s = %r", key, wire, entry[wire])
        out[attr] = parsed


def extract_metadata(channel: Optional[Mapping[str, Any]]) -> Optional[ReconstructionMetadata]:
    """
    Decode a ReconstructionMetadata from the side channel.
    Returns None when neither reserved entry is present (or usable).
    """
    if not channel:
        return None
    config = _entry(channel, CONFIG_KEY)
    recon = _entry(channel, RECONSTRUCTION_KEY)
    if config is None and recon is None:
        return None

    version = None
    for entry in (recon, config):
        if entry is not None and entry.get("formatVersion") is not None:
            version = entry.get("formatVersion")
            break
    parsed_version = _as_positive_int(version)
    if parsed_version != FORMAT_VERSION:
        logger.warning(
            "Reconstruction metadata has format version %r (expected %d); decoding known fields only",
            version, FORMAT_VERSION,
        )

    values: Dict[str, Any] = {}
    if config is not None:
        _decode_fields(config, _CONFIG_FIELDS, _as_bool, values, CONFIG_KEY)
        gamma = config.get("previewGamma")
        if gamma is not None:
            parsed_gamma = _as_non_negative_float(gamma)
            values["preview_gamma"] = parsed_gamma if parsed_gamma else None
            if not parsed_gamma:
                logger.warning("Dropping malformed %s.previewGamma = %r", CONFIG_KEY, gamma)
    if recon is not None:
        _decode_fields(recon, _DIMENSION_FIELDS, _as_positive_int, values, RECONSTRUCTION_KEY)
        _decode_fields(recon, _MAXIMUM_FIELDS, _as_non_negative_float, values, RECONSTRUCTION_KEY)
        _decode_fields(recon, _CHANNEL_FIELDS, _as_float_tuple, values, RECONSTRUCTION_KEY)
        producer = recon.get("producerId")
        if producer is not None:
            values["producer_id"] = str(producer)

    # a padded shape smaller than the original shape is unusable
    if (values.get("padded_rows") is not None and values.get("original_rows") is not None
            and values["padded_rows"] < values["original_rows"]):
        logger.warning("Dropping padded rows smaller than original rows")
        values["padded_rows"] = None
    if (values.get("padded_cols") is not None and values.get("original_cols") is not None
            and values["padded_cols"] < values["original_cols"]):
        logger.warning("Dropping padded cols smaller than original cols")
        values["padded_cols"] = None

    return ReconstructionMetadata(format_version=parsed_version or FORMAT_VERSION, **values)


def inject_metadata(channel: MutableMapping[str, Any], metadata: Optional[ReconstructionMetadata]) -> bool:
    """
    Write `metadata` into the side channel without clobbering existing entries.
    Returns True if at least one reserved entry was written.
    """
    if metadata is None:
        return False
    wrote = False
    if CONFIG_KEY not in channel:
        channel[CONFIG_KEY] = metadata.config_entry()
        wrote = True
    else:
        logger.debug("Side channel already holds %r; keeping first writer", CONFIG_KEY)
    if RECONSTRUCTION_KEY not in channel:
        channel[RECONSTRUCTION_KEY] = metadata.reconstruction_entry()
        wrote = True
    else:
        logger.debug("Side channel already holds %r; keeping first writer", RECONSTRUCTION_KEY)
    return wrote
