"""
spectral/options.py

Per-call option records for the forward and inverse transforms.

ForwardOptions describe what the forward pass does; InverseOptions describe
what the inverse pass should *assume* was done upstream, plus its own
reconstruction controls. Both round-trip through plain dicts
(to_dict / from_dict) so they can be stored in YAML run configs.
"""

from dataclasses import asdict, dataclass, fields
from enum import Enum, IntEnum
from typing import Any, Dict, Optional

from .polar import available_polar_strategies


class MagnitudeOutputMode(str, Enum):
    DISPLAY = "display"   # normalized to [0,1] by the plane max
    RAW = "raw"           # stored as computed (log-compressed or not), unnormalized


class ReconstructionQuality(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    ULTRA = 3


def _reject_unknown(cls, data: Dict[str, Any]) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {', '.join(unknown)}")


def _parse_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        if issubclass(enum_cls, IntEnum):
            try:
                return enum_cls[value.upper()]
            except KeyError:
                raise ValueError(f"Unknown {enum_cls.__name__} '{value}'.") from None
        return enum_cls(value.lower())
    return enum_cls(value)


@dataclass(frozen=True)
class ForwardOptions:
    apply_log_compression: bool = True
    center_zero_frequency: bool = True
    apply_window: bool = False
    enhance_phase_contrast: bool = True
    transform_alpha_channel: bool = False
    magnitude_output: MagnitudeOutputMode = MagnitudeOutputMode.DISPLAY
    preview_gamma: float = 1.0
    crop_spectrum: bool = True
    phase_clip_limit: float = 2.0
    phase_tile_grid: int = 8
    producer_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "magnitude_output", _parse_enum(MagnitudeOutputMode, self.magnitude_output))
        if float(self.preview_gamma) <= 0.0:
            raise ValueError("preview_gamma must be > 0.")
        if float(self.phase_clip_limit) <= 0.0:
            raise ValueError("phase_clip_limit must be > 0.")
        if int(self.phase_tile_grid) < 1:
            raise ValueError("phase_tile_grid must be >= 1.")

    @property
    def normalizes_magnitude(self) -> bool:
        return self.magnitude_output is MagnitudeOutputMode.DISPLAY

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["magnitude_output"] = self.magnitude_output.value
        return d

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ForwardOptions":
        data = dict(data or {})
        _reject_unknown(cls, data)
        return cls(**data)


@dataclass(frozen=True)
class InverseOptions:
    assumed_log_transform: bool = True
    assumed_centered: bool = True
    assumed_windowed: bool = False
    assumed_phase_enhanced: bool = True
    assumed_alpha_transformed: bool = False
    auto_detect: bool = True
    magnitude_scale: float = 1.0
    quality: ReconstructionQuality = ReconstructionQuality.HIGH
    polar_method: str = "exact"
    boost_dark_output: bool = True

    def __post_init__(self):
        object.__setattr__(self, "quality", _parse_enum(ReconstructionQuality, self.quality))
        if float(self.magnitude_scale) <= 0.0:
            raise ValueError("magnitude_scale must be > 0.")
        if str(self.polar_method).lower() not in available_polar_strategies():
            raise ValueError(
                f"Unknown polar_method '{self.polar_method}'. "
                f"Choose one of {', '.join(available_polar_strategies())}."
            )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["quality"] = self.quality.name
        return d

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InverseOptions":
        data = dict(data or {})
        _reject_unknown(cls, data)
        return cls(**data)
