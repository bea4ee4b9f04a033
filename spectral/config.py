"""Run configuration loading for the spectral round-trip scripts."""

from pathlib import Path
from typing import Any, Dict, Tuple, Union

import yaml

from .options import ForwardOptions, InverseOptions


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a YAML run config.

    The file may contain optional ``forward:`` and ``inverse:`` mappings whose
    keys are ForwardOptions / InverseOptions field names, plus any script-level
    keys (e.g. ``images``, ``output_dir``).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must map to a dict: {path}")
    return data


def options_from_config(cfg: Dict[str, Any]) -> Tuple[ForwardOptions, InverseOptions]:
    forward = cfg.get("forward") or {}
    inverse = cfg.get("inverse") or {}
    if not isinstance(forward, dict) or not isinstance(inverse, dict):
        raise ValueError("'forward' and 'inverse' config sections must be mappings.")
    return ForwardOptions.from_dict(forward), InverseOptions.from_dict(inverse)
