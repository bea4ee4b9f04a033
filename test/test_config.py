import os
import pytest
from spectral.config import load_config, options_from_config
from spectral.options import MagnitudeOutputMode, ReconstructionQuality

DEFAULT_YAML = os.path.join(os.path.dirname(__file__), os.pardir, "configs", "default.yaml")

def test_default_config_matches_option_defaults():
    cfg = load_config(DEFAULT_YAML)
    fwd, inv = options_from_config(cfg)
    assert fwd.magnitude_output is MagnitudeOutputMode.DISPLAY
    assert inv.quality is ReconstructionQuality.HIGH
    assert isinstance(cfg["images"], list)

def test_load_custom_config(tmp_path):
    p = tmp_path / "run.yaml"
    p.write_text(
        "forward:\n  apply_window: true\n  magnitude_output: raw\n"
        "inverse:\n  polar_method: fast\n  quality: low\n",
        encoding="utf-8",
    )
    fwd, inv = options_from_config(load_config(p))
    assert fwd.apply_window
    assert fwd.magnitude_output is MagnitudeOutputMode.RAW
    assert inv.polar_method == "fast"
    assert inv.quality is ReconstructionQuality.LOW

def test_empty_config_gives_defaults(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("", encoding="utf-8")
    fwd, inv = options_from_config(load_config(p))
    assert fwd.apply_log_compression and inv.auto_detect

def test_bad_configs(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")
    p = tmp_path / "list.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(p)
    with pytest.raises(ValueError):
        options_from_config({"forward": {"unknown_key": 1}})
