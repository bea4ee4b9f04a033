# visuals/__init__.py
"""
Visual helpers: spectrum previews and before/after reconstruction figures.
"""
from .plots import (
    spectrum_preview,
    save_spectral_pair,
    compare_and_save,
)
__all__ = [
    "spectrum_preview",
    "save_spectral_pair",
    "compare_and_save",
]
