"""
Spectral transform pair: forward (image -> magnitude/phase + reconstruction
metadata) and inverse (spectra [+ metadata] -> image).
"""
from .forward import ForwardSpectralTransform, SpectralPair, forward_transform
from .inverse import InverseSpectralTransform, inverse_transform
from .metadata import CONFIG_KEY, RECONSTRUCTION_KEY, ReconstructionMetadata, extract_metadata, inject_metadata
from .options import ForwardOptions, InverseOptions, MagnitudeOutputMode, ReconstructionQuality

__all__ = [
    "ForwardSpectralTransform",
    "InverseSpectralTransform",
    "SpectralPair",
    "forward_transform",
    "inverse_transform",
    "ReconstructionMetadata",
    "CONFIG_KEY",
    "RECONSTRUCTION_KEY",
    "extract_metadata",
    "inject_metadata",
    "ForwardOptions",
    "InverseOptions",
    "MagnitudeOutputMode",
    "ReconstructionQuality",
]
