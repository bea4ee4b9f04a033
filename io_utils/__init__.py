# io_utils/__init__.py
"""
I/O helpers: conversion to and from the HxWx4 float RGBA layout used by the spectral transforms.
"""
from .image_handler import read_image_rgba, save_image_rgba, to_rgba_float, from_rgba_float, detect_has_alpha
from .file_utils import make_result_filename, save_parameters_txt

__all__ = [
    "read_image_rgba",
    "save_image_rgba",
    "to_rgba_float",
    "from_rgba_float",
    "detect_has_alpha",
    "make_result_filename",
    "save_parameters_txt",
]
