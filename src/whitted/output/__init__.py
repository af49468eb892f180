"""Output utilities for rendered images.

Components:
    export: Float to 8-bit conversion and PNG export
"""

from .export import image_to_uint8, save_png_from_array

__all__ = [
    "image_to_uint8",
    "save_png_from_array",
]
