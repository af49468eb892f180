"""Image export utilities for rendered images.

Rendered buffers are linear float32 arrays of shape (H, W, 3). These helpers
clamp them to [0, 1], apply optional gamma correction, quantize to 8 bits and
write PNG files with Pillow.

Example:
    >>> from src.whitted.output.export import save_png_from_array
    >>> image = tracer.render()
    >>> save_png_from_array(image, "output.png")
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage


def image_to_uint8(
    image: npt.NDArray[np.floating[npt.NBitBase]],
    *,
    gamma: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to uint8.

    Args:
        image: Image array of shape (H, W, 3).
        gamma: Gamma correction value (1.0 leaves colours linear).

    Returns:
        8-bit image array of shape (H, W, 3).

    Raises:
        ValueError: If the array is not (H, W, 3) or gamma is not positive.
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")

    processed = np.clip(np.nan_to_num(image.astype(np.float64), nan=0.0, posinf=1.0, neginf=0.0), 0.0, 1.0)
    if gamma != 1.0:
        processed = np.power(processed, 1.0 / gamma)

    # Round to nearest so 1.0 maps to 255 and 0.5 to 128
    return np.round(processed * 255.0).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.floating[npt.NBitBase]],
    filepath: str | Path,
    *,
    gamma: float = 1.0,
) -> None:
    """Save a float image as an 8-bit RGB PNG.

    Args:
        image: Image array of shape (H, W, 3), row 0 at the top.
        filepath: Output file path (should end in .png).
        gamma: Gamma correction value.
    """
    pil_image = PILImage.fromarray(image_to_uint8(image, gamma=gamma))
    pil_image.save(filepath)
