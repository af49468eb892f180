"""Row-band work distribution and the output pixel buffer.

The image is split into bands of consecutive rows. Each band is one kernel
launch whose outermost loop runs over the band's pixels:

- parallel mode: Taichi spreads the loop over its CPU thread pool (size set
  by ti.init(cpu_max_num_threads=...)) or the GPU;
- serial mode: the same loop runs on a single thread
  (ti.loop_config(serialize=True)).

Every pixel is written exactly once, by the iteration that owns it, and the
scene fields are only read while kernels run, so no synchronization is
needed. Bands only exist to give the caller progress callbacks between
launches; they do not change the result.

The buffer is stored row-major with row 0 at the top of the image.

Example:
    >>> from src.whitted.core.dispatch import dispatch, get_image_numpy, setup_render_target
    >>> setup_render_target(320, 240)
    >>> dispatch(config)
    >>> image = get_image_numpy()  # (240, 320, 3) float32
"""

import logging
from collections.abc import Callable, Generator
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.whitted.core.config import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, RenderConfig
from src.whitted.core.sampler import sample_pixel

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Callback receives (finished_bands, total_bands)
ProgressCallback = Callable[[int, int], None]

# =============================================================================
# Render Target
# =============================================================================

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Preallocated to the maximum size to avoid kernel recompilation
_pixels = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))
_depths = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Zero the pixel and depth buffers."""
    _pixels.fill(0.0)
    _depths.fill(0)


def reset_render_target() -> None:
    """Clear the buffers and mark the render target as not set up."""
    clear_render_target()
    _render_target_initialized[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Active (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Work Units
# =============================================================================


@dataclass(frozen=True)
class RowBand:
    """A half-open range of image rows [start, stop)."""

    index: int
    start: int
    stop: int

    @property
    def rows(self) -> int:
        return self.stop - self.start


def partition_rows(height: int, band_rows: int) -> list[RowBand]:
    """Split `height` rows into consecutive bands of at most `band_rows` rows.

    Raises:
        ValueError: If height or band_rows is not positive.
    """
    if height < 1 or band_rows < 1:
        raise ValueError(f"height and band_rows must be positive, got {height} and {band_rows}")
    return [
        RowBand(index=i, start=start, stop=min(start + band_rows, height))
        for i, start in enumerate(range(0, height, band_rows))
    ]


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.func
def _render_pixel(row: ti.i32, col: ti.i32, width: ti.i32, height: ti.i32, samples: ti.i32, seed: ti.u32):
    color, depth = sample_pixel(row, col, width, height, samples, seed)
    _pixels[row, col] = color
    _depths[row, col] = depth


@ti.kernel
def _render_band_parallel(
    row_start: ti.i32,
    row_stop: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    seed: ti.u32,
):
    for row, col in ti.ndrange((row_start, row_stop), (0, width)):
        _render_pixel(row, col, width, height, samples, seed)


@ti.kernel
def _render_band_serial(
    row_start: ti.i32,
    row_stop: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    seed: ti.u32,
):
    ti.loop_config(serialize=True)
    for row, col in ti.ndrange((row_start, row_stop), (0, width)):
        _render_pixel(row, col, width, height, samples, seed)


def render_band(band: RowBand, config: RenderConfig) -> None:
    """Render one band of rows into the buffer.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    kernel = _render_band_parallel if config.enable_parallelism else _render_band_serial
    kernel(band.start, band.stop, width, height, config.samples, config.seed)


def dispatch_progressive(config: RenderConfig) -> Generator[tuple[int, int], None, None]:
    """Render every band, yielding (finished_bands, total_bands) after each.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    _, height = get_image_dimensions()
    bands = partition_rows(height, config.band_rows)
    mode = "parallel" if config.enable_parallelism else "serial"
    logger.debug("Dispatching %d band(s) of up to %d rows (%s)", len(bands), config.band_rows, mode)

    for band in bands:
        render_band(band, config)
        logger.debug("Band %d/%d done (rows %d-%d)", band.index + 1, len(bands), band.start, band.stop - 1)
        yield band.index + 1, len(bands)

    ti.sync()


def dispatch(config: RenderConfig, callback: ProgressCallback | None = None) -> None:
    """Render the whole image, blocking until every band has finished.

    Args:
        config: Render configuration (sampling, seed, band size, mode).
        callback: Optional callable invoked after each band with
            (finished_bands, total_bands).

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    for done, total in dispatch_progressive(config):
        if callback is not None:
            callback(done, total)


# =============================================================================
# Buffer Readback
# =============================================================================


@ti.kernel
def _copy_pixels(out: ti.types.ndarray(dtype=ti.f32, ndim=3), width: ti.i32, height: ti.i32):
    for row, col in ti.ndrange(height, width):
        c = _pixels[row, col]
        for k in ti.static(range(3)):
            out[row, col, k] = c[k]


@ti.kernel
def _copy_depths(out: ti.types.ndarray(dtype=ti.i32, ndim=2), width: ti.i32, height: ti.i32):
    for row, col in ti.ndrange(height, width):
        out[row, col] = _depths[row, col]


def get_image_numpy() -> npt.NDArray[np.float32]:
    """Rendered colours as a (height, width, 3) float32 array, unclamped.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    out = np.zeros((height, width, 3), dtype=np.float32)
    _copy_pixels(out, width, height)
    return out


def get_depth_numpy() -> npt.NDArray[np.int32]:
    """Deepest reflection level reached per pixel, as a (height, width) array.

    Raises:
        RuntimeError: If the render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()
    out = np.zeros((height, width), dtype=np.int32)
    _copy_depths(out, width, height)
    return out
