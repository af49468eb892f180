"""Per-pixel supersampling with deterministic jitter.

Sub-pixel offsets come from a stateless integer hash of
(seed, pixel index, sample index, axis) rather than from ti.random, so a
pixel's colour depends only on its coordinates and the seed. Renders are
therefore reproducible regardless of thread count, band size or the order
in which pixels are processed.

A single sample is always taken at the pixel centre.
"""

import taichi as ti
import taichi.math as tm

from src.whitted.camera.pinhole import get_ray
from src.whitted.core.tracer import sanitize_color, trace_ray

vec2 = tm.vec2
vec3 = tm.vec3

# 2^24: the hash keeps its top 24 bits, which f32 represents exactly
_UNIT_SCALE = 16777216.0


@ti.func
def hash_u32(x: ti.u32) -> ti.u32:
    """Wang's 32-bit integer hash."""
    h = x
    h = (h ^ ti.u32(61)) ^ (h >> ti.u32(16))
    h = h * ti.u32(9)
    h = h ^ (h >> ti.u32(4))
    h = h * ti.u32(0x27D4EB2D)
    h = h ^ (h >> ti.u32(15))
    return h


@ti.func
def random_unit(seed: ti.u32, pixel: ti.i32, sample: ti.i32, axis: ti.i32) -> ti.f32:
    """Uniform value in [0, 1) keyed by seed, pixel, sample and axis."""
    h = hash_u32(seed)
    h = hash_u32(h ^ ti.cast(pixel, ti.u32))
    h = hash_u32(h ^ ti.cast(sample * 2 + axis, ti.u32))
    return ti.cast(h >> ti.u32(8), ti.f32) / _UNIT_SCALE


@ti.func
def jitter_offset(seed: ti.u32, pixel: ti.i32, sample: ti.i32, samples: ti.i32) -> vec2:
    """Offset of a sub-sample inside its pixel, in [0, 1)^2."""
    offset = vec2(0.5, 0.5)
    if samples > 1:
        offset = vec2(random_unit(seed, pixel, sample, 0), random_unit(seed, pixel, sample, 1))
    return offset


@ti.func
def sample_pixel(row: ti.i32, col: ti.i32, width: ti.i32, height: ti.i32, samples: ti.i32, seed: ti.u32):
    """Average `samples` jittered primary rays through one pixel.

    Args:
        row: Pixel row, 0 at the top of the image.
        col: Pixel column, 0 at the left.
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Sub-samples per pixel (at least 1).
        seed: Jitter seed.

    Returns:
        Tuple (color, depth): the per-channel mean colour and the deepest
        reflection depth reached by any sub-sample.
    """
    pixel = row * width + col
    total = vec3(0.0, 0.0, 0.0)
    max_depth = 0

    for k in range(samples):
        offset = jitter_offset(seed, pixel, k, samples)
        s = (ti.cast(col, ti.f32) + offset.x) / ti.cast(width, ti.f32)
        t = 1.0 - (ti.cast(row, ti.f32) + offset.y) / ti.cast(height, ti.f32)
        ray = get_ray(s, t)
        color, depth = trace_ray(ray.origin, ray.direction)
        total += sanitize_color(color)
        max_depth = ti.max(max_depth, depth)

    return total / ti.cast(samples, ti.f32), max_depth
