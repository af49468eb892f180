"""Whitted-style ray tracing with depth-bounded mirror reflections.

trace(ray, depth) is defined recursively:

    trace(ray, depth):
        hit = nearest hit of ray
        if no hit: return BACKGROUND_COLOR
        colour = shade(hit)
        if reflections enabled and hit is reflective and depth < max_depth:
            colour += reflective * ks * trace(reflected ray, depth + 1)
        return colour

Taichi functions cannot recurse, so trace_ray() unrolls this into a loop
that carries the product of reflectance factors (the weight) along the
reflection chain. The loop runs at most max_depth + 1 times, which bounds the
number of traced rays for any geometry, including facing mirrors.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.core.tracer import configure_tracer, trace_single_ray
    >>> configure_tracer(enable_reflections=True, max_recursion_depth=4)
    >>> color, depth = trace_single_ray((0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
"""

import taichi as ti
import taichi.math as tm

from src.whitted.core.config import MAX_RECURSION_DEPTH
from src.whitted.core.ray import RAY_EPSILON, T_MAX, normalize, reflect
from src.whitted.core.shading import shade, specular_weight
from src.whitted.materials.phong import get_reflective
from src.whitted.scene.intersection import intersect_scene

vec3 = tm.vec3

# =============================================================================
# Tracing Constants
# =============================================================================

# Colour of rays that escape the scene
BACKGROUND_COLOR = vec3(0.0, 0.0, 0.0)

# Hard ceiling on the reflection loop
MAX_SUPPORTED_DEPTH = MAX_RECURSION_DEPTH

_reflections_enabled = ti.field(dtype=ti.i32, shape=())
_max_depth = ti.field(dtype=ti.i32, shape=())


def configure_tracer(enable_reflections: bool, max_recursion_depth: int) -> None:
    """Set the reflection switch and recursion ceiling.

    Raises:
        ValueError: If max_recursion_depth is negative or above
            MAX_SUPPORTED_DEPTH.
    """
    if not 0 <= max_recursion_depth <= MAX_SUPPORTED_DEPTH:
        raise ValueError(
            f"max_recursion_depth must be in [0, {MAX_SUPPORTED_DEPTH}], "
            f"got {max_recursion_depth}"
        )
    _reflections_enabled[None] = int(enable_reflections)
    _max_depth[None] = max_recursion_depth


def get_max_depth() -> int:
    return int(_max_depth[None])


@ti.func
def _is_black(c: vec3) -> ti.i32:
    return c.x <= 0.0 and c.y <= 0.0 and c.z <= 0.0


@ti.func
def trace_ray(origin: vec3, direction: vec3):
    """Trace a world ray through the scene.

    Args:
        origin: Ray origin.
        direction: Unit ray direction.

    Returns:
        Tuple (color, depth): the ray's colour and the depth of the last
        reflection traced (0 when no reflection was spawned).
    """
    color = vec3(0.0, 0.0, 0.0)
    weight = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction
    depth = 0
    max_depth = _max_depth[None]

    # Active flag instead of break (loop body is a ti.func)
    active = 1
    for _ in range(max_depth + 1):
        if active == 1:
            hit = intersect_scene(ray_origin, ray_direction, RAY_EPSILON, T_MAX)
            if hit.hit == 0:
                color += weight * BACKGROUND_COLOR
                active = 0
            else:
                color += weight * shade(hit, ray_direction)
                reflective = get_reflective(hit.material_id)

                if _reflections_enabled[None] == 0 or _is_black(reflective) or depth >= max_depth:
                    active = 0
                else:
                    weight *= reflective * specular_weight()
                    ray_direction = reflect(ray_direction, hit.normal)
                    ray_origin = hit.point + RAY_EPSILON * hit.normal
                    depth += 1

    return color, depth


@ti.func
def sanitize_color(color: vec3) -> vec3:
    """Replace NaN/Inf channels with 0 and clamp negatives to 0."""
    result = tm.max(color, vec3(0.0, 0.0, 0.0))
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


# =============================================================================
# Single-ray Probe (Python-callable)
# =============================================================================

_probe_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_probe_depth = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _trace_probe(origin: vec3, direction: vec3):
    color, depth = trace_ray(origin, normalize(direction))
    _probe_color[None] = sanitize_color(color)
    _probe_depth[None] = depth


def trace_single_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[tuple[float, float, float], int]:
    """Trace one ray from Python, for testing and debugging.

    Args:
        origin: World-space origin.
        direction: World-space direction; normalized before tracing.

    Returns:
        Tuple of ((R, G, B), depth).
    """
    _trace_probe(vec3(*origin), vec3(*direction))
    c = _probe_color[None]
    return (float(c[0]), float(c[1]), float(c[2])), int(_probe_depth[None])
