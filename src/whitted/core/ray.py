"""Ray structure and vector helpers usable inside Taichi kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.core.ray import make_ray, reflect, vec3
    >>> # inside a kernel:
    >>> # ray = make_ray(vec3(0.0), vec3(0.0, 0.0, -1.0))
    >>> # bounce = reflect(ray.direction, vec3(0.0, 0.0, 1.0))
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# =============================================================================
# Tracing Constants
# =============================================================================

# Offset along the normal for secondary ray origins, and the smallest
# accepted hit distance
RAY_EPSILON = 1e-3

# Upper bound on t for rays with no finite target
T_MAX = 1e10

# Squared length below which a direction is treated as degenerate
DEGENERATE_LENGTH_SQUARED = 1e-16


@ti.dataclass
class Ray:
    """A world-space ray.

    Attributes:
        origin: Start point of the ray.
        direction: Direction of travel. Primary, shadow and reflection rays
            are normalized; rays carried into a shape's local space are not.
    """

    origin: vec3
    direction: vec3


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def normalize(v: vec3) -> vec3:
    """Unit vector along v, or the zero vector when v is degenerate.

    tm.normalize divides by the length unconditionally, which turns a zero
    vector into NaNs. Rays built from degenerate directions must stay finite
    so the intersection code can reject them.
    """
    result = vec3(0.0, 0.0, 0.0)
    len_sq = tm.dot(v, v)
    if len_sq > DEGENERATE_LENGTH_SQUARED:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror an incident direction about a unit normal.

    Args:
        incident: Direction travelling toward the surface.
        normal: Unit surface normal.

    Returns:
        The normalized reflected direction.
    """
    return normalize(incident - 2.0 * tm.dot(incident, normal) * normal)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """1 if the squared length of v is below the degenerate threshold."""
    return ti.cast(tm.dot(v, v) <= DEGENERATE_LENGTH_SQUARED, ti.i32)
