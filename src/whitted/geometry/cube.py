"""Canonical cube: axis-aligned, side 1, centred at the origin.

Each of the six faces is tested as a bounded plane. Face UVs are laid out so
that an image appears upright when the face is viewed from outside:

    +x: (-z + 0.5, y + 0.5)     -x: ( z + 0.5, y + 0.5)
    +y: ( x + 0.5, -z + 0.5)    -y: ( x + 0.5, z + 0.5)
    +z: ( x + 0.5, y + 0.5)     -z: (-x + 0.5, y + 0.5)
"""

import taichi as ti

from src.whitted.geometry.common import (
    HALF_EXTENT,
    QUADRATIC_EPSILON,
    LocalHit,
    is_degenerate,
    make_local_miss,
    nearer,
    planar_uv_y,
    vec2,
    vec3,
)

# Tolerance on the in-face bounds check so edges and corners are not missed
FACE_TOLERANCE = 1e-6


@ti.func
def cube_face_uv(p: vec3, axis: ti.template(), side: ti.f32) -> vec2:
    """UV of a point on the face perpendicular to `axis` on the given side."""
    uv = vec2(0.0, 0.0)
    if ti.static(axis == 0):
        u = p.z + HALF_EXTENT
        if side > 0.0:
            u = -p.z + HALF_EXTENT
        uv = vec2(u, p.y + HALF_EXTENT)
    elif ti.static(axis == 1):
        uv = planar_uv_y(p.x, p.z, side)
    else:
        u = -p.x + HALF_EXTENT
        if side > 0.0:
            u = p.x + HALF_EXTENT
        uv = vec2(u, p.y + HALF_EXTENT)
    return uv


@ti.func
def _hit_face(
    origin: vec3,
    direction: vec3,
    axis: ti.template(),
    side: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> LocalHit:
    """Intersect the face at coordinate side * 0.5 along `axis`."""
    result = make_local_miss()
    d = direction[axis]
    if ti.abs(d) > QUADRATIC_EPSILON:
        t = (side * HALF_EXTENT - origin[axis]) / d
        if (t > t_min) and (t < t_max):
            p = origin + t * direction
            inside = 1
            for k in ti.static(range(3)):
                if ti.static(k != axis):
                    if ti.abs(p[k]) > HALF_EXTENT + FACE_TOLERANCE:
                        inside = 0
            if inside:
                normal = vec3(0.0, 0.0, 0.0)
                normal[axis] = side
                result = LocalHit(hit=1, t=t, normal=normal, uv=cube_face_uv(p, axis, side))
    return result


@ti.func
def hit_cube(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> LocalHit:
    """Intersect a local-space ray with the canonical cube.

    Args:
        origin: Ray origin in the cube's canonical space.
        direction: Ray direction in canonical space.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The nearest face hit with t in (t_min, t_max), or a miss.
    """
    result = make_local_miss()
    if not is_degenerate(direction):
        for axis in ti.static(range(3)):
            result = nearer(result, _hit_face(origin, direction, axis, 1.0, t_min, t_max))
            result = nearer(result, _hit_face(origin, direction, axis, -1.0, t_min, t_max))
    return result
