"""Canonical sphere: centred at the origin with radius 0.5.

Intersection solves |o + t*d|^2 = 0.25 with the robust quadratic from
geometry.common. UVs use a longitude/latitude mapping:
    u = -atan2(z, x) / (2*pi) wrapped into [0, 1)
    v = asin(y / 0.5) / pi + 0.5

Example:
    >>> # inside a Taichi kernel
    >>> rec = hit_sphere(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, -1.0), 1e-3, 1e10)
    >>> # rec.t == 4.5
"""

import taichi as ti
import taichi.math as tm

from src.whitted.geometry.common import (
    HALF_EXTENT,
    LocalHit,
    angular_u,
    is_degenerate,
    make_local_miss,
    solve_quadratic,
    vec2,
    vec3,
)

SPHERE_RADIUS = HALF_EXTENT


@ti.func
def sphere_uv(p: vec3) -> vec2:
    """Latitude/longitude texture coordinate of a point on the sphere."""
    s = tm.clamp(p.y / SPHERE_RADIUS, -1.0, 1.0)
    return vec2(angular_u(p.x, p.z), ti.asin(s) / tm.pi + 0.5)


@ti.func
def hit_sphere(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> LocalHit:
    """Intersect a local-space ray with the canonical sphere.

    Args:
        origin: Ray origin in the sphere's canonical space.
        direction: Ray direction in canonical space (need not be unit length).
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The nearest hit with t in (t_min, t_max), or a miss. Tangential
        touches and degenerate directions are misses.
    """
    result = make_local_miss()

    if not is_degenerate(direction):
        a = tm.dot(direction, direction)
        b = 2.0 * tm.dot(origin, direction)
        c = tm.dot(origin, origin) - SPHERE_RADIUS * SPHERE_RADIUS
        valid, t0, t1 = solve_quadratic(a, b, c)

        if valid:
            t = t0
            ok = (t > t_min) and (t < t_max)
            if not ok:
                t = t1
                ok = (t > t_min) and (t < t_max)

            if ok:
                p = origin + t * direction
                # Gradient of x^2 + y^2 + z^2 - r^2
                result = LocalHit(hit=1, t=t, normal=2.0 * p, uv=sphere_uv(p))

    return result
