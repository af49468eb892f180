"""Canonical cone: apex at (0, 0.5, 0), radius 0.5 base at y = -0.5.

The body satisfies x^2 + z^2 = ((0.5 - y) / 2)^2 for y in [-0.5, 0.5]. For a
ray o + t*d this gives the quadratic

    a = dx^2 + dz^2 - dy^2 / 4
    b = 2 (ox dx + oz dz) + (0.5 - oy) dy / 2
    c = ox^2 + oz^2 - (0.5 - oy)^2 / 4

The base is a downward facing disk.
"""

import taichi as ti

from src.whitted.geometry.common import (
    HALF_EXTENT,
    LocalHit,
    angular_u,
    hit_disk_y,
    is_degenerate,
    make_local_miss,
    nearer,
    solve_quadratic,
    vec2,
    vec3,
)

# Below this radial distance the gradient is undefined (apex)
APEX_EPSILON = 1e-6


@ti.func
def cone_normal(p: vec3) -> vec3:
    """Outward gradient of the cone surface, straight up at the apex."""
    n = vec3(2.0 * p.x, (HALF_EXTENT - p.y) / 2.0, 2.0 * p.z)
    if p.x * p.x + p.z * p.z < APEX_EPSILON * APEX_EPSILON:
        n = vec3(0.0, 1.0, 0.0)
    return n


@ti.func
def _hit_cone_body(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> LocalHit:
    result = make_local_miss()
    k = HALF_EXTENT - origin.y
    a = direction.x * direction.x + direction.z * direction.z - direction.y * direction.y / 4.0
    b = 2.0 * (origin.x * direction.x + origin.z * direction.z) + k * direction.y / 2.0
    c = origin.x * origin.x + origin.z * origin.z - k * k / 4.0
    valid, t0, t1 = solve_quadratic(a, b, c)

    if valid:
        # The implicit surface is a double cone; the height bound keeps the lower nappe
        for i in ti.static(range(2)):
            t = t0
            if ti.static(i == 1):
                t = t1
            if result.hit == 0 and (t > t_min) and (t < t_max):
                p = origin + t * direction
                if ti.abs(p.y) <= HALF_EXTENT:
                    result = LocalHit(
                        hit=1,
                        t=t,
                        normal=cone_normal(p),
                        uv=vec2(angular_u(p.x, p.z), p.y + HALF_EXTENT),
                    )
    return result


@ti.func
def hit_cone(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> LocalHit:
    """Intersect a local-space ray with the canonical cone.

    Args:
        origin: Ray origin in the cone's canonical space.
        direction: Ray direction in canonical space.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The nearest hit on the body or base, or a miss.
    """
    result = make_local_miss()
    if not is_degenerate(direction):
        result = _hit_cone_body(origin, direction, t_min, t_max)
        result = nearer(result, hit_disk_y(origin, direction, -HALF_EXTENT, -1.0, t_min, t_max))
    return result
