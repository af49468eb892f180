"""Canonical cylinder: radius 0.5 around the y axis, y in [-0.5, 0.5], capped.

The body solves x^2 + z^2 = 0.25 restricted to the height range. The body
UV is (angle, height); the caps use the planar mapping of the matching cube
faces.
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


@ti.func
def _hit_cylinder_body(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> LocalHit:
    result = make_local_miss()
    a = direction.x * direction.x + direction.z * direction.z
    b = 2.0 * (origin.x * direction.x + origin.z * direction.z)
    c = origin.x * origin.x + origin.z * origin.z - HALF_EXTENT * HALF_EXTENT
    valid, t0, t1 = solve_quadratic(a, b, c)

    if valid:
        # Roots are tried nearest first; the height bound can reject either
        for k in ti.static(range(2)):
            t = t0
            if ti.static(k == 1):
                t = t1
            if result.hit == 0 and (t > t_min) and (t < t_max):
                p = origin + t * direction
                if ti.abs(p.y) <= HALF_EXTENT:
                    result = LocalHit(
                        hit=1,
                        t=t,
                        normal=vec3(p.x, 0.0, p.z),
                        uv=vec2(angular_u(p.x, p.z), p.y + HALF_EXTENT),
                    )
    return result


@ti.func
def hit_cylinder(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> LocalHit:
    """Intersect a local-space ray with the canonical capped cylinder.

    Args:
        origin: Ray origin in the cylinder's canonical space.
        direction: Ray direction in canonical space.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The nearest hit on the body or either cap, or a miss.
    """
    result = make_local_miss()
    if not is_degenerate(direction):
        result = _hit_cylinder_body(origin, direction, t_min, t_max)
        result = nearer(result, hit_disk_y(origin, direction, HALF_EXTENT, 1.0, t_min, t_max))
        result = nearer(result, hit_disk_y(origin, direction, -HALF_EXTENT, -1.0, t_min, t_max))
    return result
