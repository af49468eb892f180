"""Shared pieces of the canonical-space primitive intersectors.

Every primitive lives in a unit canonical space (bounded by [-0.5, 0.5] on
each axis) and reports its nearest hit as a LocalHit. The helpers here cover
what the primitives have in common: the robust quadratic solver for the
curved bodies, disk caps for cylinders and cones, and UV mappings.
"""

import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import near_zero

vec2 = tm.vec2
vec3 = tm.vec3

# Canonical half extent of every primitive
HALF_EXTENT = 0.5

# Coefficients smaller than this are treated as zero by the solver
QUADRATIC_EPSILON = 1e-12


@ti.dataclass
class LocalHit:
    """Nearest intersection of a local-space ray with one primitive.

    Attributes:
        hit: 1 if the primitive was hit, 0 otherwise.
        t: Ray parameter of the hit. Local rays are not re-normalized, so this
            is also the world-space parameter.
        normal: Outward surface normal in local space (not necessarily unit
            length).
        uv: Texture coordinate of the hit point in [0, 1) x [0, 1].
    """

    hit: ti.i32
    t: ti.f32
    normal: vec3
    uv: vec2


@ti.func
def make_local_miss() -> LocalHit:
    return LocalHit(hit=0, t=0.0, normal=vec3(0.0, 0.0, 0.0), uv=vec2(0.0, 0.0))


@ti.func
def is_degenerate(direction: vec3) -> ti.i32:
    """1 if the direction is too short to define a ray."""
    return near_zero(direction)


@ti.func
def solve_quadratic(a: ti.f32, b: ti.f32, c: ti.f32):
    """Solve a*t^2 + b*t + c = 0 without catastrophic cancellation.

    Uses q = -(b + sign(b) * sqrt(disc)) / 2, t0 = q / a, t1 = c / q. A zero
    discriminant (tangential touch) is reported as no solution. When a is
    zero the equation is linear and its single root is returned twice.

    Args:
        a: Quadratic coefficient.
        b: Linear coefficient.
        c: Constant term.

    Returns:
        Tuple (valid, t0, t1) with t0 <= t1 when valid is 1.
    """
    valid = 0
    t0 = 0.0
    t1 = 0.0

    if ti.abs(a) < QUADRATIC_EPSILON:
        if ti.abs(b) > QUADRATIC_EPSILON:
            valid = 1
            t0 = -c / b
            t1 = t0
    else:
        disc = b * b - 4.0 * a * c
        if disc > 0.0:
            sqrt_d = ti.sqrt(disc)
            sign_b = ti.select(b < 0.0, -1.0, 1.0)
            q = -0.5 * (b + sign_b * sqrt_d)
            valid = 1
            t0 = q / a
            t1 = c / q
            if t0 > t1:
                temp = t0
                t0 = t1
                t1 = temp

    return valid, t0, t1


@ti.func
def angular_u(x: ti.f32, z: ti.f32) -> ti.f32:
    """Longitude of (x, z) around the y axis mapped to [0, 1)."""
    u = -ti.atan2(z, x) / (2.0 * tm.pi)
    if u < 0.0:
        u += 1.0
    if u >= 1.0:
        u -= 1.0
    return u


@ti.func
def planar_uv_y(x: ti.f32, z: ti.f32, side: ti.f32) -> vec2:
    """UV on a face perpendicular to y, side is +1 for the top face."""
    v = z + HALF_EXTENT
    if side > 0.0:
        v = -z + HALF_EXTENT
    return vec2(x + HALF_EXTENT, v)


@ti.func
def hit_disk_y(
    origin: vec3,
    direction: vec3,
    y: ti.f32,
    side: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> LocalHit:
    """Intersect a radius-0.5 disk centred on the y axis at height y.

    Args:
        origin: Local ray origin.
        direction: Local ray direction.
        y: Height of the disk plane.
        side: +1 for an upward facing cap, -1 for a downward facing one.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The cap hit, or a miss.
    """
    result = make_local_miss()
    if ti.abs(direction.y) > QUADRATIC_EPSILON:
        t = (y - origin.y) / direction.y
        if (t > t_min) and (t < t_max):
            p = origin + t * direction
            if p.x * p.x + p.z * p.z <= HALF_EXTENT * HALF_EXTENT:
                result = LocalHit(
                    hit=1,
                    t=t,
                    normal=vec3(0.0, side, 0.0),
                    uv=planar_uv_y(p.x, p.z, side),
                )
    return result


@ti.func
def nearer(a: LocalHit, b: LocalHit) -> LocalHit:
    """Return whichever hit is closer, preferring a on ties."""
    result = a
    if b.hit == 1 and (a.hit == 0 or b.t < a.t):
        result = b
    return result
