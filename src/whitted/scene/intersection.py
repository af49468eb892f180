"""Scene-level ray intersection.

Shapes are stored in Taichi fields as (primitive type, material id, cached
inverse CTM, cached inverse-transpose CTM). A world ray is carried into each
shape's canonical space with the cached inverse, without re-normalizing the
direction, so the local hit parameter t is also the world parameter. Normals
come back through the cached inverse-transpose.

Intersection is a linear scan in scene order. The running closest t is
passed as the exclusive upper bound of the next test, so on exactly equal
distances the earlier shape keeps the hit.

Example:
    >>> from src.whitted.scene.intersection import add_shape, clear_scene
    >>> clear_scene()
    >>> add_shape(PrimitiveType.SPHERE, ShapeTransform.identity(), material_id=0)
    >>> # Use intersect_scene within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.whitted.geometry.common import LocalHit, is_degenerate, make_local_miss, vec2
from src.whitted.geometry.cone import hit_cone
from src.whitted.geometry.cube import hit_cube
from src.whitted.geometry.cylinder import hit_cylinder
from src.whitted.geometry.sphere import hit_sphere
from src.whitted.geometry.transform import (
    ShapeTransform,
    transform_direction,
    transform_normal,
    transform_point,
)

vec3 = tm.vec3

# Primitive type codes, matching scene.model.PrimitiveType
PRIM_SPHERE = 0
PRIM_CUBE = 1
PRIM_CYLINDER = 2
PRIM_CONE = 3


@ti.dataclass
class SceneHitRecord:
    """Nearest intersection of a world ray with the scene.

    Attributes:
        hit: 1 if any shape was hit, 0 otherwise.
        t: Ray parameter of the hit.
        point: World-space hit point.
        normal: Unit world-space normal, flipped to face the incoming ray.
        uv: Texture coordinate of the hit point.
        front_face: 1 if the ray hit the outside of the surface.
        material_id: Material of the hit shape, -1 on a miss.
        shape_id: Index of the hit shape, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    uv: vec2
    front_face: ti.i32
    material_id: ti.i32
    shape_id: ti.i32


# Maximum number of shapes in the scene
MAX_SHAPES = 1024

shape_types = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_material_ids = ti.field(dtype=ti.i32, shape=MAX_SHAPES)
shape_inverse = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_SHAPES)
shape_inverse_transpose = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_SHAPES)
num_shapes = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all shapes."""
    num_shapes[None] = 0


def add_shape(primitive: int, transform: ShapeTransform, material_id: int = 0) -> int:
    """Add a shape.

    Only the cached matrices of `transform` are copied; nothing is inverted
    here.

    Args:
        primitive: Primitive type code (see scene.model.PrimitiveType).
        transform: The shape's cached transform.
        material_id: Material id of the shape.

    Returns:
        The index of the added shape.

    Raises:
        RuntimeError: If the maximum number of shapes is exceeded.
    """
    idx = num_shapes[None]
    if idx >= MAX_SHAPES:
        raise RuntimeError(f"Maximum number of shapes ({MAX_SHAPES}) exceeded")
    shape_types[idx] = int(primitive)
    shape_material_ids[idx] = material_id
    shape_inverse[idx] = transform.inverse.tolist()
    shape_inverse_transpose[idx] = transform.inverse_transpose.tolist()
    num_shapes[None] = idx + 1
    return idx


def get_shape_count() -> int:
    return int(num_shapes[None])


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        uv=vec2(0.0, 0.0),
        front_face=0,
        material_id=-1,
        shape_id=-1,
    )


@ti.func
def intersect_local(
    primitive: ti.i32,
    origin: vec3,
    direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> LocalHit:
    """Dispatch a canonical-space ray to the matching primitive."""
    result = make_local_miss()
    if primitive == PRIM_SPHERE:
        result = hit_sphere(origin, direction, t_min, t_max)
    elif primitive == PRIM_CUBE:
        result = hit_cube(origin, direction, t_min, t_max)
    elif primitive == PRIM_CYLINDER:
        result = hit_cylinder(origin, direction, t_min, t_max)
    elif primitive == PRIM_CONE:
        result = hit_cone(origin, direction, t_min, t_max)
    return result


@ti.func
def intersect_shape(
    idx: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Intersect a world ray with shape `idx`.

    Args:
        idx: Shape index.
        ray_origin: World-space ray origin.
        ray_direction: World-space ray direction.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The hit in world space, or a miss record.
    """
    result = _make_miss_record()
    inv = shape_inverse[idx]
    local_origin = transform_point(inv, ray_origin)
    local_direction = transform_direction(inv, ray_direction)
    local = intersect_local(shape_types[idx], local_origin, local_direction, t_min, t_max)

    if local.hit == 1:
        normal = transform_normal(shape_inverse_transpose[idx], local.normal)
        front_face = 1
        if tm.dot(ray_direction, normal) > 0.0:
            front_face = 0
            normal = -normal
        result = SceneHitRecord(
            hit=1,
            t=local.t,
            point=ray_origin + local.t * ray_direction,
            normal=normal,
            uv=local.uv,
            front_face=front_face,
            material_id=shape_material_ids[idx],
            shape_id=idx,
        )
    return result


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Closest hit of a world ray against every shape.

    Degenerate (zero-length) directions never hit anything.

    Args:
        ray_origin: World-space ray origin.
        ray_direction: World-space ray direction.
        t_min: Exclusive lower bound on t.
        t_max: Exclusive upper bound on t.

    Returns:
        The closest intersection, or a miss record.
    """
    closest_t = t_max
    result = _make_miss_record()

    if not is_degenerate(ray_direction):
        for i in range(num_shapes[None]):
            rec = intersect_shape(i, ray_origin, ray_direction, t_min, closest_t)
            if rec.hit == 1:
                closest_t = rec.t
                result = rec

    return result


@ti.func
def intersect_scene_any(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """1 if any shape is hit with t in (t_min, t_max) (shadow ray query)."""
    hit_any = 0
    if not is_degenerate(ray_direction):
        for i in range(num_shapes[None]):
            if hit_any == 0:
                rec = intersect_shape(i, ray_origin, ray_direction, t_min, t_max)
                if rec.hit == 1:
                    hit_any = 1
    return hit_any
