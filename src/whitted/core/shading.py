"""Phong local illumination with optional shadows and textures.

For a hit point with unit normal N, view direction V and material m:

    colour = ka * m.ambient
    for each light visible from the point:
        L        = unit direction from the light to the point
        D        = kd * m.diffuse                       (untextured)
                 = kd * m.diffuse * (1 - blend) + texel * blend
        diffuse  = max(N . -L, 0) * D
        specular = ks * m.specular * max(reflect(L, N) . V, 0) ^ m.shininess
        colour  += intensity_at(point) * (diffuse + specular)

Ambient light is added once per hit, not once per light. With shadows off
every light is treated as visible and no shadow rays are cast. With
textures off (or no texture on the material) the texture term is skipped.
"""

import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import RAY_EPSILON, T_MAX, normalize, reflect
from src.whitted.materials.phong import (
    NO_TEXTURE,
    get_ambient,
    get_diffuse,
    get_shininess,
    get_specular,
    get_texture_map,
)
from src.whitted.scene.intersection import SceneHitRecord, intersect_scene_any
from src.whitted.scene.lights import (
    light_direction_to_point,
    light_distance,
    light_intensity_at,
    num_lights,
)
from src.whitted.scene.texture_atlas import sample_texture

vec3 = tm.vec3

# Feature switches
_shadows_enabled = ti.field(dtype=ti.i32, shape=())
_texture_enabled = ti.field(dtype=ti.i32, shape=())

# Scene-wide Phong weights
_ka = ti.field(dtype=ti.f32, shape=())
_kd = ti.field(dtype=ti.f32, shape=())
_ks = ti.field(dtype=ti.f32, shape=())


def configure_shading(enable_shadows: bool, enable_texture: bool) -> None:
    """Set the shadow and texture switches."""
    _shadows_enabled[None] = int(enable_shadows)
    _texture_enabled[None] = int(enable_texture)


def set_global_lighting(ka: float, kd: float, ks: float) -> None:
    """Set the scene-wide ambient, diffuse and specular weights."""
    _ka[None] = ka
    _kd[None] = kd
    _ks[None] = ks


def get_global_lighting() -> tuple[float, float, float]:
    return float(_ka[None]), float(_kd[None]), float(_ks[None])


@ti.func
def specular_weight() -> ti.f32:
    """Scene-wide specular weight, also applied to reflected light."""
    return _ks[None]


@ti.func
def is_light_visible(light_idx: ti.i32, point: vec3, normal: vec3) -> ti.i32:
    """Cast a shadow ray from `point` toward a light.

    The ray starts RAY_EPSILON along the normal. A point light is blocked by
    any hit closer than the light; a directional light by any hit at all.

    Returns:
        1 if nothing blocks the light, 0 otherwise.
    """
    to_light = -light_direction_to_point(light_idx, point)
    distance = light_distance(light_idx, point)
    t_max = T_MAX
    if distance >= 0.0:
        t_max = distance
    origin = point + RAY_EPSILON * normal
    return 1 - intersect_scene_any(origin, to_light, RAY_EPSILON, t_max)


@ti.func
def diffuse_color(hit: SceneHitRecord) -> vec3:
    """kd-weighted diffuse colour at the hit, with the texture blended in."""
    mat = hit.material_id
    base = _kd[None] * get_diffuse(mat)
    result = base
    if _texture_enabled[None] == 1:
        texture_id, repeat, blend = get_texture_map(mat)
        if texture_id != NO_TEXTURE:
            texel = sample_texture(texture_id, hit.uv, repeat.x, repeat.y)
            result = base * (1.0 - blend) + texel * blend
    return result


@ti.func
def shade(hit: SceneHitRecord, ray_direction: vec3) -> vec3:
    """Phong colour of a hit seen along `ray_direction`.

    Args:
        hit: A scene hit (hit == 1).
        ray_direction: Direction of the ray that produced the hit.

    Returns:
        The local illumination at the hit point.
    """
    mat = hit.material_id
    point = hit.point
    normal = hit.normal
    to_camera = normalize(-ray_direction)

    d_color = diffuse_color(hit)
    s_color = _ks[None] * get_specular(mat)
    shininess = get_shininess(mat)

    color = _ka[None] * get_ambient(mat)

    for l in range(num_lights[None]):
        visible = 1
        if _shadows_enabled[None] == 1:
            visible = is_light_visible(l, point, normal)

        if visible == 1:
            light_to_point = light_direction_to_point(l, point)
            diffuse_angle = ti.max(tm.dot(normal, -light_to_point), 0.0)

            mirror = reflect(light_to_point, normal)
            specular_angle = tm.dot(mirror, to_camera)
            spec = 0.0
            if specular_angle > 0.0:
                spec = specular_angle**shininess

            color += light_intensity_at(l, point) * (diffuse_angle * d_color + spec * s_color)

    return color
