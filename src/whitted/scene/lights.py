"""Light storage and per-point light evaluation.

Supports three light kinds:
- Point: emits from a position in every direction, attenuated by distance.
- Directional: parallel rays from infinitely far away, no attenuation.
- Spot: a point light restricted to a cone, with a smooth falloff across
  the penumbra band at the cone's edge.

Distance attenuation is min(1, 1 / (a + b*d + c*d^2)).
"""

from typing import TYPE_CHECKING

import taichi as ti
import taichi.math as tm

if TYPE_CHECKING:
    from src.whitted.scene.model import Light

vec3 = tm.vec3

# Light type codes, matching scene.model.LightType
LIGHT_POINT = 0
LIGHT_DIRECTIONAL = 1
LIGHT_SPOT = 2

MAX_LIGHTS = 64

light_types = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
# Normalized travel direction (directional and spot lights)
light_directions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_attenuations = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_angles = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
light_penumbras = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights."""
    num_lights[None] = 0


def add_light(light: "Light") -> int:
    """Store a light.

    The light's scalar intensity is folded into its stored colour.

    Args:
        light: The light to store.

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
    """
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

    dx, dy, dz = light.direction
    norm = (dx * dx + dy * dy + dz * dz) ** 0.5
    direction = (dx / norm, dy / norm, dz / norm) if norm > 0.0 else (0.0, 0.0, 0.0)

    light_types[idx] = int(light.light_type)
    light_colors[idx] = tuple(c * light.intensity for c in light.color)
    light_positions[idx] = light.position
    light_directions[idx] = direction
    light_attenuations[idx] = light.attenuation
    light_angles[idx] = light.angle
    light_penumbras[idx] = light.penumbra
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    return int(num_lights[None])


@ti.func
def light_direction_to_point(idx: ti.i32, point: vec3) -> vec3:
    """Unit vector from the light toward `point`."""
    result = light_directions[idx]
    if light_types[idx] != LIGHT_DIRECTIONAL:
        result = tm.normalize(point - light_positions[idx])
    return result


@ti.func
def light_distance(idx: ti.i32, point: vec3) -> ti.f32:
    """Distance from the light to `point`; -1 for directional lights."""
    result = -1.0
    if light_types[idx] != LIGHT_DIRECTIONAL:
        result = tm.length(point - light_positions[idx])
    return result


@ti.func
def attenuation_over_distance(coefficients: vec3, distance: ti.f32) -> ti.f32:
    denom = coefficients.z * distance * distance + coefficients.y * distance + coefficients.x
    factor = 1.0
    if denom > 0.0:
        factor = ti.min(1.0, 1.0 / denom)
    return factor


@ti.func
def spot_falloff(idx: ti.i32, to_point: vec3) -> ti.f32:
    """Fraction of a spot light's colour reaching a point in direction to_point."""
    angle = light_angles[idx]
    penumbra = light_penumbras[idx]
    inner = angle - penumbra
    cos_theta = tm.clamp(tm.dot(light_directions[idx], to_point), -1.0, 1.0)
    theta = ti.acos(cos_theta)

    factor = 1.0
    if theta > angle:
        factor = 0.0
    elif theta > inner and penumbra > 0.0:
        x = (theta - inner) / penumbra
        factor = 1.0 - (-2.0 * x * x * x + 3.0 * x * x)
    return factor


@ti.func
def light_intensity_at(idx: ti.i32, point: vec3) -> vec3:
    """Colour of light `idx` arriving at `point`, before occlusion."""
    color = light_colors[idx]
    kind = light_types[idx]
    if kind != LIGHT_DIRECTIONAL:
        d = tm.length(point - light_positions[idx])
        color *= attenuation_over_distance(light_attenuations[idx], d)
        if kind == LIGHT_SPOT:
            color *= spot_falloff(idx, light_direction_to_point(idx, point))
    return color
