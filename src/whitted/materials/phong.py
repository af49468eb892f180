"""Phong material storage.

Materials live in Structure-of-Arrays Taichi fields indexed by material id.
A texture_id of -1 means the material has no texture map.

Example:
    >>> from src.whitted.materials.phong import add_material, clear_materials
    >>> clear_materials()
    >>> mat_id = add_material(Material(diffuse=(0.8, 0.2, 0.2), shininess=20.0))
"""

from typing import TYPE_CHECKING

import taichi as ti
import taichi.math as tm

if TYPE_CHECKING:
    from src.whitted.scene.model import Material

vec3 = tm.vec3

NO_TEXTURE = -1

# Maximum number of distinct materials in the scene
MAX_MATERIALS = 1024

material_ambient = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_specular = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_reflective = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)

# Texture map: slot, repeat factors and blend weight
material_texture_ids = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_repeat = ti.Vector.field(2, dtype=ti.f32, shape=MAX_MATERIALS)
material_blend = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)

num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all materials."""
    num_materials[None] = 0


def add_material(material: "Material") -> int:
    """Store a material.

    The material's texture (if any) must already be uploaded to the texture
    atlas; its texture_id is used as the atlas slot.

    Args:
        material: The material to store.

    Returns:
        The new material id.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_ambient[idx] = material.ambient
    material_diffuse[idx] = material.diffuse
    material_specular[idx] = material.specular
    material_reflective[idx] = material.reflective
    material_shininess[idx] = material.shininess

    tex = material.texture_map
    if tex is None:
        material_texture_ids[idx] = NO_TEXTURE
        material_repeat[idx] = (1.0, 1.0)
        material_blend[idx] = 0.0
    else:
        material_texture_ids[idx] = tex.texture.texture_id
        material_repeat[idx] = (tex.repeat_u, tex.repeat_v)
        material_blend[idx] = tex.blend

    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    return int(num_materials[None])


@ti.func
def get_ambient(material_id: ti.i32) -> vec3:
    return material_ambient[material_id]


@ti.func
def get_diffuse(material_id: ti.i32) -> vec3:
    return material_diffuse[material_id]


@ti.func
def get_specular(material_id: ti.i32) -> vec3:
    return material_specular[material_id]


@ti.func
def get_reflective(material_id: ti.i32) -> vec3:
    return material_reflective[material_id]


@ti.func
def get_shininess(material_id: ti.i32) -> ti.f32:
    return material_shininess[material_id]


@ti.func
def get_texture_map(material_id: ti.i32):
    """Texture slot, repeat factors and blend weight of a material.

    Returns:
        Tuple (texture_id, repeat, blend); texture_id is NO_TEXTURE when the
        material is untextured.
    """
    return material_texture_ids[material_id], material_repeat[material_id], material_blend[material_id]
