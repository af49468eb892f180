"""Scene upload: copies an in-memory Scene into the device fields.

The SceneManager owns the mapping between the Python scene description and
the Taichi storage modules:
- textures go to the texture atlas, one slot per TextureStore entry
- materials are deduplicated by identity and get consecutive material ids
- shapes store their primitive type, material id and cached transform
- lights and the global Phong weights are copied as-is

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.manager import SceneManager
    >>> manager = SceneManager()
    >>> manager.load(scene)
    >>> manager.get_shape_count()
    3
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from src.whitted.core.errors import SceneError
from src.whitted.core.shading import set_global_lighting
from src.whitted.materials.phong import MAX_MATERIALS, add_material, clear_materials
from src.whitted.scene.intersection import MAX_SHAPES, add_shape, clear_scene
from src.whitted.scene.lights import MAX_LIGHTS, add_light, clear_lights
from src.whitted.scene.model import Light, Material, PrimitiveType, Scene
from src.whitted.scene.texture_atlas import MAX_TEXTURES, clear_textures, upload_texture

logger = logging.getLogger(__name__)


@dataclass
class MaterialInfo:
    """A material registered on the device.

    Attributes:
        material_id: Device material id.
        material: The source material.
    """

    material_id: int
    material: Material


@dataclass
class ShapeInfo:
    """A shape registered on the device.

    Attributes:
        shape_index: Index in the shape fields.
        primitive: Primitive kind.
        material_id: Device material id of the shape.
    """

    shape_index: int
    primitive: PrimitiveType
    material_id: int


@dataclass
class LightInfo:
    """A light registered on the device."""

    light_index: int
    light: Light


class SceneManager:
    """Uploads scenes to the device and tracks what was uploaded.

    Only one scene is active at a time: load() replaces whatever was
    uploaded before.

    Attributes:
        materials: Registered materials, indexed by material id.
        shapes: Registered shapes in scene order.
        lights: Registered lights.
        scene: The currently loaded scene, if any.
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.shapes: list[ShapeInfo] = []
        self.lights: list[LightInfo] = []
        self.scene: Scene | None = None
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_materials()
        clear_lights()
        clear_textures()
        set_global_lighting(0.0, 0.0, 0.0)
        self.materials.clear()
        self.shapes.clear()
        self.lights.clear()
        self.scene = None

    def clear(self) -> None:
        """Remove the loaded scene from the device."""
        self._clear_all()

    def load(self, scene: Scene) -> None:
        """Upload a scene, replacing the current one.

        Args:
            scene: The scene to upload.

        Raises:
            SceneError: If a material references a texture that is not in
                the scene's texture store.
            RuntimeError: If the scene exceeds a storage limit.
        """
        owned = {id(t) for t in scene.textures}
        for shape in scene.shapes:
            tex = shape.material.texture_map
            if tex is not None and id(tex.texture) not in owned:
                raise SceneError(f"Texture {tex.texture.path} does not belong to the scene's texture store")

        self._clear_all()

        for texture in scene.textures:
            slot = upload_texture(texture)
            if slot != texture.texture_id:
                raise RuntimeError(
                    f"Texture {texture.path} landed in slot {slot}, expected {texture.texture_id}"
                )

        material_ids: dict[int, int] = {}
        for shape in scene.shapes:
            key = id(shape.material)
            if key not in material_ids:
                material_ids[key] = add_material(shape.material)
                self.materials.append(MaterialInfo(material_ids[key], shape.material))

            material_id = material_ids[key]
            index = add_shape(shape.primitive, shape.transform, material_id)
            self.shapes.append(ShapeInfo(index, PrimitiveType(shape.primitive), material_id))

        for light in scene.lights:
            self.lights.append(LightInfo(add_light(light), light))

        g = scene.global_lighting
        set_global_lighting(g.ka, g.kd, g.ks)
        self.scene = scene

        logger.info(
            "Loaded scene: %d shapes, %d materials, %d lights, %d textures",
            len(self.shapes),
            len(self.materials),
            len(self.lights),
            len(scene.textures),
        )

    def load_dict(self, data: dict[str, Any], texture_dir: str | Path | None = None) -> Scene:
        """Build a scene from a dictionary and upload it.

        Args:
            data: Scene description (see scene.builder.scene_from_dict).
            texture_dir: Directory texture paths are relative to.

        Returns:
            The built scene.

        Raises:
            SceneError: If the description is invalid.
        """
        from src.whitted.scene.builder import scene_from_dict

        scene = scene_from_dict(data, texture_dir=texture_dir)
        self.load(scene)
        return scene

    def get_shape_count(self) -> int:
        return len(self.shapes)

    def get_material_count(self) -> int:
        return len(self.materials)

    def get_light_count(self) -> int:
        return len(self.lights)

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    @staticmethod
    def get_max_shapes() -> int:
        return MAX_SHAPES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS

    @staticmethod
    def get_max_lights() -> int:
        return MAX_LIGHTS

    @staticmethod
    def get_max_textures() -> int:
        return MAX_TEXTURES
