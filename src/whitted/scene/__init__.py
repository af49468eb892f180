"""Scene module: description, construction and device storage.

Components:
    model: Plain dataclasses describing shapes, materials, lights and the camera
    textures: Texture decoding and the deduplicating TextureStore
    builder: Scene graph flattening and dictionary scene descriptions
    showcase: Demonstration scene factory
    texture_atlas: Device storage for texels
    lights: Device storage and evaluation of light sources
    intersection: Device shape storage and scene-level ray queries
    manager: Uploads a Scene into the device fields

texture_atlas, lights, intersection and manager allocate Taichi fields at
import time and are not imported here.
"""

from .builder import build_scene, flatten, scene_from_dict
from .model import (
    BLACK,
    WHITE,
    Camera,
    GlobalLighting,
    Light,
    LightType,
    Material,
    Primitive,
    PrimitiveType,
    Scene,
    SceneNode,
    Shape,
    TextureMap,
    Transformation,
)
from .showcase import ShowcaseParams, create_showcase_scene
from .textures import Texture, TextureStore

__all__ = [
    # Model
    "Camera",
    "GlobalLighting",
    "Light",
    "LightType",
    "Material",
    "Primitive",
    "PrimitiveType",
    "Scene",
    "SceneNode",
    "Shape",
    "TextureMap",
    "Transformation",
    "BLACK",
    "WHITE",
    # Textures
    "Texture",
    "TextureStore",
    # Builder
    "build_scene",
    "flatten",
    "scene_from_dict",
    # Showcase
    "create_showcase_scene",
    "ShowcaseParams",
]
