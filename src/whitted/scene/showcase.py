"""Demonstration scene.

A small still life that exercises every feature of the renderer:

- a checkered floor (flattened cube with a repeated, blended texture)
- a mirror sphere in the middle
- a cylinder, a cone and a rotated cube around it
- a "pillar" object (cylinder topped by a sphere) instanced twice
- one point, one directional and one spot light

The checker texture is generated in memory, so the scene needs no files.

Example:
    >>> from src.whitted.scene.showcase import create_showcase_scene
    >>> scene = create_showcase_scene()
    >>> len(scene.shapes)
    9
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from src.whitted.scene.builder import build_scene
from src.whitted.scene.model import (
    Camera,
    GlobalLighting,
    Light,
    Material,
    Primitive,
    PrimitiveType,
    Scene,
    SceneNode,
    TextureMap,
    Transformation,
)
from src.whitted.scene.textures import TextureStore

# =============================================================================
# Showcase Parameters
# =============================================================================


@dataclass
class ShowcaseParams:
    """Tunable parts of the showcase scene.

    Attributes:
        mirror_reflectance: Reflectance of the centre sphere (same in every
            channel).
        floor_blend: Weight of the checker texture against the floor's
            diffuse colour.
        checker_repeat: Checker tiles per floor side.
        spot_angle: Spot light cone half-angle in degrees.
        spot_penumbra: Width of the spot's soft edge in degrees.
    """

    mirror_reflectance: float = 0.6
    floor_blend: float = 0.7
    checker_repeat: float = 4.0
    spot_angle: float = 25.0
    spot_penumbra: float = 8.0


# =============================================================================
# Showcase Constants
# =============================================================================

FLOOR_DIFFUSE = (0.8, 0.8, 0.8)
MIRROR_DIFFUSE = (0.1, 0.1, 0.1)
CYLINDER_DIFFUSE = (0.2, 0.4, 0.9)
CONE_DIFFUSE = (0.9, 0.6, 0.1)
CUBE_DIFFUSE = (0.8, 0.15, 0.15)
PILLAR_DIFFUSE = (0.85, 0.85, 0.75)

CHECKER_SIZE = 64


def make_checker_pixels(size: int = CHECKER_SIZE, tiles: int = 2) -> npt.NDArray[np.float32]:
    """Black and white checkerboard of shape (size, size, 3)."""
    cell = max(size // tiles, 1)
    idx = np.arange(size) // cell
    board = ((idx[:, None] + idx[None, :]) % 2).astype(np.float32)
    return np.repeat(board[:, :, None], 3, axis=2)


# =============================================================================
# Showcase Factory
# =============================================================================


def _phong(diffuse: tuple[float, float, float], **kwargs) -> Material:
    ambient = tuple(0.2 * c for c in diffuse)
    return Material(
        ambient=ambient,
        diffuse=diffuse,
        specular=kwargs.pop("specular", (0.5, 0.5, 0.5)),
        shininess=kwargs.pop("shininess", 25.0),
        **kwargs,
    )


def create_showcase_scene(params: ShowcaseParams | None = None) -> Scene:
    """Create the demonstration scene.

    Args:
        params: Optional parameters. Defaults to ShowcaseParams().

    Returns:
        The built scene, with its checker texture registered in the scene's
        texture store.
    """
    if params is None:
        params = ShowcaseParams()

    textures = TextureStore()
    checker = textures.add_array("checker", make_checker_pixels())

    floor = SceneNode(
        name="floor",
        transformations=[
            Transformation.translate(0.0, -0.55, 0.0),
            Transformation.scale(8.0, 0.1, 8.0),
        ],
        primitives=[
            Primitive(
                PrimitiveType.CUBE,
                _phong(
                    FLOOR_DIFFUSE,
                    specular=(0.1, 0.1, 0.1),
                    shininess=5.0,
                    texture_map=TextureMap(
                        checker,
                        repeat_u=params.checker_repeat,
                        repeat_v=params.checker_repeat,
                        blend=params.floor_blend,
                    ),
                ),
            )
        ],
    )

    r = params.mirror_reflectance
    mirror = SceneNode(
        name="mirror",
        transformations=[Transformation.translate(0.0, 0.25, 0.0), Transformation.scale(1.5, 1.5, 1.5)],
        primitives=[
            Primitive(
                PrimitiveType.SPHERE,
                _phong(MIRROR_DIFFUSE, specular=(1.0, 1.0, 1.0), shininess=80.0, reflective=(r, r, r)),
            )
        ],
    )

    cylinder = SceneNode(
        name="cylinder",
        transformations=[Transformation.translate(-1.8, 0.0, 0.6)],
        primitives=[Primitive(PrimitiveType.CYLINDER, _phong(CYLINDER_DIFFUSE))],
    )

    cone = SceneNode(
        name="cone",
        transformations=[Transformation.translate(1.8, 0.0, 0.6)],
        primitives=[Primitive(PrimitiveType.CONE, _phong(CONE_DIFFUSE))],
    )

    cube = SceneNode(
        name="cube",
        transformations=[
            Transformation.translate(0.0, -0.2, 1.8),
            Transformation.rotate((0.0, 1.0, 0.0), 30.0),
            Transformation.scale(0.6, 0.6, 0.6),
        ],
        primitives=[Primitive(PrimitiveType.CUBE, _phong(CUBE_DIFFUSE, shininess=10.0))],
    )

    # Shared between two parents
    pillar_material = _phong(PILLAR_DIFFUSE)
    pillar = SceneNode(
        name="pillar",
        children=[
            SceneNode(
                transformations=[Transformation.translate(0.0, 0.5, 0.0), Transformation.scale(0.4, 2.0, 0.4)],
                primitives=[Primitive(PrimitiveType.CYLINDER, pillar_material)],
            ),
            SceneNode(
                transformations=[Transformation.translate(0.0, 1.75, 0.0), Transformation.scale(0.6, 0.6, 0.6)],
                primitives=[Primitive(PrimitiveType.SPHERE, pillar_material)],
            ),
        ],
    )
    left_pillar = SceneNode(
        name="left_pillar",
        transformations=[Transformation.translate(-2.5, 0.0, -2.0)],
        children=[pillar],
    )
    right_pillar = SceneNode(
        name="right_pillar",
        transformations=[Transformation.translate(2.5, 0.0, -2.0)],
        children=[pillar],
    )

    root = SceneNode(
        name="root",
        children=[floor, mirror, cylinder, cone, cube, left_pillar, right_pillar],
    )

    lights = [
        Light.point(position=(-4.0, 5.0, 4.0), color=(0.8, 0.8, 0.8), attenuation=(1.0, 0.02, 0.0)),
        Light.directional(direction=(-0.3, -1.0, -0.5), color=(0.3, 0.3, 0.35)),
        Light.spot(
            position=(3.0, 4.0, 3.0),
            direction=(-3.0, -4.5, -3.0),
            angle_degrees=params.spot_angle,
            penumbra_degrees=params.spot_penumbra,
            color=(1.0, 0.9, 0.7),
        ),
    ]

    camera = Camera.looking_at(position=(0.0, 2.5, 7.0), focus=(0.0, 0.3, 0.0), height_angle=40.0)

    return build_scene(
        root,
        lights=lights,
        camera=camera,
        global_lighting=GlobalLighting(ka=0.5, kd=0.8, ks=0.6),
        textures=textures,
    )
