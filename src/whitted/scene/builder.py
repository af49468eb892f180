"""Scene construction: graph flattening and dictionary scene descriptions.

build_scene() walks a SceneNode graph depth-first, composing each node's
transform steps onto its parent's CTM, and emits one Shape per primitive
with a ShapeTransform built (and inverted) exactly once. Nodes may be shared
to instance an object several times; a node that is its own ancestor is an
error.

scene_from_dict() reads the dictionary form of a scene:

    {
        "global": {"ka": 0.5, "kd": 0.5, "ks": 0.5},
        "camera": {"position": [5, 5, 5], "look": [-1, -1, -1],   # or "focus"
                   "up": [0, 1, 0], "height_angle": 45},
        "lights": [{"type": "point", "color": [1, 1, 1], "position": [3, 3, 3],
                    "attenuation": [1, 0, 0]}],
        "objects": {
            "root": {
                "transforms": [{"translate": [0, 1, 0]},
                               {"rotate": [0, 1, 0], "angle": 30},
                               {"scale": [2, 2, 2]}],
                "primitives": [{"type": "sphere", "diffuse": [1, 0, 0],
                                "texture": {"file": "earth.png", "repeat_u": 1,
                                            "repeat_v": 1, "blend": 0.5}}],
                "children": [{"master": "lamp"}, {"primitives": [...]}]
            },
            "lamp": {...}
        }
    }

Every section is optional except objects.root. Missing values take the
defaults of the XML scene format this layout mirrors (camera at (5, 5, 5)
looking down (-1, -1, -1) with a 45 degree height angle, white point light at
(3, 3, 3), white diffuse material, global weights of 0.5).
"""

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt

from src.whitted.core.errors import SceneError
from src.whitted.geometry.transform import ShapeTransform, compose, identity, rotate, scale, translate
from src.whitted.scene.model import (
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
from src.whitted.scene.textures import TextureStore

logger = logging.getLogger(__name__)


# =============================================================================
# Graph Flattening
# =============================================================================


def transformation_matrix(step: Transformation) -> npt.NDArray[np.float64]:
    """4x4 matrix of a single transform step."""
    if step.kind == "translate":
        return translate(step.vector)
    if step.kind == "scale":
        return scale(step.vector)
    return rotate(step.vector, step.angle)


def node_matrix(node: SceneNode) -> npt.NDArray[np.float64]:
    """Composite matrix of a node's transform steps, in listed order."""
    return compose(*(transformation_matrix(step) for step in node.transformations))


def flatten(root: SceneNode) -> list[Shape]:
    """Flatten a scene graph into world-space shapes.

    Args:
        root: Root node of the graph.

    Returns:
        Shapes in depth-first order (a node's primitives before its children).

    Raises:
        SceneError: If the graph contains a cycle or a transform is singular.
    """
    shapes: list[Shape] = []
    on_path: set[int] = set()
    # Nodes are shared between instances; cache each node's local matrix
    local_matrices: dict[int, npt.NDArray[np.float64]] = {}

    def visit(node: SceneNode, parent_ctm: npt.NDArray[np.float64], path: list[str]) -> None:
        key = id(node)
        label = node.name or "<anonymous>"
        if key in on_path:
            cycle = " -> ".join([*path, label])
            raise SceneError(f"Scene graph contains a cycle: {cycle}")

        if key not in local_matrices:
            local_matrices[key] = node_matrix(node)
        ctm = parent_ctm @ local_matrices[key]

        on_path.add(key)
        for prim in node.primitives:
            try:
                transform = ShapeTransform.from_matrix(ctm)
            except SceneError as e:
                raise SceneError(f"In object '{' / '.join([*path, label])}': {e}") from e
            shapes.append(Shape(PrimitiveType(prim.primitive), transform, prim.material))
        for child in node.children:
            visit(child, ctm, [*path, label])
        on_path.discard(key)

    visit(root, identity(), [])
    logger.debug("Flattened scene graph into %d shapes", len(shapes))
    return shapes


def build_scene(
    root: SceneNode,
    lights: Iterable[Light],
    camera: Camera,
    global_lighting: GlobalLighting | None = None,
    textures: TextureStore | None = None,
) -> Scene:
    """Build a renderable scene from a scene graph.

    Args:
        root: Root of the scene graph.
        lights: Light sources.
        camera: The camera.
        global_lighting: Scene-wide Phong weights (defaults to 0.5 each).
        textures: Store owning the textures referenced by materials.

    Returns:
        The flattened scene.

    Raises:
        SceneError: If the graph is cyclic, a transform is singular, or a
            material references a texture from another store.
    """
    store = textures if textures is not None else TextureStore()
    shapes = flatten(root)

    owned = {id(t) for t in store}
    for shape in shapes:
        tex = shape.material.texture_map
        if tex is not None and id(tex.texture) not in owned:
            raise SceneError(f"Texture {tex.texture.path} does not belong to the scene's texture store")

    return Scene(
        shapes=shapes,
        lights=list(lights),
        camera=camera,
        global_lighting=global_lighting if global_lighting is not None else GlobalLighting(),
        textures=store,
    )


# =============================================================================
# Dictionary Scene Descriptions
# =============================================================================

_PRIMITIVE_NAMES = {
    "sphere": PrimitiveType.SPHERE,
    "cube": PrimitiveType.CUBE,
    "cylinder": PrimitiveType.CYLINDER,
    "cone": PrimitiveType.CONE,
}

_LIGHT_NAMES = {
    "point": LightType.POINT,
    "directional": LightType.DIRECTIONAL,
    "spot": LightType.SPOT,
}


def _check_keys(data: Mapping[str, Any], allowed: set[str], where: str) -> None:
    if not isinstance(data, Mapping):
        raise SceneError(f"{where} must be a mapping, got {type(data).__name__}")
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise SceneError(f"Unknown key(s) in {where}: {', '.join(unknown)}")


def _vec3(value: Any, where: str) -> tuple[float, float, float]:
    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) != 3:
        raise SceneError(f"{where} must be a list of 3 numbers, got {value!r}")
    try:
        return (float(value[0]), float(value[1]), float(value[2]))
    except (TypeError, ValueError) as e:
        raise SceneError(f"{where} must be a list of 3 numbers, got {value!r}") from e


def _number(value: Any, where: str) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise SceneError(f"{where} must be a number, got {value!r}") from e
    if not math.isfinite(result):
        raise SceneError(f"{where} must be finite, got {value!r}")
    return result


def _parse_global(data: Mapping[str, Any]) -> GlobalLighting:
    _check_keys(data, {"ka", "kd", "ks"}, "global")
    return GlobalLighting(
        ka=_number(data.get("ka", 0.5), "global.ka"),
        kd=_number(data.get("kd", 0.5), "global.kd"),
        ks=_number(data.get("ks", 0.5), "global.ks"),
    )


def _parse_camera(data: Mapping[str, Any]) -> Camera:
    _check_keys(data, {"position", "look", "focus", "up", "height_angle"}, "camera")
    if "look" in data and "focus" in data:
        raise SceneError("Camera cannot have both focus and look")

    defaults = Camera()
    position = _vec3(data.get("position", defaults.position), "camera.position")
    up = _vec3(data.get("up", defaults.up), "camera.up")
    height_angle = _number(data.get("height_angle", defaults.height_angle), "camera.height_angle")

    if "focus" in data:
        focus = _vec3(data["focus"], "camera.focus")
        return Camera.looking_at(position, focus, up=up, height_angle=height_angle)
    look = _vec3(data.get("look", defaults.look), "camera.look")
    return Camera(position=position, look=look, up=up, height_angle=height_angle)


def _parse_light(data: Mapping[str, Any], index: int) -> Light:
    where = f"lights[{index}]"
    _check_keys(
        data,
        {"type", "color", "intensity", "position", "direction", "attenuation", "angle", "penumbra"},
        where,
    )
    name = data.get("type", "point")
    if name not in _LIGHT_NAMES:
        raise SceneError(f"Unknown light type: {name!r}")
    kind = _LIGHT_NAMES[name]

    forbidden = {
        LightType.POINT: ("direction", "angle", "penumbra"),
        LightType.DIRECTIONAL: ("position", "angle", "penumbra"),
        LightType.SPOT: (),
    }[kind]
    for key in forbidden:
        if key in data:
            raise SceneError(f"{name.capitalize()} light cannot have {key} ({where})")

    color = _vec3(data.get("color", (1.0, 1.0, 1.0)), f"{where}.color")
    intensity = _number(data.get("intensity", 1.0), f"{where}.intensity")
    attenuation = _vec3(data.get("attenuation", (1.0, 0.0, 0.0)), f"{where}.attenuation")
    position = _vec3(data.get("position", (3.0, 3.0, 3.0)), f"{where}.position")
    direction = _vec3(data.get("direction", (0.0, 0.0, 0.0)), f"{where}.direction")

    if kind == LightType.POINT:
        return Light.point(position, color=color, attenuation=attenuation, intensity=intensity)
    if kind == LightType.DIRECTIONAL:
        return Light.directional(direction, color=color, intensity=intensity)
    return Light.spot(
        position,
        direction,
        angle_degrees=_number(data.get("angle", 0.0), f"{where}.angle"),
        penumbra_degrees=_number(data.get("penumbra", 0.0), f"{where}.penumbra"),
        color=color,
        attenuation=attenuation,
        intensity=intensity,
    )


def _parse_texture(data: Mapping[str, Any], store: TextureStore, where: str) -> TextureMap:
    _check_keys(data, {"file", "repeat_u", "repeat_v", "blend"}, where)
    if "file" not in data:
        raise SceneError(f"{where} must name a file")
    return TextureMap(
        texture=store.load_or_get(str(data["file"])),
        repeat_u=_number(data.get("repeat_u", 1.0), f"{where}.repeat_u"),
        repeat_v=_number(data.get("repeat_v", 1.0), f"{where}.repeat_v"),
        blend=_number(data.get("blend", 0.0), f"{where}.blend"),
    )


def _parse_primitive(data: Mapping[str, Any], store: TextureStore, where: str) -> Primitive:
    _check_keys(
        data,
        {"type", "ambient", "diffuse", "specular", "reflective", "shininess", "texture"},
        where,
    )
    name = data.get("type")
    if name not in _PRIMITIVE_NAMES:
        raise SceneError(f"Unsupported primitive type {name!r} ({where})")

    texture_map = None
    if "texture" in data:
        texture_map = _parse_texture(data["texture"], store, f"{where}.texture")

    zero = (0.0, 0.0, 0.0)
    material = Material(
        ambient=_vec3(data.get("ambient", zero), f"{where}.ambient"),
        diffuse=_vec3(data.get("diffuse", (1.0, 1.0, 1.0)), f"{where}.diffuse"),
        specular=_vec3(data.get("specular", zero), f"{where}.specular"),
        reflective=_vec3(data.get("reflective", zero), f"{where}.reflective"),
        shininess=_number(data.get("shininess", 0.0), f"{where}.shininess"),
        texture_map=texture_map,
    )
    return Primitive(_PRIMITIVE_NAMES[name], material)


def _parse_transform(data: Mapping[str, Any], where: str) -> Transformation:
    if not isinstance(data, Mapping):
        raise SceneError(f"{where} must be a mapping, got {type(data).__name__}")
    if "translate" in data:
        _check_keys(data, {"translate"}, where)
        return Transformation.translate(*_vec3(data["translate"], where))
    if "scale" in data:
        _check_keys(data, {"scale"}, where)
        return Transformation.scale(*_vec3(data["scale"], where))
    if "rotate" in data:
        _check_keys(data, {"rotate", "angle"}, where)
        angle = _number(data.get("angle", 0.0), f"{where}.angle")
        return Transformation.rotate(_vec3(data["rotate"], where), angle)
    raise SceneError(f"{where} must be one of translate, scale or rotate")


def _fill_node(
    node: SceneNode,
    data: Mapping[str, Any],
    named: dict[str, SceneNode],
    store: TextureStore,
    where: str,
) -> None:
    _check_keys(data, {"transforms", "primitives", "children"}, where)
    for i, step in enumerate(data.get("transforms", [])):
        node.transformations.append(_parse_transform(step, f"{where}.transforms[{i}]"))
    for i, prim in enumerate(data.get("primitives", [])):
        node.primitives.append(_parse_primitive(prim, store, f"{where}.primitives[{i}]"))
    for i, child in enumerate(data.get("children", [])):
        child_where = f"{where}.children[{i}]"
        if isinstance(child, Mapping) and "master" in child:
            _check_keys(child, {"master"}, child_where)
            master = child["master"]
            if master not in named:
                raise SceneError(f"Unknown master object {master!r} ({child_where})")
            node.children.append(named[master])
        else:
            child_node = SceneNode()
            _fill_node(child_node, child, named, store, child_where)
            node.children.append(child_node)


def scene_from_dict(
    data: Mapping[str, Any],
    texture_dir: str | Path | None = None,
    store: TextureStore | None = None,
) -> Scene:
    """Build a scene from its dictionary description.

    Args:
        data: Scene description (see module docstring).
        texture_dir: Directory texture file names are relative to. Ignored
            when `store` is given.
        store: Texture store to load into. A new one is created by default.

    Returns:
        The built scene. Every texture is loaded before this returns.

    Raises:
        SceneError: If the description is malformed.
        TextureLoadError: If a texture file is missing or unreadable.
    """
    _check_keys(data, {"global", "camera", "lights", "objects"}, "scene")
    textures = store if store is not None else TextureStore(base_dir=texture_dir)

    objects = data.get("objects")
    if not isinstance(objects, Mapping) or "root" not in objects:
        raise SceneError("Scene must have a root object")

    # Create every named node first so masters may refer to any object
    named = {name: SceneNode(name=name) for name in objects}
    for name, body in objects.items():
        _fill_node(named[name], body, named, textures, f"objects.{name}")

    lights_data = data.get("lights", [])
    if not isinstance(lights_data, Sequence):
        raise SceneError("lights must be a list")

    return build_scene(
        named["root"],
        lights=[_parse_light(light, i) for i, light in enumerate(lights_data)],
        camera=_parse_camera(data.get("camera", {})),
        global_lighting=_parse_global(data.get("global", {})),
        textures=textures,
    )
