"""In-memory scene description.

These plain dataclasses are what scene builders produce and what the
renderer consumes. A scene is either assembled directly from Shape objects
(each carrying a cached ShapeTransform) or built from a SceneNode tree with
scene.builder.build_scene(), which flattens the hierarchy and composes the
transforms.

Example:
    >>> from src.whitted.scene.model import Camera, Light, Material, PrimitiveType, Scene, Shape
    >>> from src.whitted.geometry.transform import ShapeTransform
    >>> scene = Scene(
    ...     shapes=[Shape(PrimitiveType.SPHERE, ShapeTransform.identity(), Material())],
    ...     lights=[Light.point(position=(3.0, 3.0, 3.0))],
    ...     camera=Camera(position=(0.0, 0.0, 3.0), look=(0.0, 0.0, -1.0)),
    ... )
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntEnum

from src.whitted.core.errors import SceneError
from src.whitted.geometry.transform import ShapeTransform
from src.whitted.scene.textures import Texture, TextureStore

Color = tuple[float, float, float]
Vector = tuple[float, float, float]

BLACK: Color = (0.0, 0.0, 0.0)
WHITE: Color = (1.0, 1.0, 1.0)


class PrimitiveType(IntEnum):
    """Canonical primitive kinds, as stored in the shape type field."""

    SPHERE = 0
    CUBE = 1
    CYLINDER = 2
    CONE = 3


class LightType(IntEnum):
    """Light source kinds, as stored in the light type field."""

    POINT = 0
    DIRECTIONAL = 1
    SPOT = 2


def _as_vector(value: Sequence[float], name: str) -> Vector:
    if len(value) != 3:
        raise SceneError(f"{name} must have 3 components, got {len(value)}")
    result = (float(value[0]), float(value[1]), float(value[2]))
    if not all(math.isfinite(c) for c in result):
        raise SceneError(f"{name} must be finite, got {result}")
    return result


def _is_zero(v: Vector) -> bool:
    return v[0] * v[0] + v[1] * v[1] + v[2] * v[2] < 1e-16


@dataclass(frozen=True)
class TextureMap:
    """A texture applied to a material's diffuse term.

    Attributes:
        texture: Shared handle owned by the scene's TextureStore.
        repeat_u: Number of texture repetitions across u.
        repeat_v: Number of texture repetitions across v.
        blend: Weight of the texture colour against the diffuse colour, in
            [0, 1]. A blend of 1 replaces the diffuse colour entirely.
    """

    texture: Texture
    repeat_u: float = 1.0
    repeat_v: float = 1.0
    blend: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.blend <= 1.0:
            raise SceneError(f"Texture blend must be in [0, 1], got {self.blend}")
        if self.repeat_u <= 0.0 or self.repeat_v <= 0.0:
            raise SceneError(
                f"Texture repeat must be positive, got ({self.repeat_u}, {self.repeat_v})"
            )


@dataclass(frozen=True, eq=False)
class Material:
    """Phong material.

    Identity matters: shapes that share one Material instance share one
    material slot on the device.

    Attributes:
        ambient: Ambient colour.
        diffuse: Diffuse colour.
        specular: Specular colour.
        shininess: Phong exponent.
        reflective: Per-channel mirror reflectance in [0, 1].
        texture_map: Optional texture for the diffuse term.
    """

    ambient: Color = BLACK
    diffuse: Color = WHITE
    specular: Color = BLACK
    shininess: float = 0.0
    reflective: Color = BLACK
    texture_map: TextureMap | None = None

    def __post_init__(self) -> None:
        for name in ("ambient", "diffuse", "specular", "reflective"):
            object.__setattr__(self, name, _as_vector(getattr(self, name), name))
        for i, component in enumerate(self.reflective):
            if not 0.0 <= component <= 1.0:
                raise SceneError(f"Reflective component {i} = {component} is outside [0, 1]")
        if self.shininess < 0.0 or not math.isfinite(self.shininess):
            raise SceneError(f"Shininess must be non-negative, got {self.shininess}")

    @property
    def is_reflective(self) -> bool:
        return any(c > 0.0 for c in self.reflective)


@dataclass(frozen=True)
class Light:
    """A light source.

    Use the point(), directional() and spot() constructors rather than
    building instances directly.

    Attributes:
        light_type: Kind of light.
        color: Light colour.
        intensity: Scalar multiplier on the colour.
        position: Position of point and spot lights.
        direction: Travel direction of directional and spot lights.
        attenuation: Coefficients (a, b, c) of 1 / (a + b*d + c*d^2).
        angle: Spot cone half-angle in radians.
        penumbra: Width in radians of the spot's soft edge.
    """

    light_type: LightType
    color: Color = WHITE
    intensity: float = 1.0
    position: Vector = (3.0, 3.0, 3.0)
    direction: Vector = (0.0, 0.0, 0.0)
    attenuation: Vector = (1.0, 0.0, 0.0)
    angle: float = 0.0
    penumbra: float = 0.0

    def __post_init__(self) -> None:
        for name in ("color", "position", "direction", "attenuation"):
            object.__setattr__(self, name, _as_vector(getattr(self, name), name))
        if self.intensity < 0.0:
            raise SceneError(f"Light intensity must be non-negative, got {self.intensity}")
        if self.light_type != LightType.POINT and _is_zero(self.direction):
            raise SceneError(f"{self.light_type.name.lower()} light needs a non-zero direction")
        if self.light_type == LightType.SPOT:
            if self.angle < 0.0 or self.penumbra < 0.0:
                raise SceneError("Spot light angle and penumbra must be non-negative")
            if self.penumbra > self.angle:
                raise SceneError(
                    f"Spot light penumbra ({self.penumbra}) exceeds its angle ({self.angle})"
                )

    @classmethod
    def point(
        cls,
        position: Sequence[float] = (3.0, 3.0, 3.0),
        color: Sequence[float] = WHITE,
        attenuation: Sequence[float] = (1.0, 0.0, 0.0),
        intensity: float = 1.0,
    ) -> "Light":
        return cls(
            LightType.POINT,
            color=tuple(color),
            intensity=intensity,
            position=tuple(position),
            attenuation=tuple(attenuation),
        )

    @classmethod
    def directional(
        cls,
        direction: Sequence[float],
        color: Sequence[float] = WHITE,
        intensity: float = 1.0,
    ) -> "Light":
        return cls(
            LightType.DIRECTIONAL,
            color=tuple(color),
            intensity=intensity,
            direction=tuple(direction),
        )

    @classmethod
    def spot(
        cls,
        position: Sequence[float],
        direction: Sequence[float],
        angle_degrees: float,
        penumbra_degrees: float = 0.0,
        color: Sequence[float] = WHITE,
        attenuation: Sequence[float] = (1.0, 0.0, 0.0),
        intensity: float = 1.0,
    ) -> "Light":
        return cls(
            LightType.SPOT,
            color=tuple(color),
            intensity=intensity,
            position=tuple(position),
            direction=tuple(direction),
            attenuation=tuple(attenuation),
            angle=math.radians(angle_degrees),
            penumbra=math.radians(penumbra_degrees),
        )


@dataclass(frozen=True)
class Camera:
    """Pinhole camera.

    Attributes:
        position: Eye position.
        look: Viewing direction (need not be unit length).
        up: Approximate up direction.
        height_angle: Vertical field of view in degrees.
        aspect_ratio: Width / height of the view plane. None means use the
            output image's aspect ratio.
    """

    position: Vector = (5.0, 5.0, 5.0)
    look: Vector = (-1.0, -1.0, -1.0)
    up: Vector = (0.0, 1.0, 0.0)
    height_angle: float = 45.0
    aspect_ratio: float | None = None

    def __post_init__(self) -> None:
        for name in ("position", "look", "up"):
            object.__setattr__(self, name, _as_vector(getattr(self, name), name))
        if not 0.0 < self.height_angle < 180.0:
            raise SceneError(f"Camera height angle must be in (0, 180), got {self.height_angle}")
        if self.aspect_ratio is not None and self.aspect_ratio <= 0.0:
            raise SceneError(f"Camera aspect ratio must be positive, got {self.aspect_ratio}")

    @classmethod
    def looking_at(
        cls,
        position: Sequence[float],
        focus: Sequence[float],
        up: Sequence[float] = (0.0, 1.0, 0.0),
        height_angle: float = 45.0,
    ) -> "Camera":
        """Camera at `position` pointed at the `focus` point."""
        look = tuple(f - p for f, p in zip(focus, position))
        return cls(position=tuple(position), look=look, up=tuple(up), height_angle=height_angle)


@dataclass(frozen=True)
class GlobalLighting:
    """Scene-wide weights for the ambient, diffuse and specular terms."""

    ka: float = 0.5
    kd: float = 0.5
    ks: float = 0.5


@dataclass(frozen=True)
class Shape:
    """A primitive placed in the world.

    Attributes:
        primitive: Canonical primitive kind.
        transform: Cached object-to-world transform.
        material: Surface material.
    """

    primitive: PrimitiveType
    transform: ShapeTransform
    material: Material


@dataclass(frozen=True)
class Transformation:
    """One step of a transform block.

    Attributes:
        kind: "translate", "scale" or "rotate".
        vector: Offset, scale factors or rotation axis.
        angle: Rotation angle in degrees (rotate only).
    """

    kind: str
    vector: Vector
    angle: float = 0.0

    def __post_init__(self) -> None:
        if self.kind not in ("translate", "scale", "rotate"):
            raise SceneError(f"Unknown transformation: {self.kind}")
        object.__setattr__(self, "vector", _as_vector(self.vector, self.kind))

    @classmethod
    def translate(cls, x: float, y: float, z: float) -> "Transformation":
        return cls("translate", (x, y, z))

    @classmethod
    def scale(cls, x: float, y: float, z: float) -> "Transformation":
        return cls("scale", (x, y, z))

    @classmethod
    def rotate(cls, axis: Sequence[float], angle_degrees: float) -> "Transformation":
        return cls("rotate", tuple(axis), angle_degrees)


@dataclass(eq=False)
class Primitive:
    """A primitive attached to a scene node, in the node's local space."""

    primitive: PrimitiveType
    material: Material = field(default_factory=Material)


@dataclass(eq=False)
class SceneNode:
    """A node of the scene graph.

    The node's transformations apply, in order, to its primitives and to
    every child. Children may be shared between parents to instance an
    object several times.

    Attributes:
        name: Optional label used in error messages.
        transformations: Transform steps applied to everything below.
        primitives: Primitives defined in this node's space.
        children: Child nodes.
    """

    name: str = ""
    transformations: list[Transformation] = field(default_factory=list)
    primitives: list[Primitive] = field(default_factory=list)
    children: list["SceneNode"] = field(default_factory=list)


@dataclass
class Scene:
    """A renderable scene.

    Attributes:
        shapes: Shapes in scene order. On equal hit distances the earlier
            shape wins.
        lights: Light sources.
        camera: The camera.
        global_lighting: Scene-wide Phong weights.
        textures: Registry owning every texture referenced by a material.
    """

    shapes: list[Shape]
    lights: list[Light]
    camera: Camera
    global_lighting: GlobalLighting = field(default_factory=GlobalLighting)
    textures: TextureStore = field(default_factory=TextureStore)

    def materials(self) -> list[Material]:
        """Distinct materials in first-use order."""
        seen: dict[int, Material] = {}
        for shape in self.shapes:
            seen.setdefault(id(shape.material), shape.material)
        return list(seen.values())
