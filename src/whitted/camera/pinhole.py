"""Pinhole camera ray generation.

The camera basis is built from the scene camera's position, look and up
vectors:
- w: opposite the look direction
- u: right in the image plane, normalize(up x w)
- v: up in the image plane, w x u

The view plane sits at unit distance in front of the eye and is
2 * tan(height_angle / 2) tall and aspect_ratio times as wide.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.camera.pinhole import setup_camera, get_ray
    >>> from src.whitted.scene.model import Camera
    >>> setup_camera(Camera(position=(0.0, 0.0, 3.0), look=(0.0, 0.0, -1.0)), aspect_ratio=1.0)
    >>> # inside a kernel: ray = get_ray(0.5, 0.5)  # through the image centre
"""

import math

import numpy as np
import taichi as ti
import taichi.math as tm

from src.whitted.core.errors import SceneError
from src.whitted.core.ray import Ray, make_ray, vec3
from src.whitted.scene.model import Camera

# Cross products shorter than this mean the up vector is parallel to look
DEGENERATE_BASIS = 1e-9

# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())

# View plane spanning vectors and its lower-left corner
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())


def camera_basis(camera: Camera) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Compute the (u, v, w) basis of a camera.

    Raises:
        SceneError: If the look vector is zero or parallel to up.
    """
    look = np.asarray(camera.look, dtype=np.float64)
    up = np.asarray(camera.up, dtype=np.float64)

    look_len = np.linalg.norm(look)
    if look_len < DEGENERATE_BASIS:
        raise SceneError("Camera look direction must be non-zero")
    w = -look / look_len

    u = np.cross(up, w)
    u_len = np.linalg.norm(u)
    if u_len < DEGENERATE_BASIS:
        raise SceneError(f"Camera up vector {camera.up} is parallel to look {camera.look}")
    u = u / u_len
    v = np.cross(w, u)
    return u, v, w


def setup_camera(camera: Camera, aspect_ratio: float) -> None:
    """Upload a camera's view plane to the device.

    Args:
        camera: Scene camera. Its own aspect_ratio, when set, overrides the
            argument.
        aspect_ratio: Image width / height.

    Raises:
        SceneError: If the camera basis is degenerate.
    """
    aspect = camera.aspect_ratio if camera.aspect_ratio is not None else aspect_ratio
    u, v, w = camera_basis(camera)
    origin = np.asarray(camera.position, dtype=np.float64)

    viewport_height = 2.0 * math.tan(math.radians(camera.height_angle) / 2.0)
    viewport_width = aspect * viewport_height

    horizontal = viewport_width * u
    vertical = viewport_height * v
    lower_left = origin - w - horizontal / 2.0 - vertical / 2.0

    _camera_origin[None] = origin.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()


@ti.func
def get_ray(s: ti.f32, t: ti.f32) -> Ray:
    """Primary ray through view plane coordinates (s, t).

    Args:
        s: Horizontal coordinate in [0, 1], left to right.
        t: Vertical coordinate in [0, 1], bottom to top.

    Returns:
        A ray from the eye with a unit direction.
    """
    origin = _camera_origin[None]
    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    return make_ray(origin, tm.normalize(target - origin))


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Current camera state, for debugging and tests."""
    fields = {
        "origin": _camera_origin,
        "u": _camera_u,
        "v": _camera_v,
        "w": _camera_w,
        "horizontal": _viewport_horizontal,
        "vertical": _viewport_vertical,
        "lower_left": _lower_left_corner,
    }
    info = {}
    for name, f in fields.items():
        value = f[None]
        info[name] = (float(value[0]), float(value[1]), float(value[2]))
    return info
