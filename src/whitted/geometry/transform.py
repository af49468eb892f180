"""Affine transforms and the per-shape transform cache.

Shapes are defined in canonical space and placed in the world by a
cumulative transform matrix (CTM) composed from the nested transform nodes of
the scene graph. The CTM is inverted exactly once, when the ShapeTransform is
built; the inverse maps world rays into canonical space and its transpose
maps canonical normals back to world space. Nothing in the render path
inverts a matrix.

Matrix construction and inversion run on the Python side with NumPy. The
Taichi functions at the bottom apply the cached 4x4 matrices inside kernels.

Example:
    >>> from src.whitted.geometry.transform import ShapeTransform, compose, rotate, scale
    >>> ctm = compose(rotate((0.0, 1.0, 0.0), 45.0), scale((2.0, 1.0, 1.0)))
    >>> xf = ShapeTransform.from_matrix(ctm)
    >>> xf.inverse @ ctm  # identity
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.whitted.core.errors import SceneError

vec3 = tm.vec3
vec4 = tm.vec4

# Transforms whose linear part has a smaller determinant are treated as singular
SINGULAR_DETERMINANT = 1e-12


# =============================================================================
# Matrix Construction (Python side)
# =============================================================================


def identity() -> npt.NDArray[np.float64]:
    return np.eye(4, dtype=np.float64)


def translate(offset: Sequence[float]) -> npt.NDArray[np.float64]:
    """Translation matrix for the given (x, y, z) offset."""
    m = identity()
    m[:3, 3] = np.asarray(offset, dtype=np.float64)
    return m


def scale(factors: Sequence[float]) -> npt.NDArray[np.float64]:
    """Scale matrix for the given per-axis factors."""
    m = identity()
    m[0, 0], m[1, 1], m[2, 2] = (float(f) for f in factors)
    return m


def rotate(axis: Sequence[float], angle_degrees: float) -> npt.NDArray[np.float64]:
    """Rotation about an arbitrary axis (Rodrigues' formula).

    Args:
        axis: Rotation axis; normalized internally.
        angle_degrees: Counter-clockwise angle in degrees.

    Returns:
        The 4x4 rotation matrix.

    Raises:
        SceneError: If the axis has zero length.
    """
    a = np.asarray(axis, dtype=np.float64)
    norm = np.linalg.norm(a)
    if not np.isfinite(norm) or norm < 1e-12:
        raise SceneError(f"Rotation axis must be non-zero, got {tuple(axis)}")
    x, y, z = a / norm
    theta = math.radians(angle_degrees)
    c, s = math.cos(theta), math.sin(theta)
    t = 1.0 - c

    m = identity()
    m[:3, :3] = [
        [t * x * x + c, t * x * y - s * z, t * x * z + s * y],
        [t * x * y + s * z, t * y * y + c, t * y * z - s * x],
        [t * x * z - s * y, t * y * z + s * x, t * z * z + c],
    ]
    return m


def compose(*matrices: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Multiply matrices left to right, so the last one applies first to points."""
    result = identity()
    for m in matrices:
        result = result @ m
    return result


# =============================================================================
# Transform Cache
# =============================================================================


@dataclass(frozen=True, eq=False)
class ShapeTransform:
    """A shape's world transform with its inverse and inverse-transpose.

    Build instances with from_matrix(), which validates the matrix and
    computes the inverse once.

    Attributes:
        matrix: Object-to-world CTM.
        inverse: World-to-object matrix used to transform rays.
        inverse_transpose: Matrix used to transform normals to world space.
    """

    matrix: npt.NDArray[np.float64]
    inverse: npt.NDArray[np.float64]
    inverse_transpose: npt.NDArray[np.float64]

    @classmethod
    def from_matrix(cls, matrix: npt.ArrayLike) -> "ShapeTransform":
        """Validate a CTM and cache its inverse.

        Args:
            matrix: A 4x4 affine matrix (bottom row 0, 0, 0, 1).

        Returns:
            The cached transform.

        Raises:
            SceneError: If the matrix is not a finite, invertible 4x4 affine
                transform.
        """
        m = np.array(matrix, dtype=np.float64)
        if m.shape != (4, 4):
            raise SceneError(f"Transform must be 4x4, got shape {m.shape}")
        if not np.all(np.isfinite(m)):
            raise SceneError("Transform contains non-finite values")
        if not np.allclose(m[3], (0.0, 0.0, 0.0, 1.0)):
            raise SceneError(f"Transform is not affine, bottom row is {m[3].tolist()}")

        det = float(np.linalg.det(m[:3, :3]))
        if abs(det) < SINGULAR_DETERMINANT:
            raise SceneError(f"Transform is singular (determinant {det:.3g})")

        inverse = np.linalg.inv(m)
        inverse.setflags(write=False)
        inverse_transpose = inverse.T.copy()
        inverse_transpose.setflags(write=False)
        m.setflags(write=False)
        return cls(matrix=m, inverse=inverse, inverse_transpose=inverse_transpose)

    @classmethod
    def identity(cls) -> "ShapeTransform":
        return cls.from_matrix(identity())

    def to_world_point(self, point: Sequence[float]) -> npt.NDArray[np.float64]:
        """Map a canonical-space point to world space."""
        p = np.append(np.asarray(point, dtype=np.float64), 1.0)
        return (self.matrix @ p)[:3]

    def to_world_normal(self, normal: Sequence[float]) -> npt.NDArray[np.float64]:
        """Map a canonical-space normal to a unit world-space normal."""
        n = np.append(np.asarray(normal, dtype=np.float64), 0.0)
        world = (self.inverse_transpose @ n)[:3]
        return world / np.linalg.norm(world)


# =============================================================================
# Kernel-side Application
# =============================================================================


@ti.func
def transform_point(m: tm.mat4, p: vec3) -> vec3:
    """Apply an affine 4x4 matrix to a point (w = 1)."""
    r = m @ vec4(p.x, p.y, p.z, 1.0)
    return vec3(r.x, r.y, r.z)


@ti.func
def transform_direction(m: tm.mat4, d: vec3) -> vec3:
    """Apply an affine 4x4 matrix to a direction (w = 0), without normalizing."""
    r = m @ vec4(d.x, d.y, d.z, 0.0)
    return vec3(r.x, r.y, r.z)


@ti.func
def transform_normal(inverse_transpose: tm.mat4, n: vec3) -> vec3:
    """Map a local normal to world space and normalize it."""
    r = inverse_transpose @ vec4(n.x, n.y, n.z, 0.0)
    return tm.normalize(vec3(r.x, r.y, r.z))
