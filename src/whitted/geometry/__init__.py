"""Geometry module for canonical primitives and shape transforms.

Components:
    common: Local hit record, quadratic solver and shared cap/uv helpers
    sphere: Unit-diameter sphere centred at the origin
    cube: Axis-aligned unit cube centred at the origin
    cylinder: Capped cylinder of radius 0.5 spanning y in [-0.5, 0.5]
    cone: Cone with apex at y = 0.5 and a base cap at y = -0.5
    transform: Affine matrix builders and the cached ShapeTransform

Every primitive fits inside [-0.5, 0.5]^3 in object space. Intersection
routines are Taichi functions sharing one signature:

    hit = hit_<primitive>(origin, direction, t_min, t_max)  # LocalHit
"""

from .common import LocalHit, make_local_miss
from .cone import hit_cone
from .cube import hit_cube
from .cylinder import hit_cylinder
from .sphere import hit_sphere
from .transform import ShapeTransform, compose, identity, rotate, scale, translate

__all__ = [
    "LocalHit",
    "make_local_miss",
    "hit_sphere",
    "hit_cube",
    "hit_cylinder",
    "hit_cone",
    "ShapeTransform",
    "identity",
    "translate",
    "scale",
    "rotate",
    "compose",
]
