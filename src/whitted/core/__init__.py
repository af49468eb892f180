"""Core rendering module.

Components:
    ray: Ray data structure and vector helpers
    config: Render configuration
    errors: Exception hierarchy
    shading: Phong local illumination and shadow rays
    tracer: Depth-bounded mirror reflection loop
    sampler: Deterministic jittered supersampling
    dispatch: Row-band kernel dispatch and the output buffer
    renderer: RayTracer front end

Only the field-free modules are imported here. shading, tracer, sampler,
dispatch and renderer allocate Taichi fields at import time, so import them
directly once ti.init() has run:

    from src.whitted.core.renderer import RayTracer
"""

from .config import DEFAULT_MAX_RECURSION_DEPTH, MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, RenderConfig
from .errors import ConfigError, RenderError, SceneError, TextureLoadError
from .ray import (
    RAY_EPSILON,
    T_MAX,
    Ray,
    make_ray,
    near_zero,
    normalize,
    reflect,
    vec3,
)

__all__ = [
    # Ray module
    "Ray",
    "make_ray",
    "vec3",
    "normalize",
    "reflect",
    "near_zero",
    "RAY_EPSILON",
    "T_MAX",
    # Configuration
    "RenderConfig",
    "MAX_IMAGE_WIDTH",
    "MAX_IMAGE_HEIGHT",
    "DEFAULT_MAX_RECURSION_DEPTH",
    # Errors
    "RenderError",
    "ConfigError",
    "SceneError",
    "TextureLoadError",
]
