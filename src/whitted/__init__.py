"""Taichi-based Whitted-style ray tracer.

This package renders static scenes built from canonical primitives using
recursive (iterative, depth-bounded) ray tracing, with support for:
- Phong local illumination (ambient, diffuse, specular)
- Point, directional and spot lights with distance attenuation
- Shadow rays and mirror reflections
- Texture-mapped diffuse colour
- Deterministic jittered supersampling
- Row-band parallel dispatch on the Taichi runtime

Subpackages:
    core: Ray utilities, configuration, errors, shading, tracing, sampling and dispatch
    geometry: Canonical primitives and the per-shape transform cache
    materials: Phong material storage
    scene: Scene model, builders, textures, lights and scene-level intersection
    camera: Pinhole camera ray generation
    output: Image conversion and export utilities
"""

__version__ = "0.1.0"
