"""Pytest configuration for raytracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene data and reset render switches around each test.

    This ensures tests are isolated from each other.
    """
    # Import here so the fields are created after ti.init()
    from src.whitted.core.dispatch import reset_render_target
    from src.whitted.core.shading import configure_shading, set_global_lighting
    from src.whitted.core.tracer import configure_tracer
    from src.whitted.materials.phong import clear_materials
    from src.whitted.scene.intersection import clear_scene
    from src.whitted.scene.lights import clear_lights
    from src.whitted.scene.texture_atlas import clear_textures

    def _clear_all():
        clear_scene()
        clear_materials()
        clear_lights()
        clear_textures()
        reset_render_target()
        configure_shading(enable_shadows=False, enable_texture=False)
        configure_tracer(enable_reflections=False, max_recursion_depth=4)
        set_global_lighting(0.5, 0.5, 0.5)

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def make_shape():
    """Factory for Shape objects placed by a sequence of matrices.

    Matrices are composed left to right, so the last one is applied to the
    canonical primitive first.
    """
    from src.whitted.geometry.transform import ShapeTransform, compose
    from src.whitted.scene.model import Material, PrimitiveType, Shape

    def _make(primitive, material=None, *matrices):
        return Shape(
            PrimitiveType(primitive),
            ShapeTransform.from_matrix(compose(*matrices)),
            material if material is not None else Material(),
        )

    return _make


@pytest.fixture
def upload_scene():
    """Upload shapes and lights to the device and return the SceneManager.

    Global lighting defaults to ka = kd = ks = 1 so expected colours can be
    read straight off the materials.
    """
    from src.whitted.scene.manager import SceneManager
    from src.whitted.scene.model import Camera, GlobalLighting, Scene
    from src.whitted.scene.textures import TextureStore

    def _upload(shapes, lights=(), global_lighting=None, textures=None, camera=None):
        scene = Scene(
            shapes=list(shapes),
            lights=list(lights),
            camera=camera if camera is not None else Camera(),
            global_lighting=global_lighting if global_lighting is not None else GlobalLighting(1.0, 1.0, 1.0),
            textures=textures if textures is not None else TextureStore(),
        )
        manager = SceneManager()
        manager.load(scene)
        return manager

    return _upload
