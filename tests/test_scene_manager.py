"""Unit tests for the SceneManager.

Tests cover:
- Uploading a scene and counting what was registered
- Material deduplication by identity
- Reloading and clearing
- Building from a dictionary description
- Storage limits
- Device-side material and shape lookups
"""

import numpy as np
import pytest
import taichi as ti


@pytest.fixture
def fresh_scene():
    """Create a fresh SceneManager for each test."""
    from src.whitted.scene.manager import SceneManager

    manager = SceneManager()
    yield manager
    manager.clear()


class TestLoad:
    """Tests for SceneManager.load()."""

    def test_showcase_counts(self, fresh_scene):
        """Test the showcase scene registers every shape, light and texture."""
        from src.whitted.scene.intersection import get_shape_count
        from src.whitted.scene.showcase import create_showcase_scene
        from src.whitted.scene.texture_atlas import get_texture_count

        fresh_scene.load(create_showcase_scene())
        assert fresh_scene.get_shape_count() == 9
        assert get_shape_count() == 9
        # Both pillar instances share one material across two primitives
        assert fresh_scene.get_material_count() == 6
        assert fresh_scene.get_light_count() == 3
        assert get_texture_count() == 1

    def test_shared_material_registered_once(self, fresh_scene, make_shape):
        """Test shapes sharing a Material share a material id."""
        from src.whitted.scene.model import Camera, Material, PrimitiveType, Scene

        shared = Material(diffuse=(1.0, 0.0, 0.0))
        other = Material(diffuse=(1.0, 0.0, 0.0))
        scene = Scene(
            shapes=[
                make_shape(PrimitiveType.SPHERE, shared),
                make_shape(PrimitiveType.CUBE, other),
                make_shape(PrimitiveType.CONE, shared),
            ],
            lights=[],
            camera=Camera(),
        )
        fresh_scene.load(scene)

        ids = [info.material_id for info in fresh_scene.shapes]
        assert ids == [0, 1, 0]
        assert fresh_scene.get_material_info(0).material is shared
        assert fresh_scene.get_material_info(1).material is other
        assert fresh_scene.get_material_info(2) is None

    def test_texture_from_another_store_rejected(self, fresh_scene, make_shape):
        """Test a directly built Scene cannot use a texture it does not own."""
        from src.whitted.core.errors import SceneError
        from src.whitted.scene.model import Camera, Material, PrimitiveType, Scene, TextureMap
        from src.whitted.scene.textures import TextureStore

        owned = TextureStore()
        owned.add_array("black", np.zeros((4, 4, 3)))
        white = TextureStore().add_array("white", np.ones((4, 4, 3)))
        mat = Material(texture_map=TextureMap(white, blend=1.0))
        scene = Scene(
            shapes=[make_shape(PrimitiveType.SPHERE, mat)],
            lights=[],
            camera=Camera(),
            textures=owned,
        )

        with pytest.raises(SceneError, match="does not belong"):
            fresh_scene.load(scene)
        assert fresh_scene.get_shape_count() == 0
        assert fresh_scene.scene is None

    def test_texture_in_own_store_accepted(self, fresh_scene, make_shape):
        """Test textures registered in the scene's store upload normally."""
        from src.whitted.scene.model import Camera, Material, PrimitiveType, Scene, TextureMap
        from src.whitted.scene.texture_atlas import get_texture_count
        from src.whitted.scene.textures import TextureStore

        store = TextureStore()
        white = store.add_array("white", np.ones((4, 4, 3)))
        mat = Material(texture_map=TextureMap(white, blend=1.0))
        fresh_scene.load(
            Scene(shapes=[make_shape(PrimitiveType.SPHERE, mat)], lights=[], camera=Camera(), textures=store)
        )
        assert fresh_scene.get_shape_count() == 1
        assert get_texture_count() == 1

    def test_material_data_on_device(self, fresh_scene, make_shape):
        """Test material colours are readable from kernels."""
        from src.whitted.materials.phong import get_diffuse, get_reflective, get_shininess
        from src.whitted.scene.model import Camera, Material, PrimitiveType, Scene

        mat = Material(diffuse=(0.1, 0.2, 0.3), reflective=(0.5, 0.0, 1.0), shininess=12.0)
        fresh_scene.load(Scene(shapes=[make_shape(PrimitiveType.SPHERE, mat)], lights=[], camera=Camera()))

        diffuse = ti.Vector.field(3, dtype=ti.f32, shape=())
        reflective = ti.Vector.field(3, dtype=ti.f32, shape=())
        shininess = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            diffuse[None] = get_diffuse(0)
            reflective[None] = get_reflective(0)
            shininess[None] = get_shininess(0)

        test_kernel()
        assert np.allclose(diffuse[None].to_numpy(), [0.1, 0.2, 0.3], atol=1e-6)
        assert np.allclose(reflective[None].to_numpy(), [0.5, 0.0, 1.0], atol=1e-6)
        assert abs(shininess[None] - 12.0) < 1e-6

    def test_global_lighting_uploaded(self, fresh_scene):
        """Test the scene's Phong weights become the active weights."""
        from src.whitted.core.shading import get_global_lighting
        from src.whitted.scene.model import Camera, GlobalLighting, Scene

        fresh_scene.load(Scene(shapes=[], lights=[], camera=Camera(), global_lighting=GlobalLighting(0.1, 0.2, 0.3)))
        assert np.allclose(get_global_lighting(), (0.1, 0.2, 0.3), atol=1e-6)

    def test_reload_replaces_scene(self, fresh_scene):
        """Test loading a second scene discards the first."""
        from src.whitted.scene.intersection import get_shape_count
        from src.whitted.scene.model import Camera, Scene
        from src.whitted.scene.showcase import create_showcase_scene
        from src.whitted.scene.texture_atlas import get_texture_count

        fresh_scene.load(create_showcase_scene())
        empty = Scene(shapes=[], lights=[], camera=Camera())
        fresh_scene.load(empty)

        assert fresh_scene.get_shape_count() == 0
        assert fresh_scene.get_material_count() == 0
        assert fresh_scene.get_light_count() == 0
        assert get_shape_count() == 0
        assert get_texture_count() == 0
        assert fresh_scene.scene is empty

    def test_clear(self, fresh_scene):
        """Test clear() empties the device storage."""
        from src.whitted.scene.lights import get_light_count
        from src.whitted.scene.showcase import create_showcase_scene

        fresh_scene.load(create_showcase_scene())
        fresh_scene.clear()
        assert fresh_scene.get_shape_count() == 0
        assert get_light_count() == 0
        assert fresh_scene.scene is None


class TestLoadDict:
    """Tests for SceneManager.load_dict()."""

    def test_load_dict(self, fresh_scene):
        """Test a description is built and uploaded in one step."""
        data = {
            "lights": [{"position": [0, 5, 0]}],
            "objects": {
                "root": {"children": [{"master": "ball"}, {"master": "ball"}]},
                "ball": {"primitives": [{"type": "sphere", "diffuse": [1, 0, 0]}]},
            },
        }
        scene = fresh_scene.load_dict(data)
        assert len(scene.shapes) == 2
        assert fresh_scene.get_shape_count() == 2
        assert fresh_scene.get_material_count() == 1
        assert fresh_scene.get_light_count() == 1

    def test_load_dict_invalid(self, fresh_scene):
        """Test invalid descriptions raise SceneError before uploading."""
        from src.whitted.core.errors import SceneError

        with pytest.raises(SceneError):
            fresh_scene.load_dict({"objects": {"root": {"primitives": [{"type": "teapot"}]}}})
        assert fresh_scene.get_shape_count() == 0


class TestLimits:
    """Tests for storage limits."""

    def test_maxima(self):
        """Test the reported maxima match the storage modules."""
        from src.whitted.materials.phong import MAX_MATERIALS
        from src.whitted.scene.intersection import MAX_SHAPES
        from src.whitted.scene.lights import MAX_LIGHTS
        from src.whitted.scene.manager import SceneManager
        from src.whitted.scene.texture_atlas import MAX_TEXTURES

        assert SceneManager.get_max_shapes() == MAX_SHAPES
        assert SceneManager.get_max_materials() == MAX_MATERIALS
        assert SceneManager.get_max_lights() == MAX_LIGHTS
        assert SceneManager.get_max_textures() == MAX_TEXTURES

    def test_too_many_shapes(self, fresh_scene):
        """Test scenes larger than MAX_SHAPES are rejected."""
        from src.whitted.geometry.transform import ShapeTransform
        from src.whitted.scene.intersection import MAX_SHAPES
        from src.whitted.scene.model import Camera, Material, PrimitiveType, Scene, Shape

        mat = Material()
        identity = ShapeTransform.identity()
        shapes = [Shape(PrimitiveType.SPHERE, identity, mat) for _ in range(MAX_SHAPES + 1)]
        with pytest.raises(RuntimeError, match="shapes"):
            fresh_scene.load(Scene(shapes=shapes, lights=[], camera=Camera()))
