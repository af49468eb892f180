"""Unit tests for matrix builders and the shape transform cache.

Tests cover:
- translate / scale / rotate / compose
- ShapeTransform validation and cached inverses
- Normals staying orthogonal to surfaces under uniform and non-uniform scale
- The inverse is never recomputed while rendering
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestMatrixBuilders:
    """Tests for the numpy matrix helpers."""

    def test_translate(self):
        """Test translate moves points but not directions."""
        from src.whitted.geometry.transform import translate

        m = translate((1.0, 2.0, 3.0))
        assert np.allclose(m @ [0.0, 0.0, 0.0, 1.0], [1.0, 2.0, 3.0, 1.0])
        assert np.allclose(m @ [1.0, 0.0, 0.0, 0.0], [1.0, 0.0, 0.0, 0.0])

    def test_scale(self):
        """Test scale multiplies each axis."""
        from src.whitted.geometry.transform import scale

        m = scale((2.0, 3.0, 4.0))
        assert np.allclose(m @ [1.0, 1.0, 1.0, 1.0], [2.0, 3.0, 4.0, 1.0])

    def test_rotate_about_z(self):
        """Test a 90 degree turn about z maps x onto y."""
        from src.whitted.geometry.transform import rotate

        m = rotate((0.0, 0.0, 1.0), 90.0)
        assert np.allclose(m @ [1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 1.0], atol=1e-12)

    def test_rotate_normalizes_axis(self):
        """Test the rotation axis need not be unit length."""
        from src.whitted.geometry.transform import rotate

        assert np.allclose(rotate((0.0, 5.0, 0.0), 30.0), rotate((0.0, 1.0, 0.0), 30.0))

    def test_rotate_zero_axis_raises(self):
        """Test rotating about a zero axis is rejected."""
        from src.whitted.core.errors import SceneError
        from src.whitted.geometry.transform import rotate

        with pytest.raises(SceneError):
            rotate((0.0, 0.0, 0.0), 45.0)

    def test_compose_order(self):
        """Test compose applies the last matrix first."""
        from src.whitted.geometry.transform import compose, scale, translate

        m = compose(translate((1.0, 0.0, 0.0)), scale((2.0, 2.0, 2.0)))
        assert np.allclose(m @ [1.0, 0.0, 0.0, 1.0], [3.0, 0.0, 0.0, 1.0])

    def test_compose_empty_is_identity(self):
        """Test composing nothing gives the identity."""
        from src.whitted.geometry.transform import compose

        assert np.allclose(compose(), np.eye(4))


class TestShapeTransform:
    """Tests for ShapeTransform construction."""

    def test_inverse_cached(self):
        """Test matrix @ inverse is the identity."""
        from src.whitted.geometry.transform import ShapeTransform, compose, rotate, scale, translate

        st = ShapeTransform.from_matrix(
            compose(translate((1.0, -2.0, 3.0)), rotate((1.0, 1.0, 0.0), 40.0), scale((2.0, 0.5, 3.0)))
        )
        assert np.allclose(st.matrix @ st.inverse, np.eye(4))
        assert np.allclose(st.inverse_transpose, st.inverse.T)

    def test_arrays_are_read_only(self):
        """Test the cached matrices cannot be modified in place."""
        from src.whitted.geometry.transform import ShapeTransform

        st = ShapeTransform.identity()
        with pytest.raises(ValueError):
            st.inverse[0, 0] = 2.0

    def test_singular_matrix_raises(self):
        """Test a zero scale is rejected."""
        from src.whitted.core.errors import SceneError
        from src.whitted.geometry.transform import ShapeTransform, scale

        with pytest.raises(SceneError, match="singular"):
            ShapeTransform.from_matrix(scale((0.0, 1.0, 1.0)))

    def test_wrong_shape_raises(self):
        """Test non-4x4 matrices are rejected."""
        from src.whitted.core.errors import SceneError
        from src.whitted.geometry.transform import ShapeTransform

        with pytest.raises(SceneError):
            ShapeTransform.from_matrix(np.eye(3))

    def test_non_affine_raises(self):
        """Test a projective bottom row is rejected."""
        from src.whitted.core.errors import SceneError
        from src.whitted.geometry.transform import ShapeTransform

        m = np.eye(4)
        m[3, 2] = 1.0
        with pytest.raises(SceneError, match="affine"):
            ShapeTransform.from_matrix(m)

    def test_non_finite_raises(self):
        """Test NaN entries are rejected."""
        from src.whitted.core.errors import SceneError
        from src.whitted.geometry.transform import ShapeTransform

        m = np.eye(4)
        m[0, 3] = np.nan
        with pytest.raises(SceneError):
            ShapeTransform.from_matrix(m)

    @pytest.mark.parametrize("factors", [(2.0, 2.0, 2.0), (3.0, 1.0, 0.5)])
    def test_normals_orthogonal_to_tangents(self, factors):
        """Test world normals stay perpendicular to world tangents."""
        from src.whitted.geometry.transform import ShapeTransform, compose, rotate, scale

        st = ShapeTransform.from_matrix(compose(rotate((0.0, 0.0, 1.0), 25.0), scale(factors)))
        rng = np.random.default_rng(7)
        for _ in range(20):
            p = rng.normal(size=3)
            p = 0.5 * p / np.linalg.norm(p)
            # Two tangents of the canonical sphere at p
            t1 = np.cross(p, [0.0, 0.0, 1.0] if abs(p[2]) < 0.4 else [1.0, 0.0, 0.0])
            t2 = np.cross(p, t1)
            world_normal = st.to_world_normal(2.0 * p)
            for tangent in (t1, t2):
                world_tangent = (st.matrix @ np.append(tangent, 0.0))[:3]
                assert abs(np.dot(world_normal, world_tangent)) < 1e-9 * max(1.0, np.linalg.norm(world_tangent))
            assert abs(np.linalg.norm(world_normal) - 1.0) < 1e-12


class TestDeviceTransforms:
    """Tests for transformed shapes on the device."""

    def test_scaled_sphere_normal(self, make_shape, upload_scene):
        """Test the normal of an ellipsoid is the normalized gradient."""
        from src.whitted.core.ray import vec3
        from src.whitted.geometry.transform import scale
        from src.whitted.scene.intersection import intersect_scene
        from src.whitted.scene.model import PrimitiveType

        # Stretched to semi-axes (1, 0.5, 0.5)
        upload_scene([make_shape(PrimitiveType.SPHERE, None, scale((2.0, 1.0, 1.0)))])

        hit = ti.field(dtype=ti.i32, shape=())
        t_val = ti.field(dtype=ti.f32, shape=())
        normal = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            rec = intersect_scene(vec3(0.5, 5.0, 0.0), vec3(0.0, -1.0, 0.0), 1e-3, 1e10)
            hit[None] = rec.hit
            t_val[None] = rec.t
            normal[None] = rec.normal

        test_kernel()
        y = math.sqrt(0.25 * (1.0 - 0.25))
        assert hit[None] == 1
        assert abs(t_val[None] - (5.0 - y)) < 1e-4
        # Gradient of x^2 + y^2 / 0.25 is proportional to (x, 4y)
        g = np.array([0.5, 4.0 * y, 0.0])
        g /= np.linalg.norm(g)
        n = normal[None]
        assert np.allclose([n[0], n[1], n[2]], g, atol=1e-4)

    def test_translated_cube_hit(self, make_shape, upload_scene):
        """Test world t is preserved through the local transform."""
        from src.whitted.core.ray import vec3
        from src.whitted.geometry.transform import scale, translate
        from src.whitted.scene.intersection import intersect_scene
        from src.whitted.scene.model import PrimitiveType

        upload_scene(
            [make_shape(PrimitiveType.CUBE, None, translate((0.0, 0.0, -3.0)), scale((4.0, 4.0, 4.0)))]
        )

        t_val = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            rec = intersect_scene(vec3(0.0, 0.0, 5.0), vec3(0.0, 0.0, -1.0), 1e-3, 1e10)
            t_val[None] = rec.t

        test_kernel()
        # Front face at z = -3 + 2 = -1
        assert abs(t_val[None] - 6.0) < 1e-4

    def test_inverse_not_recomputed_during_render(self, make_shape, monkeypatch):
        """Test rendering never inverts a matrix."""
        from src.whitted.core.config import RenderConfig
        from src.whitted.core.renderer import RayTracer
        from src.whitted.geometry.transform import scale
        from src.whitted.scene.model import Camera, Light, PrimitiveType, Scene

        scene = Scene(
            shapes=[make_shape(PrimitiveType.SPHERE, None, scale((2.0, 1.0, 1.0)))],
            lights=[Light.point((2.0, 2.0, 2.0))],
            camera=Camera(position=(0.0, 0.0, 4.0), look=(0.0, 0.0, -1.0)),
        )

        def _fail(*args, **kwargs):
            raise AssertionError("matrix inverted during rendering")

        monkeypatch.setattr(np.linalg, "inv", _fail)
        monkeypatch.setattr(np.linalg, "det", _fail)

        image = RayTracer(scene, RenderConfig(width=8, height=8)).render()
        assert image.max() > 0.0


def _cone_body_case(theta):
    c, s = math.cos(theta), math.sin(theta)
    point = (0.25 * c, 0.0, 0.25 * s)
    outward = np.array([0.5 * c, 0.25, 0.5 * s])
    # Generator line from the apex through the point
    return point, outward / np.linalg.norm(outward), [(-s, 0.0, c), (0.25 * c, -0.5, 0.25 * s)]


def _cylinder_body_case(theta):
    c, s = math.cos(theta), math.sin(theta)
    return (0.5 * c, 0.1, 0.5 * s), (c, 0.0, s), [(-s, 0.0, c), (0.0, 1.0, 0.0)]


def _sphere_case():
    p = np.array([1.0, 2.0, -1.0])
    p /= np.linalg.norm(p)
    t1 = np.cross(p, [0.0, 0.0, 1.0])
    return 0.5 * p, p, [t1, np.cross(p, t1)]


# (primitive, canonical surface point, outward direction, canonical tangents)
SURFACE_CASES = [
    ("sphere", *_sphere_case()),
    ("cube", (0.5, 0.1, -0.15), (1.0, 0.0, 0.0), [(0.0, 1.0, 0.0), (0.0, 0.0, 1.0)]),
    ("cube", (0.2, 0.5, 0.1), (0.0, 1.0, 0.0), [(1.0, 0.0, 0.0), (0.0, 0.0, 1.0)]),
    ("cylinder", *_cylinder_body_case(0.7)),
    ("cylinder", (0.1, 0.5, -0.2), (0.0, 1.0, 0.0), [(1.0, 0.0, 0.0), (0.0, 0.0, 1.0)]),
    ("cone", *_cone_body_case(2.0)),
    ("cone", (0.1, -0.5, 0.2), (0.0, -1.0, 0.0), [(1.0, 0.0, 0.0), (0.0, 0.0, 1.0)]),
]


class TestDeviceNormals:
    """World normals from intersect_shape for every primitive kind."""

    @pytest.mark.parametrize("factors", [(2.0, 2.0, 2.0), (3.0, 1.0, 0.5)])
    @pytest.mark.parametrize(
        "primitive,point,outward,tangents",
        SURFACE_CASES,
        ids=[f"{case[0]}-{i}" for i, case in enumerate(SURFACE_CASES)],
    )
    def test_normal_orthogonal_to_tangents(
        self, make_shape, upload_scene, factors, primitive, point, outward, tangents
    ):
        """Test the hit normal is unit length, outward and perpendicular to the surface."""
        from src.whitted.core.ray import vec3
        from src.whitted.geometry.transform import rotate, scale
        from src.whitted.scene.intersection import intersect_shape
        from src.whitted.scene.model import PrimitiveType

        manager = upload_scene(
            [make_shape(PrimitiveType[primitive.upper()], None, rotate((0.0, 0.0, 1.0), 25.0), scale(factors))]
        )
        m = manager.scene.shapes[0].transform.matrix

        p = np.asarray(point, dtype=np.float64)
        u = np.asarray(outward, dtype=np.float64)
        # Aim at the point from outside along the canonical outward direction
        origin = (m @ np.append(p + 2.0 * u, 1.0))[:3]
        direction = (m @ np.append(-u, 0.0))[:3]
        expected_point = (m @ np.append(p, 1.0))[:3]

        hit = ti.field(dtype=ti.i32, shape=())
        hit_point = ti.field(dtype=ti.math.vec3, shape=())
        normal = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel(o: vec3, d: vec3):
            rec = intersect_shape(0, o, d, 1e-3, 1e10)
            hit[None] = rec.hit
            hit_point[None] = rec.point
            normal[None] = rec.normal

        test_kernel(vec3(*map(float, origin)), vec3(*map(float, direction)))
        assert hit[None] == 1
        assert np.allclose(hit_point[None].to_numpy(), expected_point, atol=1e-4)

        n = normal[None].to_numpy()
        assert abs(np.linalg.norm(n) - 1.0) < 1e-5
        assert np.dot(n, (m @ np.append(u, 0.0))[:3]) > 0.0
        for tangent in tangents:
            world_tangent = (m @ np.append(tangent, 0.0))[:3]
            world_tangent /= np.linalg.norm(world_tangent)
            assert abs(np.dot(n, world_tangent)) < 1e-4
