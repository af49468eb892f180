"""Unit tests for canonical cylinder and cone intersection."""

import math

import taichi as ti


def _probe(hit_func, origin, direction, t_min=1e-3, t_max=1e10):
    from src.whitted.geometry.common import vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    uv = ti.field(dtype=ti.math.vec2, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, lo: ti.f32, hi: ti.f32):
        rec = hit_func(o, d, lo, hi)
        hit[None] = rec.hit
        t_val[None] = rec.t
        normal[None] = ti.math.normalize(rec.normal)
        uv[None] = rec.uv

    test_kernel(vec3(*origin), vec3(*direction), t_min, t_max)
    return hit[None], t_val[None], normal[None], uv[None]


class TestCylinderIntersection:
    """Tests for ray-cylinder intersection."""

    def test_body_hit(self):
        """Test a horizontal ray hits the curved side at t=4.5."""
        from src.whitted.geometry.cylinder import hit_cylinder

        hit, t, n, uv = _probe(hit_cylinder, (0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert abs(t - 4.5) < 1e-5
        assert abs(n[2] - 1.0) < 1e-5
        assert abs(n[1]) < 1e-6
        assert abs(uv[0] - 0.75) < 1e-4
        assert abs(uv[1] - 0.5) < 1e-5

    def test_body_normal_has_no_y_component(self):
        """Test side normals are horizontal at any height."""
        from src.whitted.geometry.cylinder import hit_cylinder

        hit, _, n, uv = _probe(hit_cylinder, (0.0, 0.3, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert abs(n[1]) < 1e-6
        assert abs(uv[1] - 0.8) < 1e-5

    def test_top_cap(self):
        """Test a vertical ray hits the top cap."""
        from src.whitted.geometry.cylinder import hit_cylinder

        hit, t, n, uv = _probe(hit_cylinder, (0.1, 5.0, 0.0), (0.0, -1.0, 0.0))
        assert hit == 1
        assert abs(t - 4.5) < 1e-5
        assert abs(n[1] - 1.0) < 1e-6
        assert abs(uv[0] - 0.6) < 1e-5
        assert abs(uv[1] - 0.5) < 1e-5

    def test_bottom_cap(self):
        """Test a ray from below hits the bottom cap."""
        from src.whitted.geometry.cylinder import hit_cylinder

        hit, t, n, uv = _probe(hit_cylinder, (0.0, -5.0, 0.2), (0.0, 1.0, 0.0))
        assert hit == 1
        assert abs(t - 4.5) < 1e-5
        assert abs(n[1] + 1.0) < 1e-6
        assert abs(uv[1] - 0.7) < 1e-5

    def test_miss_above_height(self):
        """Test the infinite-cylinder root above y=0.5 is rejected."""
        from src.whitted.geometry.cylinder import hit_cylinder

        hit, _, _, _ = _probe(hit_cylinder, (0.0, 0.7, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_miss_beside(self):
        """Test a ray passing beside the cylinder misses."""
        from src.whitted.geometry.cylinder import hit_cylinder

        hit, _, _, _ = _probe(hit_cylinder, (1.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_from_inside(self):
        """Test a ray from the centre exits through the side."""
        from src.whitted.geometry.cylinder import hit_cylinder

        hit, t, _, _ = _probe(hit_cylinder, (0.0, 0.0, 0.0), (1.0, 0.0, 0.0))
        assert hit == 1
        assert abs(t - 0.5) < 1e-5


class TestConeIntersection:
    """Tests for ray-cone intersection."""

    def test_body_hit(self):
        """Test a horizontal ray at y=0 meets the side where the radius is 0.25."""
        from src.whitted.geometry.cone import hit_cone

        hit, t, n, uv = _probe(hit_cone, (0.0, 0.0, 5.0), (0.0, 0.0, -1.0))
        assert hit == 1
        assert abs(t - 4.75) < 1e-5
        # Gradient (2x, (0.5 - y) / 2, 2z) = (0, 0.25, 0.5)
        assert abs(n[0]) < 1e-6
        assert abs(n[1] - 1.0 / math.sqrt(5.0)) < 1e-5
        assert abs(n[2] - 2.0 / math.sqrt(5.0)) < 1e-5
        assert abs(uv[0] - 0.75) < 1e-4
        assert abs(uv[1] - 0.5) < 1e-5

    def test_base_hit_from_below(self):
        """Test a ray from below hits the base before the side."""
        from src.whitted.geometry.cone import hit_cone

        hit, t, n, _ = _probe(hit_cone, (0.1, -5.0, 0.0), (0.0, 1.0, 0.0))
        assert hit == 1
        assert abs(t - 4.5) < 1e-5
        assert abs(n[1] + 1.0) < 1e-6

    def test_side_hit_from_inside(self):
        """Test a ray rising inside the cone exits through the side."""
        from src.whitted.geometry.cone import hit_cone

        hit, t, _, _ = _probe(hit_cone, (0.1, -0.4, 0.0), (0.0, 1.0, 0.0))
        assert hit == 1
        # Radius 0.1 is reached at y = 0.3
        assert abs(t - 0.7) < 1e-4

    def test_miss_above_apex(self):
        """Test the upper nappe of the double cone is rejected."""
        from src.whitted.geometry.cone import hit_cone

        hit, _, _, _ = _probe(hit_cone, (0.0, 0.8, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0

    def test_miss_beside(self):
        """Test a ray passing beside the base misses."""
        from src.whitted.geometry.cone import hit_cone

        hit, _, _, _ = _probe(hit_cone, (0.6, -0.4, 5.0), (0.0, 0.0, -1.0))
        assert hit == 0
