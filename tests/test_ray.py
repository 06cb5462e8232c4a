"""Unit tests for the ray module.

Tests cover:
- make_ray and its reciprocal direction
- ray_at
- reflect, two-sided refract (entering, exiting, total internal reflection)
- secondary ray origin bias
"""

import math

import pytest
import taichi as ti


class TestRayBasics:
    """Tests for Ray construction and evaluation."""

    def test_ray_at_positive_t(self):
        """Test ray_at computes the point along the ray."""
        from whitted.core.ray import make_ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(1.0, 2.0, 3.0), vec3(1.0, 0.0, 0.0))
            result[None] = ray_at(ray, 5.0)

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(6.0)
        assert r[1] == pytest.approx(2.0)
        assert r[2] == pytest.approx(3.0)

    def test_make_ray_reciprocal_direction(self):
        """Test inv_direction is 1/direction with infinities for zeros."""
        from whitted.core.ray import make_ray, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.5, -0.25, 0.0))
            result[None] = ray.inv_direction

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(2.0)
        assert r[1] == pytest.approx(-4.0)
        assert math.isinf(r[2]) and r[2] > 0


class TestReflect:
    """Tests for mirror reflection."""

    def test_reflect_about_up_normal(self):
        """Test a 45 degree ray reflects to the mirrored direction."""
        from whitted.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert r[0] == pytest.approx(1.0)
        assert r[1] == pytest.approx(1.0)
        assert r[2] == pytest.approx(0.0)

    def test_reflect_normal_incidence(self):
        """Test head-on reflection reverses the direction."""
        from whitted.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(0.0, 0.0, -1.0), vec3(0.0, 0.0, 1.0))

        test_kernel()
        assert result[None][2] == pytest.approx(1.0)


class TestRefract:
    """Tests for two-sided Snell refraction."""

    def _refract(self, incident, normal, index):
        from whitted.core.ray import refract, vec3

        direction = ti.field(dtype=ti.math.vec3, shape=())
        refracted = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(i: vec3, n: vec3, eta: ti.f32):
            d, ok = refract(i, n, eta)
            direction[None] = d
            refracted[None] = ok

        test_kernel(vec3(*incident), vec3(*normal), index)
        return direction[None], refracted[None]

    def test_normal_incidence_passes_straight(self):
        """Test a ray along the normal is not bent."""
        d, ok = self._refract((0.0, 0.0, -1.0), (0.0, 0.0, 1.0), 1.5)
        assert ok == 1
        assert d[0] == pytest.approx(0.0, abs=1e-6)
        assert d[1] == pytest.approx(0.0, abs=1e-6)
        assert d[2] == pytest.approx(-1.0)

    def test_entering_bends_toward_normal(self):
        """Test Snell's law n1 sin1 = n2 sin2 when entering glass."""
        s = math.sqrt(0.5)
        d, ok = self._refract((s, -s, 0.0), (0.0, 1.0, 0.0), 1.5)
        assert ok == 1
        sin_out = d[0] / math.sqrt(d[0] ** 2 + d[1] ** 2 + d[2] ** 2)
        assert sin_out == pytest.approx(s / 1.5, rel=1e-4)
        assert d[1] < 0.0

    def test_exiting_swaps_indices(self):
        """Test a ray leaving glass (normal facing the ray's way) bends away."""
        sin_in = 0.5
        cos_in = math.sqrt(1.0 - sin_in**2)
        d, ok = self._refract((sin_in, cos_in, 0.0), (0.0, 1.0, 0.0), 1.5)
        assert ok == 1
        length = math.sqrt(d[0] ** 2 + d[1] ** 2 + d[2] ** 2)
        assert d[0] / length == pytest.approx(sin_in * 1.5, rel=1e-4)
        assert d[1] > 0.0

    def test_total_internal_reflection(self):
        """Test a grazing ray leaving glass yields zero and refracted=0."""
        sin_in = 0.9
        cos_in = math.sqrt(1.0 - sin_in**2)
        d, ok = self._refract((sin_in, cos_in, 0.0), (0.0, 1.0, 0.0), 1.5)
        assert ok == 0
        assert d[0] == 0.0 and d[1] == 0.0 and d[2] == 0.0


class TestOffsetOrigin:
    """Tests for the secondary ray origin bias."""

    @pytest.mark.parametrize(
        "direction, expected_y",
        [((0.0, 1.0, 0.0), 1e-3), ((0.0, -1.0, 0.0), -1e-3)],
    )
    def test_bias_follows_direction_side(self, direction, expected_y):
        """Test the origin moves to the side the new ray leaves on."""
        from whitted.core.ray import offset_origin, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel(d: vec3):
            result[None] = offset_origin(vec3(0.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0), d)

        test_kernel(vec3(*direction))
        assert result[None][1] == pytest.approx(expected_y)
