"""Tests for the pinhole camera and primary ray generation."""

import math

import numpy as np
import pytest
import taichi as ti


class TestPinholeCamera:
    """Tests for host-side camera parameters."""

    def test_fov_is_negated_radians(self):
        from whitted.camera.pinhole import PinholeCamera

        camera = PinholeCamera.from_degrees(100, 50, 80.0)
        assert camera.fov == pytest.approx(-math.radians(80.0))
        assert camera.tan_half_fov == pytest.approx(-math.tan(math.radians(40.0)))
        assert camera.aspect_ratio == 2.0

    def test_center_pixel_looks_down_negative_z(self):
        from whitted.camera.pinhole import PinholeCamera

        camera = PinholeCamera.from_degrees(3, 3, 60.0)
        np.testing.assert_allclose(camera.ray_direction(1, 1), [0.0, 0.0, -1.0], atol=1e-12)

    def test_negative_fov_flips_both_axes(self):
        """Test the top-left pixel looks right and down with the stored sign."""
        from whitted.camera.pinhole import PinholeCamera

        negative = PinholeCamera.from_degrees(10, 10, 90.0).ray_direction(0, 0)
        positive = PinholeCamera(10, 10, math.radians(90.0)).ray_direction(0, 0)
        assert negative[0] > 0 and negative[1] < 0
        assert positive[0] < 0 and positive[1] > 0
        np.testing.assert_allclose(negative[:2], -positive[:2])


class TestPrimaryRayDirection:
    """Tests for the kernel-side direction formula."""

    @pytest.mark.parametrize("x, y", [(0, 0), (7, 2), (15, 9), (3, 8)])
    def test_matches_host_formula(self, x, y):
        from whitted.camera.pinhole import PinholeCamera, primary_ray_direction

        camera = PinholeCamera.from_degrees(16, 10, 70.0)
        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel(px: ti.i32, py: ti.i32, t: ti.f32):
            result[None] = primary_ray_direction(px, py, 16, 10, t)

        test_kernel(x, y, camera.tan_half_fov)
        np.testing.assert_allclose(result[None].to_numpy(), camera.ray_direction(x, y), atol=1e-6)
