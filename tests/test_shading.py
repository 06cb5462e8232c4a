"""Tests for the shading engine (cast_ray).

Tests cover:
- Depth cutoff and misses return the background, with no intersection work
- Unlit diffuse surfaces are exactly black
- Diffuse and Phong terms
- Hard shadows
- Mirror reflection and the reflection depth limit
- Refraction and total internal reflection
- Equirectangular background lookup
"""

import math

import numpy as np
import pytest
import taichi as ti

SKY = (0.2, 0.4, 0.6)


def _scene(shapes=(), lights=(), background=SKY, max_reflect_depth=4):
    from whitted.scene.background import solid_background
    from whitted.scene.manager import Scene

    if isinstance(background, tuple):
        background = solid_background(background)
    return Scene(
        shapes=shapes,
        lights=lights,
        background=background,
        frame_width=8,
        frame_height=8,
        max_reflect_depth=max_reflect_depth,
    )


class TestBackground:
    """Tests for rays that do not hit a surface."""

    def test_miss_returns_background(self):
        color = _scene().cast_ray((0, 0, 0), (0, 0, -1))
        assert color == pytest.approx(SKY)

    def test_depth_cutoff_returns_background(self, matte_red):
        """Test a ray past the depth limit ignores the geometry in front of it."""
        from whitted.core.shading import Light
        from whitted.scene.manager import SphereInfo

        scene = _scene(
            shapes=[SphereInfo(center=(0, 0, -10), radius=1.0, material=matte_red)],
            lights=[Light(position=(0, 0, 0), intensity=1.0)],
            max_reflect_depth=2,
        )
        assert scene.cast_ray((0, 0, 0), (0, 0, -1), depth=3) == pytest.approx(SKY)
        # At the limit the surface is still shaded
        assert scene.cast_ray((0, 0, 0), (0, 0, -1), depth=2) == pytest.approx((1.0, 0.0, 0.0))

    def test_depth_cutoff_skips_reflective_refractive_surface(self):
        """Test a glass-and-mirror surface past the depth limit is never intersected."""
        from whitted.core.shading import Light
        from whitted.materials.material import Material
        from whitted.scene.intersection import collect_stats
        from whitted.scene.manager import MeshInfo, SphereInfo
        from whitted.scene.wavefront import parse_obj

        glass = Material((0.0, 0.0, 1.0, 1.0), (1.0, 1.0, 1.0), 1.0, 1.5)
        obj = parse_obj("v -1 -1 -5\nv 1 -1 -5\nv 0 1 -5\nf 1 2 3\n")
        scene = _scene(
            shapes=[
                SphereInfo(center=(0, 0, -10), radius=1.0, material=glass),
                MeshInfo.from_wavefront(obj, glass),
            ],
            lights=[Light(position=(0, 5, 0), intensity=1.0)],
            background=(0.2, 0.7, 0.8),
            max_reflect_depth=2,
        )
        color = scene.cast_ray((0, 0, 0), (0, 0, -1), depth=3)
        assert color == pytest.approx((0.2, 0.7, 0.8), abs=1e-6)

        stats = collect_stats()
        assert stats.triangle_tests == 0
        assert stats.bounding_box_misses == 0
        assert stats.mesh_hits == 0

    def test_negative_depth_rejected(self):
        with pytest.raises(ValueError):
            _scene().cast_ray((0, 0, 0), (0, 0, -1), depth=-1)


class TestDirectLighting:
    """Tests for diffuse, specular and shadow terms."""

    def test_unlit_diffuse_is_black(self, matte_red):
        """Test no lights and no reflection weight gives exactly zero."""
        from whitted.scene.manager import SphereInfo

        scene = _scene(
            shapes=[SphereInfo(center=(0, 0, -10), radius=1.0, material=matte_red)],
            background=(1.0, 1.0, 1.0),
        )
        assert scene.cast_ray((0, 0, 0), (0, 0, -1)) == (0.0, 0.0, 0.0)

    def test_diffuse_and_specular(self, ivory):
        """Test head-on light: lambert 1, Phong highlight 1.

        ivory: 0.6 * (0.4, 0.4, 0.3) * 1 + 0.3 * 1, reflection sees black.
        """
        from whitted.core.shading import Light
        from whitted.scene.manager import SphereInfo

        scene = _scene(
            shapes=[SphereInfo(center=(0, 0, -10), radius=1.0, material=ivory)],
            lights=[Light(position=(0, 0, 0), intensity=1.0)],
            background=(0.0, 0.0, 0.0),
        )
        color = scene.cast_ray((0, 0, 0), (0, 0, -1))
        assert color == pytest.approx((0.54, 0.54, 0.48), abs=1e-5)

    def test_light_intensities_add(self, matte_red):
        from whitted.core.shading import Light
        from whitted.scene.manager import SphereInfo

        scene = _scene(
            shapes=[SphereInfo(center=(0, 0, -10), radius=1.0, material=matte_red)],
            lights=[Light((0, 0, 0), 0.5), Light((0, 0, 1), 0.25)],
        )
        color = scene.cast_ray((0, 0, 0), (0, 0, -1))
        assert color[0] == pytest.approx(0.75, abs=1e-5)

    def test_light_behind_surface_contributes_nothing(self, matte_red):
        from whitted.core.shading import Light
        from whitted.scene.manager import PlaneInfo

        scene = _scene(
            shapes=[PlaneInfo(point=(0, -1, 0), normal=(0, 1, 0), material=matte_red)],
            lights=[Light((0, -10, 0), 1.0)],
        )
        # Plane is two-sided but lambert uses the stored normal
        assert scene.cast_ray((0, 5, 0), (0, -1, 0)) == (0.0, 0.0, 0.0)

    def test_shadow(self, matte_red, ivory):
        """Test an occluder between hit point and light blocks the light."""
        from whitted.core.shading import Light
        from whitted.scene.manager import PlaneInfo, SphereInfo

        ground = PlaneInfo(point=(0, -1, 0), normal=(0, 1, 0), material=matte_red)
        light = Light(position=(10, 9, 0), intensity=1.0)

        lit = _scene(shapes=[ground], lights=[light]).cast_ray((0, 5, 0), (0, -1, 0))
        assert lit[0] == pytest.approx(1.0 / math.sqrt(2.0), abs=1e-4)

        occluder = SphereInfo(center=(5, 4, 0), radius=1.0, material=ivory)
        shadowed = _scene(shapes=[ground, occluder], lights=[light]).cast_ray(
            (0, 5, 0), (0, -1, 0)
        )
        assert shadowed == (0.0, 0.0, 0.0)

    def test_occluder_beyond_light_casts_no_shadow(self, matte_red, ivory):
        from whitted.core.shading import Light
        from whitted.scene.manager import PlaneInfo, SphereInfo

        scene = _scene(
            shapes=[
                PlaneInfo(point=(0, -1, 0), normal=(0, 1, 0), material=matte_red),
                SphereInfo(center=(15, 14, 0), radius=1.0, material=ivory),
            ],
            lights=[Light(position=(10, 9, 0), intensity=1.0)],
        )
        color = scene.cast_ray((0, 5, 0), (0, -1, 0))
        assert color[0] == pytest.approx(1.0 / math.sqrt(2.0), abs=1e-4)


class TestReflection:
    """Tests for mirror reflection."""

    def _mirror_scene(self, mirror, matte_red, max_reflect_depth):
        from whitted.core.shading import Light
        from whitted.scene.manager import PlaneInfo, SphereInfo

        return _scene(
            shapes=[
                PlaneInfo(point=(0, 0, -10), normal=(0, 0, 1), material=mirror),
                SphereInfo(center=(0, 0, 5), radius=1.0, material=matte_red),
            ],
            lights=[Light(position=(0, 0, 0), intensity=1.0)],
            background=(0.0, 0.0, 0.0),
            max_reflect_depth=max_reflect_depth,
        )

    def test_mirror_shows_lit_sphere(self, mirror, matte_red):
        scene = self._mirror_scene(mirror, matte_red, max_reflect_depth=4)
        color = scene.cast_ray((0, 0, 0), (0, 0, -1))
        assert color == pytest.approx((1.0, 0.0, 0.0), abs=1e-5)

    def test_reflection_limited_by_depth(self, mirror, matte_red):
        """Test the reflected ray past the limit sees only the background."""
        scene = self._mirror_scene(mirror, matte_red, max_reflect_depth=0)
        assert scene.cast_ray((0, 0, 0), (0, 0, -1)) == (0.0, 0.0, 0.0)

    def test_facing_mirrors_terminate(self, mirror):
        """Test two parallel mirrors recurse until the depth limit."""
        from whitted.scene.manager import PlaneInfo

        scene = _scene(
            shapes=[
                PlaneInfo(point=(0, 0, -10), normal=(0, 0, 1), material=mirror),
                PlaneInfo(point=(0, 0, 10), normal=(0, 0, -1), material=mirror),
            ],
            max_reflect_depth=32,
        )
        assert scene.cast_ray((0, 0, 0), (0, 0, -1)) == pytest.approx(SKY)


class TestRefraction:
    """Tests for refraction and total internal reflection."""

    @pytest.fixture
    def glass(self):
        from whitted.materials.material import Material

        return Material(
            albedo=(0.0, 0.0, 0.0, 1.0),
            diffuse_color=(1.0, 1.0, 1.0),
            specular_exponent=1.0,
            refractive_index=1.5,
        )

    @pytest.mark.parametrize("prune_zero_weight", [False, True])
    def test_ray_through_sphere_center(self, glass, prune_zero_weight):
        """Test a ray through the center passes straight to the background."""
        from whitted.scene.manager import SphereInfo

        scene = _scene(shapes=[SphereInfo(center=(0, 0, -10), radius=2.0, material=glass)])
        color = scene.cast_ray((0, 0, 0), (0, 0, -1), prune_zero_weight=prune_zero_weight)
        assert color == pytest.approx(SKY, abs=1e-5)

    def test_exit_below_critical_angle(self, glass):
        from whitted.scene.manager import PlaneInfo

        scene = _scene(shapes=[PlaneInfo(point=(0, 0, 0), normal=(0, 1, 0), material=glass)])
        color = scene.cast_ray((0, -1, 0), (0.3, math.sqrt(1.0 - 0.09), 0.0))
        assert color == pytest.approx(SKY, abs=1e-5)

    def test_total_internal_reflection_contributes_zero(self, glass):
        """Test a grazing ray leaving glass gets no refracted color."""
        from whitted.scene.manager import PlaneInfo

        scene = _scene(shapes=[PlaneInfo(point=(0, 0, 0), normal=(0, 1, 0), material=glass)])
        color = scene.cast_ray((0, -1, 0), (0.9, math.sqrt(1.0 - 0.81), 0.0))
        assert color == (0.0, 0.0, 0.0)


class TestBackgroundLookup:
    """Tests for the equirectangular mapping."""

    @pytest.fixture
    def gradient(self):
        # Encodes (row, column) in the red and green channels
        pixels = np.zeros((3, 4, 3), dtype=np.float32)
        for row in range(3):
            for col in range(4):
                pixels[row, col] = (row / 10.0, col / 10.0, 0.5)
        return pixels

    @pytest.mark.parametrize(
        "direction, row, col",
        [
            ((1.0, 0.0, 0.0), 1, 2),
            ((0.0, 0.0, 1.0), 1, 3),
            ((0.0, 0.0, -1.0), 1, 1),
            ((0.0, 1.0, 0.0), 0, 2),
            # Latitude clamped to the last row
            ((0.0, -1.0, 0.0), 2, 2),
        ],
    )
    def test_mapping(self, gradient, direction, row, col):
        color = _scene(background=gradient).cast_ray((0, 0, 0), direction)
        assert color == pytest.approx((row / 10.0, col / 10.0, 0.5))

    def test_direction_is_normalized(self, gradient):
        """Test sample_background normalizes its argument."""
        from whitted.core.shading import sample_background, set_background, vec3

        set_background(gradient)
        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = sample_background(vec3(0.0, 0.0, 5.0))

        test_kernel()
        assert result[None][1] == pytest.approx(0.3)

    def test_oversized_background_rejected(self):
        from whitted.errors import SceneConfigError
        from whitted.scene.background import MAX_BACKGROUND_WIDTH

        with pytest.raises(SceneConfigError):
            _scene(background=np.zeros((1, MAX_BACKGROUND_WIDTH + 1, 3), dtype=np.float32))
