"""Tests for the frame renderer.

Tests cover:
- The single red sphere scenario (background and lit pixels)
- Identical output for any band size
- Field-of-view sign and upright image orientation
- Progress callbacks, statistics and error propagation
"""

import math

import numpy as np
import pytest

BACKGROUND = (0.2, 0.7, 0.8)


def _red_sphere_scene(**overrides):
    from whitted.camera.pinhole import fov_from_degrees
    from whitted.core.shading import Light
    from whitted.materials.material import Material
    from whitted.scene.background import solid_background
    from whitted.scene.manager import Scene, SphereInfo

    red = Material(
        albedo=(1.0, 0.0, 0.0, 0.0),
        diffuse_color=(1.0, 0.0, 0.0),
        specular_exponent=1.0,
        refractive_index=1.0,
    )
    params = dict(
        shapes=[SphereInfo(center=(0, 0, -10), radius=3.0, material=red)],
        lights=[Light(position=(0, 0, 0), intensity=1.0)],
        background=solid_background(BACKGROUND),
        frame_width=100,
        frame_height=100,
        fov=fov_from_degrees(80.0),
        max_reflect_depth=0,
    )
    params.update(overrides)
    return Scene(**params)


def _sphere_hit(direction, center=(0.0, 0.0, -10.0), radius=3.0):
    """Front-face hit of a ray from the origin, None on a miss, "edge" near the rim."""
    c = np.asarray(center)
    tca = float(np.dot(c, direction))
    d2 = float(np.dot(c, c)) - tca * tca
    if d2 > 1.02 * radius * radius:
        return None
    if d2 > 0.98 * radius * radius:
        # Too close to the silhouette to compare single precision results
        return "edge"
    t = tca - math.sqrt(radius * radius - d2)
    return t * direction


class TestRedSphereScenario:
    """One lit red sphere on a solid background."""

    def test_frame_shape(self):
        from whitted.core.renderer import render

        frame = render(_red_sphere_scene())
        assert frame.pixels.shape == (100, 100, 3)
        assert frame.pixels.dtype == np.float32
        assert frame.buffer.shape == (100 * 100, 3)

    def test_pixels(self):
        from whitted.core.renderer import render

        scene = _red_sphere_scene()
        frame = render(scene)
        camera = scene.camera

        hits = 0
        for y in range(0, 100, 3):
            for x in range(0, 100, 3):
                direction = camera.ray_direction(x, y)
                point = _sphere_hit(direction)
                pixel = frame.pixel(x, y)
                if isinstance(point, str):
                    continue
                if point is None:
                    assert pixel == pytest.approx(BACKGROUND), (x, y)
                else:
                    hits += 1
                    normal = (point - np.array([0.0, 0.0, -10.0])) / 3.0
                    light_dir = -point / np.linalg.norm(point)
                    expected = max(0.0, float(np.dot(light_dir, normal)))
                    assert pixel[0] == pytest.approx(expected, abs=1e-3), (x, y)
                    assert pixel[1] == 0.0
                    assert pixel[2] == 0.0
        assert hits > 0

    def test_center_is_brightest(self):
        from whitted.core.renderer import render

        frame = render(_red_sphere_scene())
        center = frame.pixel(50, 50)[0]
        assert center == pytest.approx(1.0, abs=1e-3)
        assert center > frame.pixel(50, 60)[0]


class TestDeterminism:
    """Output must not depend on how scan lines are grouped."""

    def test_band_sizes_match(self):
        from whitted.core.renderer import FrameRenderer

        scene = _red_sphere_scene(frame_width=40, frame_height=30, max_reflect_depth=2)
        reference = FrameRenderer(scene).render().pixels
        for band_size in (1, 7, 64):
            pixels = FrameRenderer(scene, band_size=band_size).render().pixels
            np.testing.assert_array_equal(pixels, reference)

    def test_rerender_matches(self):
        from whitted.core.renderer import render

        scene = _red_sphere_scene(frame_width=20, frame_height=20)
        np.testing.assert_array_equal(render(scene).pixels, render(scene).pixels)


class TestOrientation:
    """Field-of-view sign and upright output."""

    def _scene(self, fov):
        from whitted.materials.material import Material
        from whitted.scene.manager import SphereInfo

        red = Material((1.0, 0.0, 0.0, 0.0), (1.0, 0.0, 0.0), 1.0, 1.0)
        # Sphere up and to the right of the view axis
        return _red_sphere_scene(
            shapes=[SphereInfo(center=(4, 4, -10), radius=2.0, material=red)],
            frame_width=40,
            frame_height=40,
            fov=fov,
        )

    def test_negative_fov_rotates_buffer(self):
        from whitted.core.renderer import render

        frame = render(self._scene(-math.radians(90.0)))
        # Buffer: bottom-left; upright image: top-right
        assert frame.pixels[27, 11, 0] > 0.5
        assert frame.pixels[12, 28] == pytest.approx(BACKGROUND)
        image = frame.to_image_array()
        assert image[12, 28, 0] > 0.5

    def test_positive_fov_is_upright(self):
        from whitted.core.renderer import render

        frame = render(self._scene(math.radians(90.0)))
        assert frame.pixels[12, 28, 0] > 0.5
        np.testing.assert_array_equal(frame.to_image_array(), frame.pixels)


class TestFrameRenderer:
    """Tests for callbacks, statistics and errors."""

    def test_progress_callback(self):
        from whitted.core.renderer import FrameRenderer

        scene = _red_sphere_scene(frame_width=8, frame_height=40)
        calls = []
        FrameRenderer(scene, band_size=16).render(callback=lambda done, total: calls.append((done, total)))
        assert calls == [(16, 40), (32, 40), (40, 40)]

    def test_invalid_band_size(self):
        from whitted.core.renderer import FrameRenderer

        with pytest.raises(ValueError):
            FrameRenderer(_red_sphere_scene(), band_size=0)

    def test_mesh_stats(self, ivory):
        from whitted.core.renderer import render
        from whitted.scene.manager import MeshInfo, Scene
        from whitted.scene.wavefront import parse_obj

        obj = parse_obj("v -1 -1 -5\nv 1 -1 -5\nv 0 1 -5\nf 1 2 3\n")
        scene = Scene(
            shapes=[MeshInfo.from_wavefront(obj, ivory)],
            frame_width=16,
            frame_height=16,
            max_reflect_depth=0,
        )
        frame = render(scene)
        stats = frame.stats
        assert stats.mesh_hits > 0
        assert stats.bounding_box_misses > 0
        assert stats.triangle_tests >= stats.mesh_hits

    def test_nan_raises(self, ivory):
        from whitted.core.renderer import render
        from whitted.errors import NumericalInvariantError
        from whitted.scene.manager import Scene, SphereInfo

        scene = Scene(
            shapes=[SphereInfo(center=(0, 0, -10), radius=math.nan, material=ivory)],
            frame_width=4,
            frame_height=4,
        )
        with pytest.raises(NumericalInvariantError):
            render(scene)
