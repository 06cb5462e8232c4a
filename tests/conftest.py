"""Pytest configuration for renderer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate fields declared by already imported modules.
    """
    from whitted.runtime import init

    init("cpu")
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear device scene data before and after each test."""
    # Import here so field declarations follow ti.init()
    from whitted.core.shading import configure_shading
    from whitted.scene.intersection import reset_stats
    from whitted.scene.manager import clear_device_scene

    def _clear_all():
        clear_device_scene()
        configure_shading(4, prune_zero_weight=False)
        reset_stats()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def ivory():
    from whitted.materials.material import Material

    return Material(
        albedo=(0.6, 0.3, 0.1, 0.0),
        diffuse_color=(0.4, 0.4, 0.3),
        specular_exponent=50.0,
        refractive_index=1.0,
    )


@pytest.fixture
def matte_red():
    from whitted.materials.material import Material

    return Material(
        albedo=(1.0, 0.0, 0.0, 0.0),
        diffuse_color=(1.0, 0.0, 0.0),
        specular_exponent=1.0,
        refractive_index=1.0,
    )


@pytest.fixture
def mirror():
    from whitted.materials.material import Material

    return Material(
        albedo=(0.0, 0.0, 1.0, 0.0),
        diffuse_color=(1.0, 1.0, 1.0),
        specular_exponent=1.0,
        refractive_index=1.0,
    )
