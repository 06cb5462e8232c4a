"""Taichi runtime initialisation.

Modules that declare Taichi fields (scene storage, materials, lights) must
be imported after init() has run, otherwise Taichi initialises itself with
default options and a later init() invalidates those fields. For the same
reason init() only initialises Taichi once per process.
"""

from __future__ import annotations

import logging

import taichi as ti

logger = logging.getLogger(__name__)

_backend: str | None = None


def init(arch: str = "cpu", *, debug: bool = False) -> str:
    """Initialise Taichi for rendering.

    fast_math is disabled: the nearest-hit query relies on NaN checks and
    the slab test relies on IEEE infinities, both of which fast math is
    allowed to optimise away.

    Args:
        arch: "cpu" or "gpu". A failing GPU initialisation falls back to CPU.
        debug: Enable Taichi's debug mode (bounds checks).

    Returns:
        The backend in use ("cpu" or "gpu"). If Taichi was already
        initialised through this function, the existing backend is kept.

    Raises:
        ValueError: If arch is unknown.
    """
    global _backend
    if arch not in ("cpu", "gpu"):
        raise ValueError(f"Unknown arch: {arch!r} (expected 'cpu' or 'gpu')")
    if _backend is not None:
        if arch != _backend:
            logger.warning("Taichi already initialised with %s backend, ignoring %r", _backend, arch)
        return _backend

    options = {"fast_math": False, "default_fp": ti.f32, "debug": debug}
    if arch == "gpu":
        try:
            ti.init(arch=ti.gpu, **options)
            logger.info("using GPU backend")
            _backend = "gpu"
            return _backend
        except Exception:
            logger.warning("GPU backend unavailable, falling back to CPU")

    ti.init(arch=ti.cpu, **options)
    logger.info("using CPU backend")
    _backend = "cpu"
    return _backend
