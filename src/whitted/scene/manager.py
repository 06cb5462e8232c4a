"""Scene assembly and upload to the device fields.

Shapes are described on the host by frozen *Info records that carry their
material directly. A Scene collects shapes, lights, the background and the
frame parameters, validates them once, and uploads everything to the
device fields on demand (activate()). The upload is skipped when the same
scene is already on the device.

Each distinct material is uploaded once; shapes refer to it by index.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.materials.material import Material
    >>> from whitted.scene.manager import Scene, SphereInfo
    >>> red = Material((0.9, 0.1, 0.0, 0.0), (0.3, 0.1, 0.1), 10.0, 1.0)
    >>> scene = Scene(
    ...     shapes=[SphereInfo(center=(0, 0, -16), radius=2.0, material=red)],
    ...     frame_width=64,
    ...     frame_height=48,
    ... )
    >>> hit = scene.intersect((0, 0, 0), (0, 0, -1))
    >>> round(hit.hit_distance, 3)
    14.0
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import numpy as np
import numpy.typing as npt

from whitted.camera.pinhole import PinholeCamera, fov_from_degrees
from whitted.core.shading import (
    MAX_REFLECT_DEPTH,
    Light,
    add_light,
    cast_single_ray,
    clear_background,
    clear_lights,
    configure_shading,
    set_background,
)
from whitted.errors import SceneConfigError
from whitted.materials.material import Material, add_material, clear_materials
from whitted.scene.background import solid_background, validate_background
from whitted.scene.intersection import (
    MAX_LANES,
    add_checker_disk,
    add_disk,
    add_mesh,
    add_plane,
    add_polygon,
    add_sphere,
    clear_scene,
    intersect_single,
    vec3,
)
from whitted.scene.wavefront import WavefrontObj, load_obj

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]

# Frames are rendered with one lane per scan line
MAX_FRAME_HEIGHT = MAX_LANES

MaterialIndex = Callable[[Material], int]


def _as_vec3(value: Iterable[float], name: str) -> Vec3:
    components = tuple(float(c) for c in value)
    if len(components) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(components)}")
    return components


def _unit(value: Vec3, name: str) -> Vec3:
    norm = math.sqrt(sum(c * c for c in value))
    if norm == 0.0:
        raise ValueError(f"{name} must be non-zero")
    return (value[0] / norm, value[1] / norm, value[2] / norm)


# =============================================================================
# Shape Records
# =============================================================================


@dataclass(frozen=True)
class SphereInfo:
    """A sphere.

    Attributes:
        center: Center of the sphere.
        radius: Radius of the sphere.
        material: Surface material.
    """

    center: Vec3
    radius: float
    material: Material

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _as_vec3(self.center, "center"))
        object.__setattr__(self, "radius", float(self.radius))

    @property
    def materials(self) -> tuple[Material, ...]:
        return (self.material,)

    def upload(self, material_index: MaterialIndex) -> None:
        add_sphere(vec3(*self.center), self.radius, material_index(self.material))


@dataclass(frozen=True)
class PlaneInfo:
    """An infinite plane. The normal is normalized on construction."""

    point: Vec3
    normal: Vec3
    material: Material

    def __post_init__(self) -> None:
        object.__setattr__(self, "point", _as_vec3(self.point, "point"))
        object.__setattr__(self, "normal", _unit(_as_vec3(self.normal, "normal"), "normal"))

    @property
    def materials(self) -> tuple[Material, ...]:
        return (self.material,)

    def upload(self, material_index: MaterialIndex) -> None:
        add_plane(vec3(*self.point), vec3(*self.normal), material_index(self.material))


@dataclass(frozen=True)
class DiskInfo:
    """A disk: the part of a plane within radius of center."""

    center: Vec3
    normal: Vec3
    radius: float
    material: Material

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _as_vec3(self.center, "center"))
        object.__setattr__(self, "normal", _unit(_as_vec3(self.normal, "normal"), "normal"))
        object.__setattr__(self, "radius", float(self.radius))

    @property
    def materials(self) -> tuple[Material, ...]:
        return (self.material,)

    def upload(self, material_index: MaterialIndex) -> None:
        add_disk(
            vec3(*self.center), vec3(*self.normal), self.radius, material_index(self.material)
        )


@dataclass(frozen=True)
class CheckerDiskInfo:
    """A disk banded in concentric rings of two materials.

    A hit at distance r from the center uses material1 when
    r % period > period / 2, otherwise material2.
    """

    center: Vec3
    normal: Vec3
    radius: float
    period: float
    material1: Material
    material2: Material

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _as_vec3(self.center, "center"))
        object.__setattr__(self, "normal", _unit(_as_vec3(self.normal, "normal"), "normal"))
        object.__setattr__(self, "radius", float(self.radius))
        object.__setattr__(self, "period", float(self.period))
        if not self.period > 0.0:
            raise ValueError(f"period must be positive, got {self.period}")

    @property
    def materials(self) -> tuple[Material, ...]:
        return (self.material1, self.material2)

    def upload(self, material_index: MaterialIndex) -> None:
        add_checker_disk(
            vec3(*self.center),
            vec3(*self.normal),
            self.radius,
            self.period,
            material_index(self.material1),
            material_index(self.material2),
        )


def _triangle_normal(v0: Vec3, v1: Vec3, v2: Vec3) -> Vec3:
    """(v0 - v1) x (v2 - v1), not normalized."""
    a = np.subtract(v0, v1)
    b = np.subtract(v2, v1)
    n = np.cross(a, b)
    return (float(n[0]), float(n[1]), float(n[2]))


@dataclass(frozen=True)
class PolygonInfo:
    """A standalone triangle.

    Edges and normal are derived once on construction. The normal is
    (vertex_0 - vertex_1) x (vertex_2 - vertex_1) and is not normalized.
    """

    vertex_0: Vec3
    vertex_1: Vec3
    vertex_2: Vec3
    material: Material
    edge_1: Vec3 = field(init=False)
    edge_2: Vec3 = field(init=False)
    normal: Vec3 = field(init=False)

    def __post_init__(self) -> None:
        v0 = _as_vec3(self.vertex_0, "vertex_0")
        v1 = _as_vec3(self.vertex_1, "vertex_1")
        v2 = _as_vec3(self.vertex_2, "vertex_2")
        object.__setattr__(self, "vertex_0", v0)
        object.__setattr__(self, "vertex_1", v1)
        object.__setattr__(self, "vertex_2", v2)
        object.__setattr__(self, "edge_1", tuple(b - a for a, b in zip(v0, v1)))
        object.__setattr__(self, "edge_2", tuple(b - a for a, b in zip(v0, v2)))
        object.__setattr__(self, "normal", _triangle_normal(v0, v1, v2))

    @property
    def materials(self) -> tuple[Material, ...]:
        return (self.material,)

    def upload(self, material_index: MaterialIndex) -> None:
        add_polygon(
            vec3(*self.vertex_0),
            vec3(*self.edge_1),
            vec3(*self.edge_2),
            vec3(*self.normal),
            material_index(self.material),
        )


@dataclass(frozen=True, eq=False)
class MeshInfo:
    """A triangle mesh with one material and a bounding box.

    Attributes:
        vertex_0: (N, 3) first vertex of every triangle.
        edge_1: (N, 3) second minus first vertex.
        edge_2: (N, 3) third minus first vertex.
        normals: (N, 3) unnormalized triangle normals.
        bounds_min: Minimum corner of the box around all vertices.
        bounds_max: Maximum corner of the box around all vertices.
        material: Material shared by every triangle.
    """

    vertex_0: npt.NDArray[np.float32]
    edge_1: npt.NDArray[np.float32]
    edge_2: npt.NDArray[np.float32]
    normals: npt.NDArray[np.float32]
    bounds_min: Vec3
    bounds_max: Vec3
    material: Material

    @classmethod
    def from_wavefront(cls, obj: WavefrontObj, material: Material) -> MeshInfo:
        """Build a mesh from parsed OBJ geometry.

        The bounding box covers every vertex of the file, referenced by a
        face or not.

        Raises:
            SceneConfigError: If the geometry has no vertices.
        """
        if len(obj.vertices) == 0:
            raise SceneConfigError("mesh has no vertices")
        triangles = obj.triangles.astype(np.float32)
        v0 = triangles[:, 0]
        v1 = triangles[:, 1]
        v2 = triangles[:, 2]
        bounds_min = obj.vertices.min(axis=0)
        bounds_max = obj.vertices.max(axis=0)
        return cls(
            vertex_0=np.ascontiguousarray(v0),
            edge_1=np.ascontiguousarray(v1 - v0),
            edge_2=np.ascontiguousarray(v2 - v0),
            normals=np.ascontiguousarray(np.cross(v0 - v1, v2 - v1), dtype=np.float32),
            bounds_min=tuple(float(c) for c in bounds_min),
            bounds_max=tuple(float(c) for c in bounds_max),
            material=material,
        )

    @classmethod
    def from_file(cls, filepath: str | Path, material: Material) -> MeshInfo:
        return cls.from_wavefront(load_obj(filepath), material)

    @property
    def triangle_count(self) -> int:
        return len(self.vertex_0)

    @property
    def materials(self) -> tuple[Material, ...]:
        return (self.material,)

    def upload(self, material_index: MaterialIndex) -> None:
        add_mesh(
            self.vertex_0,
            self.edge_1,
            self.edge_2,
            self.normals,
            vec3(*self.bounds_min),
            vec3(*self.bounds_max),
            material_index(self.material),
        )


ShapeInfo = Union[SphereInfo, PlaneInfo, DiskInfo, CheckerDiskInfo, PolygonInfo, MeshInfo]

SHAPE_TYPES = (SphereInfo, PlaneInfo, DiskInfo, CheckerDiskInfo, PolygonInfo, MeshInfo)


@dataclass(frozen=True)
class HitResult:
    """Nearest hit returned by Scene.intersect().

    Attributes:
        hit_distance: Distance along the (normalized) ray.
        hit_point: World-space hit point.
        hit_normal: Surface normal at the hit. Not normalized for polygons.
        material: Material of the surface that was hit.
    """

    hit_distance: float
    hit_point: Vec3
    hit_normal: Vec3
    material: Material


# =============================================================================
# Device State
# =============================================================================

_active_scene: Scene | None = None


def clear_device_scene() -> None:
    """Clear every device-side scene table.

    Empties shapes, materials and lights, resets the background to black and
    forgets which scene is uploaded.
    """
    global _active_scene
    clear_scene()
    clear_materials()
    clear_lights()
    clear_background()
    _active_scene = None


def _normalized(direction: Iterable[float]) -> Vec3:
    d = _as_vec3(direction, "direction")
    return _unit(d, "direction")


# =============================================================================
# Scene
# =============================================================================


class Scene:
    """Everything needed to render a frame.

    A Scene is immutable after construction. Rendering, intersect() and
    cast_ray() upload it to the device fields first; the upload happens
    only when a different scene was uploaded since.

    Attributes:
        shapes: Tuple of shape records.
        lights: Tuple of point lights.
        materials: Distinct materials in first-use order; a material's
            position is its device index.
        background: Read-only float32 array (H, W, 3) in [0, 1].
        frame_width: Image width in pixels.
        frame_height: Image height in pixels.
        fov: Signed field of view in radians.
        max_reflect_depth: Recursion limit of the shading engine.
    """

    def __init__(
        self,
        *,
        shapes: Iterable[ShapeInfo] = (),
        lights: Iterable[Light] = (),
        background: npt.ArrayLike | None = None,
        frame_width: int = 640,
        frame_height: int = 480,
        fov: float = fov_from_degrees(60.0),
        max_reflect_depth: int = 4,
    ) -> None:
        """Create and validate a scene.

        Raises:
            SceneConfigError: If a parameter is out of range or the
                background has the wrong shape.
            TypeError: If a shape is not a shape record.
        """
        self.shapes: tuple[ShapeInfo, ...] = tuple(shapes)
        self.lights: tuple[Light, ...] = tuple(lights)

        for shape in self.shapes:
            if not isinstance(shape, SHAPE_TYPES):
                raise TypeError(f"not a shape record: {shape!r}")

        if frame_width <= 0 or frame_height <= 0:
            raise SceneConfigError(
                f"frame size must be positive, got {frame_width}x{frame_height}"
            )
        if frame_height > MAX_FRAME_HEIGHT:
            raise SceneConfigError(
                f"frame_height {frame_height} exceeds maximum supported ({MAX_FRAME_HEIGHT})"
            )
        if not 0 <= max_reflect_depth <= MAX_REFLECT_DEPTH:
            raise SceneConfigError(
                f"max_reflect_depth must be in [0, {MAX_REFLECT_DEPTH}], got {max_reflect_depth}"
            )
        if not (math.isfinite(fov) and 0.0 < abs(fov) < math.pi):
            raise SceneConfigError(f"fov must be in (-pi, 0) or (0, pi) radians, got {fov}")

        self.frame_width = int(frame_width)
        self.frame_height = int(frame_height)
        self.fov = float(fov)
        self.max_reflect_depth = int(max_reflect_depth)

        if background is None:
            background = solid_background((0.0, 0.0, 0.0))
        pixels = validate_background(background).copy()
        pixels.flags.writeable = False
        self.background = pixels

        materials: dict[Material, int] = {}
        for shape in self.shapes:
            for material in shape.materials:
                materials.setdefault(material, len(materials))
        self._material_index = materials
        self.materials: tuple[Material, ...] = tuple(materials)

    @property
    def camera(self) -> PinholeCamera:
        return PinholeCamera(self.frame_width, self.frame_height, self.fov)

    def __repr__(self) -> str:
        return (
            f"Scene({len(self.shapes)} shapes, {len(self.lights)} lights, "
            f"{len(self.materials)} materials, {self.frame_width}x{self.frame_height})"
        )

    def activate(self) -> None:
        """Upload this scene to the device fields unless it is already there.

        Raises:
            SceneConfigError: If a device table overflows.
        """
        global _active_scene
        if _active_scene is self:
            return

        clear_device_scene()
        try:
            for material in self.materials:
                add_material(material)
            for shape in self.shapes:
                shape.upload(self._material_index.__getitem__)
            for light in self.lights:
                add_light(light)
            set_background(self.background)
        except SceneConfigError:
            clear_device_scene()
            raise

        _active_scene = self
        logger.debug("uploaded %r", self)

    def intersect(self, origin: Iterable[float], direction: Iterable[float]) -> HitResult | None:
        """Find the nearest surface along a ray.

        Args:
            origin: Ray origin.
            direction: Ray direction; normalized before the query.

        Returns:
            The nearest hit, or None if the ray hits nothing.

        Raises:
            NumericalInvariantError: If a NaN distance was encountered.
        """
        self.activate()
        result = intersect_single(_as_vec3(origin, "origin"), _normalized(direction))
        if result is None:
            return None
        distance, point, normal, material_id = result
        return HitResult(
            hit_distance=distance,
            hit_point=point,
            hit_normal=normal,
            material=self.materials[material_id],
        )

    def cast_ray(
        self,
        origin: Iterable[float],
        direction: Iterable[float],
        depth: int = 0,
        *,
        prune_zero_weight: bool = False,
    ) -> Vec3:
        """Compute the color seen along a ray.

        Args:
            origin: Ray origin.
            direction: Ray direction; normalized before tracing.
            depth: Starting recursion depth.
            prune_zero_weight: See configure_shading().

        Returns:
            Unclamped linear RGB.

        Raises:
            NumericalInvariantError: If a NaN distance was encountered.
        """
        self.activate()
        configure_shading(self.max_reflect_depth, prune_zero_weight)
        return cast_single_ray(_as_vec3(origin, "origin"), _normalized(direction), depth)
