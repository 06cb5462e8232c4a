"""Scene-level primitive storage and nearest-hit testing.

This module stores every shape variant in Taichi fields (structure of
arrays, one block per variant) and provides scene_intersect(), which tests a
ray against all of them and returns the closest hit.

Mesh triangles live in a shared triangle pool; each mesh entry records the
run of triangles it owns and its bounding box.

Two pieces of per-launch bookkeeping are kept beside the shapes:

* lane_stats: diagnostic counters with one row per lane. A lane is the
  scan line a kernel iteration works on, so no two iterations ever write
  the same counter. Callers reset the counters before a launch and sum them
  afterwards (see collect_stats()).
* a numerical fault flag, raised when a NaN distance reaches the nearest-hit
  comparison. raise_on_numerical_fault() turns it into a Python exception
  after the launch.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.scene.intersection import add_sphere, clear_scene, vec3
    >>> clear_scene()
    >>> add_sphere(vec3(0, 0, -5), 1.0, material_id=0)
    >>> # Use scene_intersect within a Taichi kernel
"""

from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from whitted.core.ray import Ray, make_ray
from whitted.errors import NumericalInvariantError, SceneConfigError
from whitted.geometry.disk import CheckerDisk, Disk, hit_checker_disk, hit_disk
from whitted.geometry.hit import RayHit, miss_record
from whitted.geometry.mesh import Mesh, hit_bounding_box
from whitted.geometry.plane import Plane, hit_plane
from whitted.geometry.polygon import Polygon, hit_polygon
from whitted.geometry.sphere import Sphere, hit_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024
MAX_PLANES = 256
MAX_DISKS = 1024
MAX_CHECKER_DISKS = 256
MAX_POLYGONS = 4096
MAX_MESHES = 256
MAX_TRIANGLES = 1 << 18

# One lane per scan line
MAX_LANES = 4096

# Columns of lane_stats
STAT_BOUNDING_BOX_MISSES = 0
STAT_MESH_HITS = 1
STAT_MESH_MISSES = 2
STAT_TRIANGLE_TESTS = 3
NUM_STATS = 4

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage
plane_points = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_material_ids = ti.field(dtype=ti.i32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Disk storage
disk_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DISKS)
disk_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DISKS)
disk_radii = ti.field(dtype=ti.f32, shape=MAX_DISKS)
disk_material_ids = ti.field(dtype=ti.i32, shape=MAX_DISKS)
num_disks = ti.field(dtype=ti.i32, shape=())

# Checker disk storage
checker_disk_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_CHECKER_DISKS)
checker_disk_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_CHECKER_DISKS)
checker_disk_radii = ti.field(dtype=ti.f32, shape=MAX_CHECKER_DISKS)
checker_disk_periods = ti.field(dtype=ti.f32, shape=MAX_CHECKER_DISKS)
checker_disk_material1_ids = ti.field(dtype=ti.i32, shape=MAX_CHECKER_DISKS)
checker_disk_material2_ids = ti.field(dtype=ti.i32, shape=MAX_CHECKER_DISKS)
num_checker_disks = ti.field(dtype=ti.i32, shape=())

# Standalone polygon storage
polygon_vertex_0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_POLYGONS)
polygon_edge_1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_POLYGONS)
polygon_edge_2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_POLYGONS)
polygon_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_POLYGONS)
polygon_material_ids = ti.field(dtype=ti.i32, shape=MAX_POLYGONS)
num_polygons = ti.field(dtype=ti.i32, shape=())

# Mesh storage: bounds and triangle runs
mesh_bounds_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESHES)
mesh_bounds_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESHES)
mesh_first_triangle = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_triangle_count = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_material_ids = ti.field(dtype=ti.i32, shape=MAX_MESHES)
num_meshes = ti.field(dtype=ti.i32, shape=())

# Triangle pool shared by all meshes
triangle_vertex_0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_edge_1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_edge_2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

lane_stats = ti.field(dtype=ti.i64, shape=(MAX_LANES, NUM_STATS))
_numerical_fault = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all primitives from the scene.

    Resets the primitive counts to zero. The actual field data is not
    cleared but will be overwritten when new primitives are added.
    """
    num_spheres[None] = 0
    num_planes[None] = 0
    num_disks[None] = 0
    num_checker_disks[None] = 0
    num_polygons[None] = 0
    num_meshes[None] = 0
    num_triangles[None] = 0


def _next_index(counter, limit: int, kind: str) -> int:
    idx = counter[None]
    if idx >= limit:
        raise SceneConfigError(f"Maximum number of {kind} ({limit}) exceeded")
    counter[None] = idx + 1
    return idx


def add_sphere(center: vec3, radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Returns:
        The index of the added sphere.

    Raises:
        SceneConfigError: If the maximum number of spheres is exceeded.
    """
    idx = _next_index(num_spheres, MAX_SPHERES, "spheres")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    return idx


def add_plane(point: vec3, normal: vec3, material_id: int = 0) -> int:
    """Add an infinite plane. normal must already be unit length."""
    idx = _next_index(num_planes, MAX_PLANES, "planes")
    plane_points[idx] = point
    plane_normals[idx] = normal
    plane_material_ids[idx] = material_id
    return idx


def add_disk(center: vec3, normal: vec3, radius: float, material_id: int = 0) -> int:
    """Add a disk. normal must already be unit length."""
    idx = _next_index(num_disks, MAX_DISKS, "disks")
    disk_centers[idx] = center
    disk_normals[idx] = normal
    disk_radii[idx] = radius
    disk_material_ids[idx] = material_id
    return idx


def add_checker_disk(
    center: vec3,
    normal: vec3,
    radius: float,
    period: float,
    material1_id: int,
    material2_id: int,
) -> int:
    """Add a banded disk alternating between two materials every period/2."""
    idx = _next_index(num_checker_disks, MAX_CHECKER_DISKS, "checker disks")
    checker_disk_centers[idx] = center
    checker_disk_normals[idx] = normal
    checker_disk_radii[idx] = radius
    checker_disk_periods[idx] = period
    checker_disk_material1_ids[idx] = material1_id
    checker_disk_material2_ids[idx] = material2_id
    return idx


def add_polygon(
    vertex_0: vec3,
    edge_1: vec3,
    edge_2: vec3,
    normal: vec3,
    material_id: int = 0,
) -> int:
    """Add a standalone triangle with precomputed edges and normal."""
    idx = _next_index(num_polygons, MAX_POLYGONS, "polygons")
    polygon_vertex_0[idx] = vertex_0
    polygon_edge_1[idx] = edge_1
    polygon_edge_2[idx] = edge_2
    polygon_normals[idx] = normal
    polygon_material_ids[idx] = material_id
    return idx


@ti.kernel
def _copy_triangles(
    offset: ti.i32,
    vertex_0: ti.types.ndarray(dtype=ti.f32, ndim=2),
    edge_1: ti.types.ndarray(dtype=ti.f32, ndim=2),
    edge_2: ti.types.ndarray(dtype=ti.f32, ndim=2),
    normals: ti.types.ndarray(dtype=ti.f32, ndim=2),
):
    for i in range(vertex_0.shape[0]):
        triangle_vertex_0[offset + i] = vec3(vertex_0[i, 0], vertex_0[i, 1], vertex_0[i, 2])
        triangle_edge_1[offset + i] = vec3(edge_1[i, 0], edge_1[i, 1], edge_1[i, 2])
        triangle_edge_2[offset + i] = vec3(edge_2[i, 0], edge_2[i, 1], edge_2[i, 2])
        triangle_normals[offset + i] = vec3(normals[i, 0], normals[i, 1], normals[i, 2])


def add_mesh(
    vertex_0: npt.NDArray[np.float32],
    edge_1: npt.NDArray[np.float32],
    edge_2: npt.NDArray[np.float32],
    normals: npt.NDArray[np.float32],
    bounds_min: vec3,
    bounds_max: vec3,
    material_id: int = 0,
) -> int:
    """Add a triangle mesh.

    Args:
        vertex_0: (N, 3) first vertex of every triangle.
        edge_1: (N, 3) vertex_1 - vertex_0 of every triangle.
        edge_2: (N, 3) vertex_2 - vertex_0 of every triangle.
        normals: (N, 3) cached triangle normals.
        bounds_min: Minimum corner of the mesh bounding box.
        bounds_max: Maximum corner of the mesh bounding box.
        material_id: Material shared by every triangle.

    Returns:
        The index of the added mesh.

    Raises:
        SceneConfigError: If the mesh or triangle capacity is exceeded.
    """
    count = len(vertex_0)
    first = num_triangles[None]
    if first + count > MAX_TRIANGLES:
        raise SceneConfigError(f"Maximum number of mesh triangles ({MAX_TRIANGLES}) exceeded")
    idx = _next_index(num_meshes, MAX_MESHES, "meshes")

    if count > 0:
        _copy_triangles(
            first,
            np.ascontiguousarray(vertex_0, dtype=np.float32),
            np.ascontiguousarray(edge_1, dtype=np.float32),
            np.ascontiguousarray(edge_2, dtype=np.float32),
            np.ascontiguousarray(normals, dtype=np.float32),
        )
    num_triangles[None] = first + count

    mesh_bounds_min[idx] = bounds_min
    mesh_bounds_max[idx] = bounds_max
    mesh_first_triangle[idx] = first
    mesh_triangle_count[idx] = count
    mesh_material_ids[idx] = material_id
    return idx


def get_shape_counts() -> dict[str, int]:
    """Get the number of stored primitives per variant."""
    return {
        "spheres": int(num_spheres[None]),
        "planes": int(num_planes[None]),
        "disks": int(num_disks[None]),
        "checker_disks": int(num_checker_disks[None]),
        "polygons": int(num_polygons[None]),
        "meshes": int(num_meshes[None]),
        "triangles": int(num_triangles[None]),
    }


# =============================================================================
# Diagnostics
# =============================================================================


@dataclass(frozen=True)
class RenderStats:
    """Mesh diagnostics summed over every lane of a launch.

    Attributes:
        bounding_box_misses: Mesh tests rejected by the slab test.
        mesh_hits: Mesh tests that hit a triangle.
        mesh_misses: Mesh tests that passed the box but hit no triangle.
        triangle_tests: Individual ray-triangle tests performed.
    """

    bounding_box_misses: int = 0
    mesh_hits: int = 0
    mesh_misses: int = 0
    triangle_tests: int = 0


def reset_stats() -> None:
    """Zero the per-lane counters before a launch."""
    lane_stats.fill(0)


def collect_stats() -> RenderStats:
    """Sum the per-lane counters of the last launch."""
    totals = lane_stats.to_numpy().sum(axis=0)
    return RenderStats(
        bounding_box_misses=int(totals[STAT_BOUNDING_BOX_MISSES]),
        mesh_hits=int(totals[STAT_MESH_HITS]),
        mesh_misses=int(totals[STAT_MESH_MISSES]),
        triangle_tests=int(totals[STAT_TRIANGLE_TESTS]),
    )


def raise_on_numerical_fault() -> None:
    """Raise if the last launch compared a NaN distance, then clear the flag.

    Raises:
        NumericalInvariantError: If a NaN hit distance was encountered.
    """
    if _numerical_fault[None] != 0:
        _numerical_fault[None] = 0
        raise NumericalInvariantError(
            "NaN hit distance encountered during nearest-hit selection"
        )


# =============================================================================
# Intersection
# =============================================================================


@ti.func
def _is_nearer(t: ti.f32, closest_t: ti.f32) -> ti.i32:
    """Compare a candidate distance with the current closest one.

    A NaN candidate sets the fault flag instead of being ordered.
    """
    nearer = 0
    if tm.isnan(t):
        _numerical_fault[None] = 1
    elif t < closest_t:
        nearer = 1
    return nearer


@ti.func
def hit_mesh(ray: Ray, mesh_index: ti.i32, lane: ti.i32) -> RayHit:
    """Test a ray against one mesh.

    The bounding box is tested first; a miss returns immediately without
    any triangle test. Otherwise every triangle of the mesh is tested and
    the nearest hit kept.

    Args:
        ray: The ray to test.
        mesh_index: Index of the mesh in the mesh storage.
        lane: Row of lane_stats to count into.

    Returns:
        The nearest triangle hit, or a miss record.
    """
    mesh = Mesh(
        bounds_min=mesh_bounds_min[mesh_index],
        bounds_max=mesh_bounds_max[mesh_index],
        first_triangle=mesh_first_triangle[mesh_index],
        triangle_count=mesh_triangle_count[mesh_index],
    )
    material_id = mesh_material_ids[mesh_index]
    result = miss_record()

    if hit_bounding_box(ray, mesh.bounds_min, mesh.bounds_max) == 0:
        lane_stats[lane, STAT_BOUNDING_BOX_MISSES] += 1
    else:
        closest_t = tm.inf
        for k in range(mesh.triangle_count):
            idx = mesh.first_triangle + k
            polygon = Polygon(
                vertex_0=triangle_vertex_0[idx],
                edge_1=triangle_edge_1[idx],
                edge_2=triangle_edge_2[idx],
                normal=triangle_normals[idx],
                material_id=material_id,
            )
            rec = hit_polygon(ray, polygon)
            lane_stats[lane, STAT_TRIANGLE_TESTS] += 1
            if rec.hit == 1:
                if _is_nearer(rec.hit_distance, closest_t) == 1:
                    closest_t = rec.hit_distance
                    result = rec

        if result.hit == 1:
            lane_stats[lane, STAT_MESH_HITS] += 1
        else:
            lane_stats[lane, STAT_MESH_MISSES] += 1

    return result


@ti.func
def scene_intersect(ray: Ray, lane: ti.i32) -> RayHit:
    """Test ray against all primitives in the scene.

    Iterates through every shape variant, testing each shape and keeping
    the hit with the strictly smallest distance (the first one wins ties).

    Args:
        ray: The ray to test.
        lane: Row of lane_stats to count mesh diagnostics into.

    Returns:
        A RayHit for the closest intersection, or a miss record if no
        intersection was found.
    """
    closest_t = tm.inf
    result = miss_record()

    for i in range(num_spheres[None]):
        sphere = Sphere(
            center=sphere_centers[i],
            radius=sphere_radii[i],
            material_id=sphere_material_ids[i],
        )
        rec = hit_sphere(ray, sphere)
        if rec.hit == 1:
            if _is_nearer(rec.hit_distance, closest_t) == 1:
                closest_t = rec.hit_distance
                result = rec

    for i in range(num_planes[None]):
        plane = Plane(
            point=plane_points[i],
            normal=plane_normals[i],
            material_id=plane_material_ids[i],
        )
        rec = hit_plane(ray, plane)
        if rec.hit == 1:
            if _is_nearer(rec.hit_distance, closest_t) == 1:
                closest_t = rec.hit_distance
                result = rec

    for i in range(num_disks[None]):
        disk = Disk(
            center=disk_centers[i],
            normal=disk_normals[i],
            radius=disk_radii[i],
            material_id=disk_material_ids[i],
        )
        rec = hit_disk(ray, disk)
        if rec.hit == 1:
            if _is_nearer(rec.hit_distance, closest_t) == 1:
                closest_t = rec.hit_distance
                result = rec

    for i in range(num_checker_disks[None]):
        checker_disk = CheckerDisk(
            center=checker_disk_centers[i],
            normal=checker_disk_normals[i],
            radius=checker_disk_radii[i],
            period=checker_disk_periods[i],
            material1_id=checker_disk_material1_ids[i],
            material2_id=checker_disk_material2_ids[i],
        )
        rec = hit_checker_disk(ray, checker_disk)
        if rec.hit == 1:
            if _is_nearer(rec.hit_distance, closest_t) == 1:
                closest_t = rec.hit_distance
                result = rec

    for i in range(num_polygons[None]):
        polygon = Polygon(
            vertex_0=polygon_vertex_0[i],
            edge_1=polygon_edge_1[i],
            edge_2=polygon_edge_2[i],
            normal=polygon_normals[i],
            material_id=polygon_material_ids[i],
        )
        rec = hit_polygon(ray, polygon)
        if rec.hit == 1:
            if _is_nearer(rec.hit_distance, closest_t) == 1:
                closest_t = rec.hit_distance
                result = rec

    for i in range(num_meshes[None]):
        rec = hit_mesh(ray, i, lane)
        if rec.hit == 1:
            if _is_nearer(rec.hit_distance, closest_t) == 1:
                closest_t = rec.hit_distance
                result = rec

    return result


# =============================================================================
# Single-ray query (host entry point)
# =============================================================================

_query_hit = ti.field(dtype=ti.i32, shape=())
_query_distance = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_material_id = ti.field(dtype=ti.i32, shape=())


@ti.kernel
def _intersect_single(origin: vec3, direction: vec3):
    for _ in range(1):
        rec = scene_intersect(make_ray(origin, direction), 0)
        _query_hit[None] = rec.hit
        _query_distance[None] = rec.hit_distance
        _query_point[None] = rec.hit_point
        _query_normal[None] = rec.hit_normal
        _query_material_id[None] = rec.material_id


def intersect_single(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
) -> tuple[float, tuple, tuple, int] | None:
    """Run scene_intersect for one ray from the host.

    Returns:
        (hit_distance, hit_point, hit_normal, material_id), or None on a miss.

    Raises:
        NumericalInvariantError: If a NaN distance was compared.
    """
    reset_stats()
    _intersect_single(vec3(*origin), vec3(*direction))
    raise_on_numerical_fault()
    if _query_hit[None] == 0:
        return None
    return (
        float(_query_distance[None]),
        tuple(float(c) for c in _query_point[None].to_numpy()),
        tuple(float(c) for c in _query_normal[None].to_numpy()),
        int(_query_material_id[None]),
    )
