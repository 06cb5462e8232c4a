"""Scene file loading.

A scene file is a JSON document:

    {
        "materials": {"ivory": {"albedo": [0.6, 0.3, 0.1, 0.0],
                                "diffuse_color": [0.4, 0.4, 0.3],
                                "specular_exponent": 50.0,
                                "refractive_index": 1.0}},
        "lights": [{"position": [-20, 20, 20], "intensity": 1.5}],
        "shapes": {
            "spheres": [{"center": [-3, 0, -16], "radius": 2, "material": "ivory"}],
            "planes": [{"point": [...], "normal": [...], "material": "..."}],
            "disks": [{"center": [...], "normal": [...], "radius": 1, "material": "..."}],
            "checkboard_disks": [{"center": [...], "normal": [...], "radius": 10,
                                  "dist_between_mats": 2,
                                  "material1": "...", "material2": "..."}],
            "polygons": [{"vertex_0": [...], "vertex_1": [...], "vertex_2": [...],
                          "material": "..."}],
            "objs": [{"wavefront": "duck.obj", "material": "..."}]
        },
        "background": "envmap.jpg",
        "frame_width": 1024,
        "frame_height": 768,
        "fov_in_degrees": 60,
        "max_reflect_depth": 4
    }

Vectors may be written as lists or as objects with x, y, z (and w) keys.
Shape lists may be omitted. "checker_disks" and "period" are accepted as
aliases of "checkboard_disks" and "dist_between_mats". Relative file paths
are resolved against the directory of the scene file.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from whitted.camera.pinhole import fov_from_degrees
from whitted.core.shading import Light
from whitted.errors import SceneConfigError
from whitted.materials.material import Material
from whitted.scene.background import load_background
from whitted.scene.manager import (
    CheckerDiskInfo,
    DiskInfo,
    MeshInfo,
    PlaneInfo,
    PolygonInfo,
    Scene,
    ShapeInfo,
    SphereInfo,
)

logger = logging.getLogger(__name__)

_VECTOR_KEYS = ("x", "y", "z", "w")


def _vector(value: Any, size: int) -> tuple[float, ...]:
    if isinstance(value, Mapping):
        value = [value[key] for key in _VECTOR_KEYS[:size]]
    components = tuple(float(c) for c in value)
    if len(components) != size:
        raise ValueError(f"expected {size} components, got {len(components)}")
    return components


def _material_from_json(data: Mapping[str, Any]) -> Material:
    return Material(
        albedo=_vector(data["albedo"], 4),
        diffuse_color=_vector(data["diffuse_color"], 3),
        specular_exponent=data["specular_exponent"],
        refractive_index=data["refractive_index"],
    )


def _light_from_json(data: Mapping[str, Any]) -> Light:
    return Light(position=_vector(data["position"], 3), intensity=data["intensity"])


class _ShapeBuilder:
    """Turns the "shapes" section into shape records."""

    def __init__(self, materials: Mapping[str, Material], base_dir: Path) -> None:
        self.materials = materials
        self.base_dir = base_dir

    def material(self, kind: str, index: int, name: str) -> Material:
        try:
            return self.materials[name]
        except KeyError:
            raise SceneConfigError(
                f"{kind}[{index}] references unknown material {name!r}"
            ) from None

    def sphere(self, index: int, data: Mapping[str, Any]) -> SphereInfo:
        return SphereInfo(
            center=_vector(data["center"], 3),
            radius=data["radius"],
            material=self.material("spheres", index, data["material"]),
        )

    def plane(self, index: int, data: Mapping[str, Any]) -> PlaneInfo:
        return PlaneInfo(
            point=_vector(data["point"], 3),
            normal=_vector(data["normal"], 3),
            material=self.material("planes", index, data["material"]),
        )

    def disk(self, index: int, data: Mapping[str, Any]) -> DiskInfo:
        return DiskInfo(
            center=_vector(data["center"], 3),
            normal=_vector(data["normal"], 3),
            radius=data["radius"],
            material=self.material("disks", index, data["material"]),
        )

    def checker_disk(self, index: int, data: Mapping[str, Any]) -> CheckerDiskInfo:
        period = data["dist_between_mats"] if "dist_between_mats" in data else data["period"]
        return CheckerDiskInfo(
            center=_vector(data["center"], 3),
            normal=_vector(data["normal"], 3),
            radius=data["radius"],
            period=period,
            material1=self.material("checkboard_disks", index, data["material1"]),
            material2=self.material("checkboard_disks", index, data["material2"]),
        )

    def polygon(self, index: int, data: Mapping[str, Any]) -> PolygonInfo:
        return PolygonInfo(
            vertex_0=_vector(data["vertex_0"], 3),
            vertex_1=_vector(data["vertex_1"], 3),
            vertex_2=_vector(data["vertex_2"], 3),
            material=self.material("polygons", index, data["material"]),
        )

    def mesh(self, index: int, data: Mapping[str, Any]) -> MeshInfo:
        material = self.material("objs", index, data["material"])
        return MeshInfo.from_file(resolve_path(data["wavefront"], self.base_dir), material)

    def build(self, shapes: Any) -> list[ShapeInfo]:
        if not isinstance(shapes, Mapping):
            raise SceneConfigError("scene key 'shapes' must be an object")
        checker_disks = shapes.get("checkboard_disks", shapes.get("checker_disks", []))
        sections = [
            ("spheres", shapes.get("spheres", []), self.sphere),
            ("planes", shapes.get("planes", []), self.plane),
            ("disks", shapes.get("disks", []), self.disk),
            ("checkboard_disks", checker_disks, self.checker_disk),
            ("polygons", shapes.get("polygons", []), self.polygon),
            ("objs", shapes.get("objs", []), self.mesh),
        ]
        result: list[ShapeInfo] = []
        for kind, entries, build in sections:
            if not isinstance(entries, list):
                raise SceneConfigError(f"shapes.{kind} must be a list")
            for index, data in enumerate(entries):
                try:
                    result.append(build(index, data))
                except SceneConfigError:
                    raise
                except (KeyError, TypeError, ValueError) as err:
                    raise SceneConfigError(f"{kind}[{index}]: invalid entry: {err!r}") from err
        return result


def resolve_path(path: str | Path, base_dir: Path) -> Path:
    """Resolve a path from a scene file against the scene file's directory."""
    path = Path(path)
    if path.is_absolute():
        return path
    return base_dir / path


def scene_from_dict(data: Mapping[str, Any], base_dir: str | Path = ".") -> Scene:
    """Build a Scene from a parsed scene document.

    Args:
        data: The parsed JSON document.
        base_dir: Directory that relative file paths are resolved against.

    Returns:
        The assembled scene.

    Raises:
        SceneConfigError: If a required key is missing, a value is invalid,
            a material name is unknown, or a referenced file cannot be loaded.
    """
    base_dir = Path(base_dir)
    try:
        materials = {
            name: _material_from_json(entry) for name, entry in data["materials"].items()
        }
        lights = [_light_from_json(entry) for entry in data.get("lights", [])]
        frame_width = int(data["frame_width"])
        frame_height = int(data["frame_height"])
        fov = fov_from_degrees(float(data["fov_in_degrees"]))
        max_reflect_depth = int(data["max_reflect_depth"])
        background_file = data.get("background")
    except KeyError as err:
        raise SceneConfigError(f"missing scene key: {err.args[0]!r}") from err
    except (TypeError, ValueError, AttributeError) as err:
        raise SceneConfigError(f"invalid scene value: {err}") from err

    shapes = _ShapeBuilder(materials, base_dir).build(data.get("shapes", {}))

    background = None
    if background_file:
        path = resolve_path(background_file, base_dir)
        logger.info("importing background %s", path)
        background = load_background(path)

    return Scene(
        shapes=shapes,
        lights=lights,
        background=background,
        frame_width=frame_width,
        frame_height=frame_height,
        fov=fov,
        max_reflect_depth=max_reflect_depth,
    )


def load_scene(filepath: str | Path) -> Scene:
    """Load a scene file.

    Args:
        filepath: Path to the JSON scene description.

    Returns:
        The assembled scene.

    Raises:
        SceneConfigError: If the file cannot be read or parsed, or describes
            an invalid scene.
    """
    path = Path(filepath)
    logger.info("importing scene %s", path)
    try:
        with path.open() as f:
            data = json.load(f)
    except OSError as err:
        raise SceneConfigError(f"failed to open scene file: {path}: {err}") from err
    except json.JSONDecodeError as err:
        raise SceneConfigError(f"failed to parse scene file: {path}: {err}") from err

    if not isinstance(data, Mapping):
        raise SceneConfigError(f"scene file must contain a JSON object: {path}")

    scene = scene_from_dict(data, base_dir=path.parent)
    logger.info("imported %r", scene)
    return scene
