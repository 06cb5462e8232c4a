"""Minimal Wavefront OBJ reader.

Only vertex positions and triangular faces are read. A line is considered
when it splits into exactly four whitespace-separated tokens:

    v x y z        vertex position
    f a b c        triangle, one-based vertex indices

Face tokens of the form "a/b/c" use their leading vertex index. Every other
line (comments, normals, texture coordinates, quads, groups) is ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt

from whitted.errors import SceneConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class WavefrontObj:
    """Geometry read from an OBJ file.

    Attributes:
        vertices: Float32 array of shape (N, 3).
        faces: Int64 array of shape (M, 3) of zero-based vertex indices.
    """

    vertices: npt.NDArray[np.float32]
    faces: npt.NDArray[np.int64]

    @property
    def triangles(self) -> npt.NDArray[np.float32]:
        """Corner positions of every face, shape (M, 3, 3)."""
        return self.vertices[self.faces]


def _parse_vertex_index(token: str, line_number: int) -> int:
    try:
        return int(token.split("/", 1)[0])
    except ValueError as err:
        raise SceneConfigError(f"line {line_number}: invalid face index {token!r}") from err


def parse_obj(text: str, source: str = "<string>") -> WavefrontObj:
    """Parse OBJ text.

    Args:
        text: The file contents.
        source: Name used in error messages.

    Returns:
        The parsed geometry.

    Raises:
        SceneConfigError: On malformed numbers or face indices that do not
            reference a vertex.
    """
    vertices: list[tuple[float, float, float]] = []
    faces: list[tuple[int, int, int]] = []
    face_lines: list[int] = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        tokens = line.split()
        if len(tokens) != 4:
            continue
        kind = tokens[0]
        if kind == "v":
            try:
                vertices.append((float(tokens[1]), float(tokens[2]), float(tokens[3])))
            except ValueError as err:
                raise SceneConfigError(
                    f"{source}: line {line_number}: invalid vertex {line.strip()!r}"
                ) from err
        elif kind == "f":
            try:
                face = tuple(_parse_vertex_index(token, line_number) for token in tokens[1:])
            except SceneConfigError as err:
                raise SceneConfigError(f"{source}: {err}") from err
            faces.append(face)
            face_lines.append(line_number)

    for face, line_number in zip(faces, face_lines):
        for index in face:
            if not 1 <= index <= len(vertices):
                raise SceneConfigError(
                    f"{source}: line {line_number}: face references vertex {index} "
                    f"but only {len(vertices)} vertices are defined"
                )

    vertex_array = np.array(vertices, dtype=np.float32).reshape(-1, 3)
    face_array = np.array(faces, dtype=np.int64).reshape(-1, 3) - 1
    return WavefrontObj(vertices=vertex_array, faces=face_array)


def load_obj(filepath: str | Path) -> WavefrontObj:
    """Read and parse an OBJ file.

    Raises:
        SceneConfigError: If the file cannot be read or is malformed.
    """
    path = Path(filepath)
    try:
        text = path.read_text()
    except OSError as err:
        raise SceneConfigError(f"failed to read mesh file: {path}: {err}") from err

    logger.info("importing wavefront file %s", path)
    obj = parse_obj(text, source=str(path))
    logger.info("imported %d vertices, %d faces from %s", len(obj.vertices), len(obj.faces), path)
    return obj
