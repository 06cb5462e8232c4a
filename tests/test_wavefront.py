"""Tests for the OBJ reader."""

import numpy as np
import pytest

from whitted.errors import SceneConfigError

TETRAHEDRON = """\
# a tetrahedron
o tetra
v 0 0 0
v 1 0 0
v 0 1 0
v 0 0 1
vn 0 0 1
vt 0.5 0.5
f 1 2 3
f 1/1/1 2/1/1 4/1/1
f 1//1 3//1 4//1
f 2 3 4
"""


class TestParseObj:
    """Tests for parse_obj."""

    def test_vertices_and_faces(self):
        from whitted.scene.wavefront import parse_obj

        obj = parse_obj(TETRAHEDRON)
        assert obj.vertices.shape == (4, 3)
        assert obj.vertices.dtype == np.float32
        np.testing.assert_array_equal(
            obj.faces, [[0, 1, 2], [0, 1, 3], [0, 2, 3], [1, 2, 3]]
        )

    def test_triangles(self):
        from whitted.scene.wavefront import parse_obj

        obj = parse_obj(TETRAHEDRON)
        triangles = obj.triangles
        assert triangles.shape == (4, 3, 3)
        np.testing.assert_array_equal(triangles[3], [[1, 0, 0], [0, 1, 0], [0, 0, 1]])

    def test_ignores_other_token_counts(self):
        from whitted.scene.wavefront import parse_obj

        text = "v 1 2\nv 0 0 0 1\nf 1 2 3 4\nv 1 1 1\n"
        obj = parse_obj(text)
        assert obj.vertices.shape == (1, 3)
        assert obj.faces.shape == (0, 3)

    def test_invalid_vertex_reports_line(self):
        from whitted.scene.wavefront import parse_obj

        with pytest.raises(SceneConfigError, match="line 2"):
            parse_obj("v 0 0 0\nv 1 x 0\n")

    def test_invalid_face_index(self):
        from whitted.scene.wavefront import parse_obj

        with pytest.raises(SceneConfigError, match="line 4: invalid face index"):
            parse_obj("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 b 3\n")

    def test_face_index_out_of_range(self):
        from whitted.scene.wavefront import parse_obj

        with pytest.raises(SceneConfigError, match="line 4: face references vertex 4"):
            parse_obj("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 4\n", source="tri.obj")

    def test_zero_index_rejected(self):
        from whitted.scene.wavefront import parse_obj

        with pytest.raises(SceneConfigError, match="vertex 0"):
            parse_obj("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 0 1 2\n")


class TestLoadObj:
    """Tests for load_obj."""

    def test_reads_file(self, tmp_path):
        from whitted.scene.wavefront import load_obj

        path = tmp_path / "tetra.obj"
        path.write_text(TETRAHEDRON)
        obj = load_obj(path)
        assert len(obj.faces) == 4

    def test_missing_file(self, tmp_path):
        from whitted.scene.wavefront import load_obj

        with pytest.raises(SceneConfigError, match="failed to read mesh file"):
            load_obj(tmp_path / "missing.obj")
