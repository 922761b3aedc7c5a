import logging

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from meshnorm.errors import DegenerateMeshError, MalformedMeshError
from meshnorm.normalize import (
    Frame, NormalizeKind, PassThrough, Pending, normalize, normalize_lines, normalize_vertices, read_obj,
    read_vertices,
)

CUBE_OBJ = """# cube
mtllib cube.mtl
o Cube
v 1.0 4.0 -2.0
v 3.0 4.0 -2.0
v 3.0 8.0 -2.0
v 1.0 8.0 10.0
vn 0.0 0.0 1.0

usemtl Material
f 1//1 2//1 3//1
f 1//1 3//1 4//1
"""


def _vertices(lines):
    return np.array([[float(t) for t in l.split()[1:]] for l in lines if l.startswith("v ")])


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


def test_read_obj_ledger():
    ledger, points = read_obj(CUBE_OBJ.splitlines())
    assert len(ledger) == 12
    assert [s for s in ledger if isinstance(s, Pending)] == [Pending(0), Pending(1), Pending(2), Pending(3)]
    assert ledger[0] == PassThrough("# cube")
    assert ledger[8] == PassThrough("")
    assert points.shape == (4, 3)


def test_read_obj_strips_line_terminators():
    ledger, _ = read_obj(["# a\r\n", "v 0 0 0\n"])
    assert ledger == [PassThrough("# a"), Pending(0)]


@pytest.mark.parametrize("line", ["v 1 2", "v 1 2 3 1", "v 1 two 3", "v 1_0 2 3", "v"])
def test_malformed_vertex_line_is_fatal(line):
    with pytest.raises(MalformedMeshError) as excinfo:
        read_obj(["# header", line])
    assert excinfo.value.line_no == 2


def test_aabb_scenario():
    frame = NormalizeKind.AABB.center_scale(np.array([[0.0, 0.0, 0.0], [2.0, 2.0, 2.0]]))
    assert_array_equal(frame.center, [1.0, 1.0, 1.0])
    assert_array_equal(frame.scale, [1.0, 1.0, 1.0])

    out = list(normalize_lines(["v 0 0 0", "v 2 2 2"]))
    assert out == ["v -1.0 -1.0 -1.0", "v 1.0 1.0 1.0"]


def test_centroid_frame_is_isotropic():
    frame = NormalizeKind.CENTROID.center_scale(np.array([[0.0, 0.0, 0.0], [4.0, 0.0, 0.0], [2.0, 3.0, 0.0]]))
    assert_allclose(frame.center, [2.0, 1.0, 0.0])
    assert_allclose(frame.scale, [np.sqrt(5.0)] * 3)


def test_aabb_fits_unit_box(rng):
    verts = rng.uniform(-50.0, 80.0, size=(200, 3)) * [1.0, 0.1, 10.0]
    out = normalize_vertices(verts, NormalizeKind.AABB)
    assert np.all(out >= -1.0 - 1e-12) and np.all(out <= 1.0 + 1e-12)
    lower, upper = out.min(axis=0), out.max(axis=0)
    assert_allclose((lower + upper) / 2, 0.0, atol=1e-12)
    assert_allclose((upper - lower) / 2, 1.0)


def test_aabb_is_a_fixed_point(rng):
    once = normalize_vertices(rng.normal(size=(100, 3)), NormalizeKind.AABB)
    twice = normalize_vertices(once, NormalizeKind.AABB)
    assert_allclose(twice, once, atol=1e-12)


def test_centroid_fits_unit_sphere(rng):
    out = normalize_vertices(rng.normal(5.0, 3.0, size=(150, 3)), NormalizeKind.CENTROID)
    assert_allclose(out.mean(axis=0), 0.0, atol=1e-12)
    assert np.max(np.linalg.norm(out, axis=1)) == pytest.approx(1.0)


def test_target_frame():
    src = np.array([[0.0, 0.0, 0.0], [2.0, 2.0, 2.0]])
    target = np.array([[10.0, 0.0, -1.0], [14.0, 1.0, 1.0]])
    out = normalize_vertices(src, NormalizeKind.AABB, target)
    assert_allclose(out, target)


def test_input_is_not_modified():
    src = np.array([[0.0, 0.0, 0.0], [2.0, 2.0, 2.0]])
    normalize_vertices(src, NormalizeKind.AABB)
    assert_array_equal(src, [[0.0, 0.0, 0.0], [2.0, 2.0, 2.0]])


def test_replace_positions_copies_target_exactly():
    src = CUBE_OBJ.splitlines()
    target = ["v 0.1 0.2 0.3", "v 1e-7 -5 6", "# x", "v 7 8 9.75", "v 1 1 1"]
    out = list(normalize_lines(src, target, NormalizeKind.CENTROID, replace_positions=True))
    assert_array_equal(_vertices(out), _vertices(target))


def test_replace_positions_rejects_non_finite_target():
    with pytest.raises(DegenerateMeshError, match="target vertex 0"):
        normalize_lines(["v 0 0 0", "v 2 2 2"], ["v nan 0 0", "v inf 1 1"], NormalizeKind.AABB,
                        replace_positions=True)


def test_replace_positions_length_mismatch_falls_back(caplog):
    src = ["v 0 0 0", "v 2 2 2"]
    target = ["v 0 0 0", "v 1 1 1", "v 4 4 4"]
    with caplog.at_level(logging.WARNING, logger="meshnorm"):
        out = list(normalize_lines(src, target, NormalizeKind.AABB, replace_positions=True))
    assert out == ["v 0.0 0.0 0.0", "v 4.0 4.0 4.0"]
    assert "Replace positions skipped" in caplog.text


def test_replace_positions_skips_degenerate_source_frame():
    out = list(normalize_lines(["v 1 1 1"], ["v 5 6 7"], NormalizeKind.AABB, replace_positions=True))
    assert out == ["v 5.0 6.0 7.0"]


@pytest.mark.parametrize("kind, verts", [
    (NormalizeKind.AABB, [[0.0, 0.0, 0.0], [1.0, 1.0, 0.0]]),  # flat in z
    (NormalizeKind.AABB, [[3.0, 3.0, 3.0]]),
    (NormalizeKind.CENTROID, [[3.0, 3.0, 3.0]]),
    (NormalizeKind.CENTROID, [[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]]),
])
def test_degenerate_frames_are_rejected(kind, verts):
    with pytest.raises(DegenerateMeshError):
        normalize_vertices(np.array(verts), kind)


def test_empty_target_is_rejected():
    with pytest.raises(DegenerateMeshError):
        normalize_lines(["v 0 0 0", "v 1 1 1"], ["# no vertices"], NormalizeKind.CENTROID)


def test_mesh_without_vertices_passes_through():
    lines = ["# only comments", "", "f 1 2 3"]
    assert list(normalize_lines(lines)) == lines


def test_non_vertex_lines_are_preserved_in_place():
    src = CUBE_OBJ.splitlines()
    out = list(normalize_lines(src, kind=NormalizeKind.CENTROID))
    assert len(out) == len(src)
    for before, after in zip(src, out):
        if before.startswith("v "):
            assert after.startswith("v ")
        else:
            assert after == before


def test_normalize_files(tmp_path):
    src = tmp_path / "cube.obj"
    src.write_text(CUBE_OBJ)
    target = tmp_path / "target.obj"
    target.write_text("v -1 -1 -1\nf 1 1 1\nv 1 1 1\n")

    assert_array_equal(read_vertices(str(target)), [[-1, -1, -1], [1, 1, 1]])
    out = list(normalize(str(src), str(target)))
    assert len(out) == len(CUBE_OBJ.splitlines())
    assert_allclose(_vertices(out), [[-1, -1, -1], [1, -1, -1], [1, 1, -1], [-1, 1, 1]])


def test_normalize_fails_before_producing_output():
    # the error comes from the call itself, not from iterating its result
    with pytest.raises(MalformedMeshError):
        normalize_lines(["v 0 0 0", "v 1 1 1", "v 1 1"])


def test_normalize_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        normalize(str(tmp_path / "missing.obj"))


def test_frame_is_a_value():
    frame = Frame(np.zeros(3), np.ones(3))
    center, scale = frame
    assert_array_equal(center, [0, 0, 0])
    assert_array_equal(scale, [1, 1, 1])


def test_normalize_non_utf8_file(tmp_path):
    src = tmp_path / "latin1.obj"
    src.write_bytes(b"# exported \xa9 2020\nv 0 0 0\nv 2 2 2\n")
    with pytest.raises(MalformedMeshError, match="not UTF-8"):
        normalize(str(src))
