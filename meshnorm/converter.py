from typing import Iterable, Iterator, Sequence

import numpy as np

from meshnorm.config import FACE_INDEX_SEPARATOR, FACE_TAG, VERTEX_TAG


def format_vertex(vertex: Sequence[float]) -> str:
    # repr of a python float is the shortest text that parses back to the same value
    x, y, z = (float(c) for c in vertex)
    return "{} {!r} {!r} {!r}".format(VERTEX_TAG, x, y, z)


def format_face(face: Iterable[int]) -> str:
    # stored indices are 0 based, OBJ references are 1 based
    trailing = "".join("{}{} ".format(vert_idx + 1, FACE_INDEX_SEPARATOR) for vert_idx in face)
    return "{} {}".format(FACE_TAG, trailing)


def to_obj(vertices: np.ndarray, faces: Iterable[Iterable[int]]) -> Iterator[str]:
    """
        Emit an OBJ description of a parsed OFF mesh: all vertex lines, then all face lines,
        both in their original order.

    :param vertices: np.ndarray(#num_vertices, #dim[xyz])
    :param faces: 0 based vertex indices per face
    :return: a generator over the OBJ lines (without line terminators)
    """
    for vertex in vertices:
        yield format_vertex(vertex)
    for face in faces:
        yield format_face(face)
