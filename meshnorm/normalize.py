"""
Normalization Engine
====================
Recenters and rescales the vertices of an OBJ file into a canonical frame,
optionally re-expressing them in the frame of a second ("target") mesh.

Only vertex lines are rewritten. Every other line (comments, faces, texture or
normal directives, blank lines) is kept verbatim and in place: reading a file
builds a ledger with one slot per input line, where vertex lines become
`Pending` slots that are resolved in read order once the new positions are
known.
"""
import logging
import os
from enum import Enum
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union

import numpy as np

from meshnorm import vector
from meshnorm.config import VERTEX_TAG
from meshnorm.converter import format_vertex
from meshnorm.errors import DegenerateMeshError, MalformedMeshError

logger = logging.getLogger(__name__)


class Frame(NamedTuple):
    center: np.ndarray
    scale: np.ndarray


class NormalizeKind(Enum):
    AABB = "aabb"
    CENTROID = "centroid"

    def __str__(self) -> str:
        return self.value

    def center_scale(self, vertices: np.ndarray) -> Frame:
        """
            Compute the normalization frame of a vertex list.

            AABB: the box midpoint and the per-axis half extent, so the box maps onto [-1, 1]^3.
            CENTROID: the vertex mean and the largest vertex distance from it, used on all
            three axes so the farthest vertex lands on the unit sphere.

        :param vertices: np.ndarray(#num_vertices, #dim[xyz])
        :return: Frame(center, scale); zero scale components are possible for flat or
                 single point meshes
        """
        vertices = np.asarray(vertices, dtype=float).reshape(-1, 3)
        if self is NormalizeKind.AABB:
            lower, upper = vector.bounding_box(vertices)
            half_extent = vector.div(vector.sub(upper, lower), np.full(3, 2.0))
            return Frame(vector.add(lower, half_extent), half_extent)

        center = vector.mean(vertices)
        distances = np.linalg.norm(vector.sub(vertices, center), axis=1)
        max_dist = distances.max() if distances.size else 1.0
        return Frame(center, np.full(3, max_dist))


class PassThrough(NamedTuple):
    text: str


class Pending(NamedTuple):
    # position of the vertex in the vertex list
    index: int


LedgerSlot = Union[PassThrough, Pending]


def _parse_vertex(tokens: List[str], line_no: int, line: str) -> List[float]:
    if len(tokens) != 4:
        raise MalformedMeshError("vertex record must have exactly 3 coordinates", line_no, line)
    if any("_" in t for t in tokens[1:]):
        raise MalformedMeshError("vertex coordinate is not a number", line_no, line)
    try:
        return [float(t) for t in tokens[1:]]
    except ValueError:
        raise MalformedMeshError("vertex coordinate is not a number", line_no, line) from None


def read_obj(lines: Iterable[str]) -> Tuple[List[LedgerSlot], np.ndarray]:
    """
        Split OBJ lines into a ledger and a vertex list.

    :param lines: the raw text lines, line terminators are dropped
    :raises MalformedMeshError: when a 'v' line does not hold exactly 3 numbers
    :return: (ledger, np.ndarray(#num_vertices, #dim[xyz])) where the ledger has one slot per
             input line and exactly one Pending slot per vertex, in read order
    """
    ledger: List[LedgerSlot] = []
    points: List[List[float]] = []
    for line_no, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        tokens = line.split()
        if tokens and tokens[0] == VERTEX_TAG:
            points.append(_parse_vertex(tokens, line_no, line))
            ledger.append(Pending(len(points) - 1))
        else:
            ledger.append(PassThrough(line))
    return ledger, np.array(points, dtype=float).reshape(-1, 3)


def _read_obj_file(file_name: str) -> Tuple[List[LedgerSlot], np.ndarray]:
    if not os.path.exists(file_name):
        raise FileNotFoundError("{} not found!".format(file_name))

    with open(file_name, "r", encoding="utf-8") as f:
        try:
            ledger, points = read_obj(f)
        except UnicodeDecodeError as e:
            raise MalformedMeshError("{} is not UTF-8 text: {}".format(file_name, e)) from None
    logger.info("Read %s: %d lines, %d vertices", file_name, len(ledger), len(points))
    return ledger, points


def read_vertices(file_name: str) -> np.ndarray:
    return _read_obj_file(file_name)[1]


def transform(vertices: np.ndarray, frame: Frame, target_frame: Optional[Frame] = None) -> np.ndarray:
    # v' = (v - center) / scale, then v'' = v' * target_scale + target_center
    points = vector.div(vector.sub(vertices, frame.center), frame.scale)
    if target_frame is not None:
        points = vector.add(vector.mul(points, target_frame.scale), target_frame.center)
    return points


def normalize_vertices(vertices: np.ndarray,
                       kind: NormalizeKind = NormalizeKind.AABB,
                       target: Optional[np.ndarray] = None,
                       replace_positions: bool = False) -> np.ndarray:
    """
        Compute the new positions of a vertex list.

    :param vertices: np.ndarray(#num_vertices, #dim[xyz]) of the mesh being normalized
    :param kind: how the normalization frame is computed
    :param target: vertices of the mesh whose frame the result is expressed in, if any
    :param replace_positions: copy the target positions verbatim when the vertex counts match
    :raises DegenerateMeshError: when a resulting coordinate is not finite
    :return: np.ndarray(#num_vertices, #dim[xyz]), a new array
    """
    vertices = np.asarray(vertices, dtype=float).reshape(-1, 3)

    if replace_positions and target is not None and len(target) == len(vertices):
        logger.info("Replacing %d vertex positions with the target's", len(vertices))
        points = np.array(target, dtype=float).reshape(-1, 3)
        reason = "target vertex {} is {}"
    else:
        if replace_positions and target is None:
            logger.warning("Replace positions requested without a target mesh, normalizing instead")
        elif replace_positions:
            logger.warning("Replace positions skipped: source has %d vertices, target has %d; normalizing instead",
                           len(vertices), len(target))
        if len(vertices) == 0:
            return vertices.copy()
        points, reason = _frame_transform(vertices, kind, target)

    bad_rows = np.flatnonzero(~np.all(np.isfinite(points), axis=1))
    if bad_rows.size:
        bad = bad_rows[0]
        raise DegenerateMeshError(reason.format(bad, points[bad].tolist()))
    return points


def _frame_transform(vertices: np.ndarray, kind: NormalizeKind, target: Optional[np.ndarray]) -> Tuple[np.ndarray, str]:
    frame = kind.center_scale(vertices)
    logger.debug("%s frame: center=%s scale=%s", kind.name, frame.center, frame.scale)
    target_frame = None
    if target is not None:
        target_frame = kind.center_scale(target)
        logger.debug("%s target frame: center=%s scale=%s", kind.name, target_frame.center, target_frame.scale)

    reason = "{} normalization of vertex {{}} gives {{}} (center={}, scale={}); a frame has zero extent on some " \
             "axis".format(kind.name, frame.center.tolist(), frame.scale.tolist())
    return transform(vertices, frame, target_frame), reason


def resolve(ledger: List[LedgerSlot], points: np.ndarray) -> Iterator[str]:
    for slot in ledger:
        if isinstance(slot, Pending):
            yield format_vertex(points[slot.index])
        else:
            yield slot.text


def normalize_lines(lines: Iterable[str],
                    target_lines: Optional[Iterable[str]] = None,
                    kind: NormalizeKind = NormalizeKind.AABB,
                    replace_positions: bool = False) -> Iterator[str]:
    """
        Normalize in-memory OBJ lines. All reading and validation happens before this
        returns; only the output text is produced lazily.
    """
    ledger, points = read_obj(lines)
    target = read_obj(target_lines)[1] if target_lines is not None else None
    points = normalize_vertices(points, kind, target, replace_positions)
    return resolve(ledger, points)


def normalize(file_name: str,
              to_match: Optional[str] = None,
              kind: NormalizeKind = NormalizeKind.AABB,
              replace_positions: bool = False) -> Iterator[str]:
    """
        Normalize an OBJ file to the unit box (or unit sphere), or into another file's frame.

    :param file_name: the OBJ file to normalize
    :param to_match: an OBJ file whose frame the result is mapped into
    :param kind: NormalizeKind.AABB or NormalizeKind.CENTROID
    :param replace_positions: when to_match has as many vertices as file_name, take its
                              vertex positions as they are
    :raises FileNotFoundError: when an input file does not exist
    :raises MalformedMeshError: on a malformed vertex line in either file
    :raises DegenerateMeshError: when the frame has a zero scale component
    :return: an iterator over the output lines, one per input line, in input order
    """
    ledger, points = _read_obj_file(file_name)
    target = read_vertices(to_match) if to_match is not None else None
    points = normalize_vertices(points, kind, target, replace_positions)
    return resolve(ledger, points)
