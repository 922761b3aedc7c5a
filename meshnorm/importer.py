import logging
import os
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from meshnorm.config import COMMENT_MARKER, OFF_TAG
from meshnorm.errors import MalformedMeshError

logger = logging.getLogger(__name__)


class State(Enum):
    HEADER = "header"
    COUNTS = "counts"
    VERTS = "verts"
    FACES = "faces"
    DONE = "done"


class Action(NamedTuple):
    # one of "header", "counts", "vertex", "face"
    kind: str
    value: object = None


def _parse_count(token: str) -> Optional[int]:
    # non-negative integers, an optional leading "+" and nothing else
    digits = token[1:] if token.startswith("+") else token
    if digits.isascii() and digits.isdigit():
        return int(digits)
    return None


def _parse_coord(token: str) -> Optional[float]:
    # float() also takes digit separators, which are not valid in mesh files
    if "_" in token:
        return None
    try:
        return float(token)
    except ValueError:
        return None


def transition(state: State, tokens: Sequence[str]) -> Tuple[State, Action]:
    """
        Single step of the OFF grammar: Header -> Counts -> Verts -> Faces -> Done.

        The step never moves backwards. Leaving Verts and Faces depends on how many
        items were read so far, which is handled by `settle`.

    :param state: the current parser state
    :param tokens: the whitespace separated tokens of one non-comment line
    :raises ValueError: when the line does not fit the current state; the message says why
    :return: Tuple[State, Action]: the state after this line and what to record
    """
    if state == State.DONE:
        raise ValueError("unexpected line after reading all items")

    if len(tokens) == 1 and tokens[0].lower() == OFF_TAG:
        if state != State.HEADER:
            raise ValueError("OFF header is only allowed before the counts line")
        return State.COUNTS, Action("header")

    if state in (State.HEADER, State.COUNTS):
        counts = [_parse_count(t) for t in tokens]
        if len(tokens) != 3 or None in counts:
            raise ValueError("expected '<vertexCount> <faceCount> <edgeCount>'")
        # the edge count is only validated, OFF readers are free to ignore it
        num_verts, num_faces, _num_edges = counts
        return State.VERTS, Action("counts", (num_verts, num_faces))

    if state == State.VERTS:
        coords = [_parse_coord(t) for t in tokens]
        if len(tokens) != 3 or None in coords:
            raise ValueError("expected vertex '<x> <y> <z>'")
        return State.VERTS, Action("vertex", coords)

    # State.FACES: <degree> <idx_0> ... <idx_degree-1>
    indices = [_parse_count(t) for t in tokens]
    if None in indices:
        raise ValueError("face entries must be non-negative integers")
    degree, vert_idxs = indices[0], indices[1:]
    if degree != len(vert_idxs):
        raise ValueError("face declares {} indices but lists {}".format(degree, len(vert_idxs)))
    return State.FACES, Action("face", vert_idxs)


def settle(state: State, num_verts: int, num_faces: int, verts_read: int, faces_read: int) -> State:
    # zero declared vertices/faces skip their section entirely
    if state == State.VERTS and verts_read == num_verts:
        state = State.FACES
    if state == State.FACES and faces_read == num_faces:
        state = State.DONE
    return state


def parse_off_lines(lines: Iterable[str], check_indices: bool = True) -> Dict[str, object]:
    """
        Parse the lines of an OFF file.

    :param lines: the raw text lines (with or without line terminators)
    :param check_indices: reject faces that reference a vertex past the declared vertex count
    :raises MalformedMeshError: on any line that does not fit the grammar, or when the input
                                ends before the declared number of vertices and faces was read
    :return: {"vertices": np.ndarray(#num_vertices, #dim[xyz]),
              "faces": List[List[int]]} with 0 based vertex indices, in file order
    """
    state = State.HEADER
    vertices: List[List[float]] = []
    faces: List[List[int]] = []
    num_verts, num_faces = 0, 0

    for line_no, line in enumerate(lines, start=1):
        tokens = line.split()
        # comments and blank lines never count toward the declared totals
        if not tokens or tokens[0].startswith(COMMENT_MARKER):
            continue

        try:
            state, action = transition(state, tokens)
        except ValueError as e:
            raise MalformedMeshError(str(e), line_no, line.rstrip("\r\n")) from None

        if action.kind == "counts":
            num_verts, num_faces = action.value
            logger.debug("OFF counts: %d vertices, %d faces", num_verts, num_faces)
        elif action.kind == "vertex":
            vertices.append(action.value)
        elif action.kind == "face":
            if check_indices and any(idx >= num_verts for idx in action.value):
                raise MalformedMeshError(
                    "face index out of range for {} vertices".format(num_verts), line_no, line.rstrip("\r\n"))
            faces.append(action.value)

        state = settle(state, num_verts, num_faces, len(vertices), len(faces))

    if state != State.DONE:
        raise MalformedMeshError(
            "OFF mesh declares {} vertices and {} faces, but input ended in the {} section after {} vertices "
            "and {} faces".format(num_verts, num_faces, state.value, len(vertices), len(faces)))

    return {"vertices": np.array(vertices, dtype=float).reshape(-1, 3), "faces": faces}


def read_off(off_f_path: str, check_indices: bool = True) -> Dict[str, object]:
    if not os.path.exists(off_f_path):
        raise FileNotFoundError("{} not found!".format(off_f_path))

    with open(off_f_path, "r", encoding="utf-8") as f:
        try:
            mesh = parse_off_lines(f, check_indices=check_indices)
        except UnicodeDecodeError as e:
            raise MalformedMeshError("{} is not UTF-8 text: {}".format(off_f_path, e)) from None

    logger.info("Read %s: %d vertices, %d faces", off_f_path, len(mesh["vertices"]), len(mesh["faces"]))
    return mesh
