"""
Format constants
================
Tokens and defaults shared by the OFF importer, the OBJ emitter and the
normalization engine.

Exports:
    VERTEX_TAG (str): first token of an OBJ vertex line.
    FACE_TAG (str): first token of an OBJ face line.
    FACE_INDEX_SEPARATOR (str): written after every 1-based face index.
    COMMENT_MARKER (str): prefix of comment tokens in OFF files.
    OFF_TAG (str): optional OFF header keyword (compared case-insensitively).
    OFF_EXTENSION (str): file extension routed to the OFF -> OBJ converter.
    DEFAULT_METHOD (str): normalization method used when none is given.
"""

VERTEX_TAG: str = "v"
FACE_TAG: str = "f"
FACE_INDEX_SEPARATOR: str = "//"
COMMENT_MARKER: str = "#"
OFF_TAG: str = "off"
OFF_EXTENSION: str = ".off"
DEFAULT_METHOD: str = "aabb"
