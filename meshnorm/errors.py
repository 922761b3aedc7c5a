from typing import Optional


class MeshError(ValueError):
    """Base class for every error raised while reading or normalizing a mesh."""


class MalformedMeshError(MeshError):
    def __init__(self, message: str, line_no: Optional[int] = None, line: Optional[str] = None):
        if line_no is not None:
            message = "line {}: {} {!r}".format(line_no, message, line)
        super().__init__(message)
        self.line_no = line_no
        self.line = line


class DegenerateMeshError(MeshError):
    """A computed vertex coordinate is infinite or NaN (zero-extent frame)."""
