from typing import Iterator, List

import numpy as np

from meshnorm.converter import to_obj
from meshnorm.importer import read_off


class OffMesh:
    def __init__(self, off_f_path: str = None, check_indices: bool = True):
        self.vertices: np.ndarray = np.empty((0, 3))
        self.faces: List[List[int]] = []
        self.check_indices = check_indices
        if off_f_path:
            self.load_mesh(off_f_path)

    def load_mesh(self, off_f_path: str) -> None:
        mesh = read_off(off_f_path=off_f_path, check_indices=self.check_indices)
        self.vertices, self.faces = mesh["vertices"], mesh["faces"]

    def obj_lines(self) -> Iterator[str]:
        return to_obj(self.vertices, self.faces)
