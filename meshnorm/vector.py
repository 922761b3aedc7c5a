import numpy as np
from typing import Tuple


# A Vector3 is a float64 array of shape (3,), a vertex list is an (N, 3) array.
# None of the functions below modify their arguments.

def add(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.add(a, b, dtype=float)


def sub(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.subtract(a, b, dtype=float)


def mul(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.multiply(a, b, dtype=float)


def div(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    # zero divisors give inf/nan, checked by the caller before anything is written
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.divide(a, b, dtype=float)


def norm(v: np.ndarray) -> float:
    return float(np.linalg.norm(v))


def mean(vertices: np.ndarray) -> np.ndarray:
    vertices = np.asarray(vertices, dtype=float).reshape(-1, 3)
    if vertices.shape[0] == 0:
        return np.full(3, np.nan)
    return vertices.mean(axis=0)


def bounding_box(vertices: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Axis aligned bounding box of a vertex list.

    :param vertices: np.ndarray(#num_vertices, #dim[xyz])
    :return: (min corner, max corner); an empty vertex list gives
             ([inf, inf, inf], [-inf, -inf, -inf])
    """
    vertices = np.asarray(vertices, dtype=float).reshape(-1, 3)
    lower = np.min(vertices, axis=0, initial=np.inf)
    upper = np.max(vertices, axis=0, initial=-np.inf)
    return lower, upper
