"""Values and Cartesian derivatives of contracted Gaussian basis functions on grid points."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import lru_cache
from itertools import combinations
from typing import Iterable, Optional, Sequence

import numpy as np

MAX_PURE_ANGULAR_MOMENTUM = 6

_AXES = {"x": 0, "y": 1, "z": 2}

_FIRST = ("x", "y", "z")
_SECOND = ("xx", "yy", "zz", "xy", "xz", "yz")
_THIRD = ("xxx", "xxy", "xxz", "xyy", "xyz", "xzz", "yyy", "yyz", "yzz", "zzz")

Monomial = tuple[int, int, int]
Polynomial = dict[Monomial, float]


def _shift(poly: Polynomial, axis: int, scale: float = 1.0) -> Polynomial:
    out: Polynomial = {}
    for powers, coef in poly.items():
        new = list(powers)
        new[axis] += 1
        key = (new[0], new[1], new[2])
        out[key] = out.get(key, 0.0) + scale * coef
    return out


def _combine(*terms: tuple[float, Polynomial]) -> Polynomial:
    out: Polynomial = {}
    for scale, poly in terms:
        for powers, coef in poly.items():
            out[powers] = out.get(powers, 0.0) + scale * coef
    return {k: v for k, v in out.items() if v != 0.0}


def _times_r2(poly: Polynomial) -> Polynomial:
    return _combine((1.0, _shift(_shift(poly, 0), 0)),
                    (1.0, _shift(_shift(poly, 1), 1)),
                    (1.0, _shift(_shift(poly, 2), 2)))


@lru_cache(maxsize=None)
def _solid_harmonics(l: int) -> tuple[tuple[tuple[Monomial, float], ...], ...]:
    """Real regular solid harmonics of degree l, ordered m = -l..l.

    They are scaled so that the sum of their squares is r^(2l), which gives
    every component the same angular norm as x^l.
    """
    table: dict[tuple[int, int], Polynomial] = {(0, 0): {(0, 0, 0): 1.0}}
    for n in range(l):
        top = table[(n, n)]
        bottom = table[(n, -n)]
        factor = math.sqrt((2.0 if n == 0 else 1.0) * (2 * n + 1) / (2 * n + 2))
        if n == 0:
            new_top = _combine((factor, _shift(top, 0)))
            new_bottom = _combine((factor, _shift(top, 1)))
        else:
            new_top = _combine((factor, _shift(top, 0)), (-factor, _shift(bottom, 1)))
            new_bottom = _combine((factor, _shift(top, 1)), (factor, _shift(bottom, 0)))
        for m in range(-n, n + 1):
            terms = [(float(2 * n + 1), _shift(table[(n, m)], 2))]
            if abs(m) <= n - 1:
                terms.append((-math.sqrt((n + m) * (n - m)), _times_r2(table[(n - 1, m)])))
            norm = math.sqrt((n + m + 1) * (n - m + 1))
            table[(n + 1, m)] = _combine(*((s / norm, p) for s, p in terms))
        table[(n + 1, n + 1)] = new_top
        table[(n + 1, -n - 1)] = new_bottom
    return tuple(tuple(sorted(table[(l, m)].items())) for m in range(-l, l + 1))


@lru_cache(maxsize=None)
def _angular(shell_type: int) -> tuple[tuple[tuple[Monomial, float], ...], ...]:
    if shell_type == 0:
        return (((((0, 0, 0)), 1.0),),)
    if shell_type == 1:
        return ((((1, 0, 0), 1.0),), (((0, 1, 0), 1.0),), (((0, 0, 1), 1.0),))
    if -MAX_PURE_ANGULAR_MOMENTUM <= shell_type <= -1:
        return _solid_harmonics(-shell_type)
    raise ValueError(f"unsupported shell type {shell_type}")


def _differentiate(poly: Iterable[tuple[Monomial, float]], axis: int) -> tuple[tuple[Monomial, float], ...]:
    out: Polynomial = {}
    for powers, coef in poly:
        if powers[axis] == 0:
            continue
        new = list(powers)
        new[axis] -= 1
        key = (new[0], new[1], new[2])
        out[key] = out.get(key, 0.0) + coef * powers[axis]
    return tuple(sorted(out.items()))


@lru_cache(maxsize=None)
def _angular_derivative(shell_type: int, label: str) -> tuple[tuple[tuple[Monomial, float], ...], ...]:
    if not label:
        return _angular(shell_type)
    previous = _angular_derivative(shell_type, label[:-1])
    axis = _AXES[label[-1]]
    return tuple(_differentiate(poly, axis) for poly in previous)


def _evaluate(polys, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> np.ndarray:
    out = np.zeros((len(polys), x.size))
    for row, poly in zip(out, polys):
        for (a, b, c), coef in poly:
            row += coef * x ** a * y ** b * z ** c
    return out


@dataclass
class Shell:
    """A contracted Gaussian shell.

    ``shell_type`` is 0 for s, 1 for Cartesian p and -l for pure shells of
    angular momentum l (1 to 6). ``coefficients`` are the normalized
    contraction coefficients.
    """

    shell_type: int
    exponents: np.ndarray
    coefficients: np.ndarray

    def __post_init__(self) -> None:
        self.exponents = np.atleast_1d(np.asarray(self.exponents, dtype=float))
        self.coefficients = np.atleast_1d(np.asarray(self.coefficients, dtype=float))
        if self.exponents.shape != self.coefficients.shape:
            raise ValueError("exponents and coefficients differ in length")
        _angular(self.shell_type)

    @property
    def angular_momentum(self) -> int:
        return abs(self.shell_type)

    def size(self) -> int:
        l = self.angular_momentum
        if self.shell_type < 0:
            return 2 * l + 1
        return (l + 1) * (l + 2) // 2


@dataclass
class Center:
    """An atomic centre: atomic number, position and its basis shells."""

    index: int
    coordinates: np.ndarray
    shells: list[Shell] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.coordinates = np.asarray(self.coordinates, dtype=float).reshape(3)

    def num_basis(self) -> int:
        return sum(shell.size() for shell in self.shells)


def num_basis(centers: Iterable[Center]) -> int:
    """Total number of basis functions on all centres."""
    return sum(center.num_basis() for center in centers)


@dataclass
class AOValues:
    """Basis function values and derivatives, each shaped (nbasis, ngrids)."""

    order: int
    value: np.ndarray
    dx: Optional[np.ndarray] = None
    dy: Optional[np.ndarray] = None
    dz: Optional[np.ndarray] = None
    laplacian: Optional[np.ndarray] = None
    dxx: Optional[np.ndarray] = None
    dyy: Optional[np.ndarray] = None
    dzz: Optional[np.ndarray] = None
    dxy: Optional[np.ndarray] = None
    dxz: Optional[np.ndarray] = None
    dyz: Optional[np.ndarray] = None
    dxxx: Optional[np.ndarray] = None
    dxxy: Optional[np.ndarray] = None
    dxxz: Optional[np.ndarray] = None
    dxyy: Optional[np.ndarray] = None
    dxyz: Optional[np.ndarray] = None
    dxzz: Optional[np.ndarray] = None
    dyyy: Optional[np.ndarray] = None
    dyyz: Optional[np.ndarray] = None
    dyzz: Optional[np.ndarray] = None
    dzzz: Optional[np.ndarray] = None


def _labels(order: int) -> list[str]:
    labels = [""]
    for level, group in enumerate((_FIRST, _SECOND, _THIRD), start=1):
        if order >= level:
            labels.extend(group)
    return labels


def _radial_derivatives(shell: Shell, x, y, z, order: int) -> dict[str, np.ndarray]:
    r2 = x * x + y * y + z * z
    alphas = shell.exponents[:, None]
    prims = shell.coefficients[:, None] * np.exp(-alphas * r2[None, :])
    t0 = prims.sum(axis=0)
    rad = {"": t0}
    if order < 1:
        return rad
    t1 = (prims * alphas).sum(axis=0)
    rad.update(x=-2 * x * t1, y=-2 * y * t1, z=-2 * z * t1)
    if order < 2:
        return rad
    t2 = (prims * alphas ** 2).sum(axis=0)
    rad.update(
        xx=-2 * t1 + 4 * x * x * t2,
        yy=-2 * t1 + 4 * y * y * t2,
        zz=-2 * t1 + 4 * z * z * t2,
        xy=4 * t2 * x * y,
        xz=4 * t2 * x * z,
        yz=4 * t2 * y * z,
    )
    if order < 3:
        return rad
    t3 = (prims * alphas ** 3).sum(axis=0)
    rad.update(
        xxx=12 * x * t2 - 8 * x ** 3 * t3,
        xxy=4 * y * t2 - 8 * x * x * y * t3,
        xxz=4 * z * t2 - 8 * x * x * z * t3,
        xyy=4 * x * t2 - 8 * x * y * y * t3,
        xyz=-8 * t3 * x * y * z,
        xzz=4 * x * t2 - 8 * x * z * z * t3,
        yyy=12 * y * t2 - 8 * y ** 3 * t3,
        yyz=4 * z * t2 - 8 * y * y * z * t3,
        yzz=4 * y * t2 - 8 * y * z * z * t3,
        zzz=12 * z * t2 - 8 * z ** 3 * t3,
    )
    return rad


def _leibniz(label: str, radial: dict[str, np.ndarray], angular: dict[str, np.ndarray]) -> np.ndarray:
    total = np.zeros_like(angular[""])
    positions = range(len(label))
    for k in range(len(label) + 1):
        for chosen in combinations(positions, k):
            on_radial = "".join(sorted(label[i] for i in chosen))
            on_angular = "".join(sorted(label[i] for i in positions if i not in chosen))
            total += radial[on_radial][None, :] * angular[on_angular]
    return total


def get_ao_values(
    centers: Sequence[Center],
    xs: Sequence[float],
    ys: Sequence[float],
    zs: Sequence[float],
    order: int = 0,
) -> AOValues:
    """Evaluate all basis functions and their derivatives up to ``order`` (0 to 3)."""
    if not 0 <= order <= 3:
        raise ValueError(f"derivative order must be between 0 and 3, got {order}")
    xs = np.asarray(xs, dtype=float).ravel()
    ys = np.asarray(ys, dtype=float).ravel()
    zs = np.asarray(zs, dtype=float).ravel()
    if not xs.shape == ys.shape == zs.shape:
        raise ValueError("coordinate arrays differ in length")
    labels = _labels(order)
    nbasis = num_basis(centers)
    results = {label: np.zeros((nbasis, xs.size)) for label in labels}
    start = 0
    for center in centers:
        x = xs - center.coordinates[0]
        y = ys - center.coordinates[1]
        z = zs - center.coordinates[2]
        for shell in center.shells:
            stop = start + shell.size()
            radial = _radial_derivatives(shell, x, y, z, order)
            angular = {
                label: _evaluate(_angular_derivative(shell.shell_type, label), x, y, z)
                for label in labels
            }
            for label in labels:
                results[label][start:stop] = _leibniz(label, radial, angular)
            start = stop
    values = AOValues(order=order, value=results[""])
    for label in labels[1:]:
        setattr(values, "d" + label, results[label])
    if order >= 2:
        values.laplacian = results["xx"] + results["yy"] + results["zz"]
    return values