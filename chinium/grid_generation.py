"""Becke-partitioned atom-centred integration grids read from element grid files."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence, Union

import numpy as np

from chinium.grid_ao import Center

ELEMENT_SYMBOLS = (
    "X",
    "H", "He", "Li", "Be", "B", "C", "N", "O", "F", "Ne",
    "Na", "Mg", "Al", "Si", "P", "S", "Cl", "Ar", "K", "Ca",
    "Sc", "Ti", "V", "Cr", "Mn", "Fe", "Co", "Ni", "Cu", "Zn",
    "Ga", "Ge", "As", "Se", "Br", "Kr", "Rb", "Sr", "Y", "Zr",
    "Nb", "Mo", "Tc", "Ru", "Rh", "Pd", "Ag", "Cd", "In", "Sn",
    "Sb", "Te", "I", "Xe", "Cs", "Ba", "La", "Ce", "Pr", "Nd",
    "Pm", "Sm", "Eu", "Gd", "Tb", "Dy", "Ho", "Er", "Tm", "Yb",
    "Lu", "Hf", "Ta", "W", "Re", "Os", "Ir", "Pt", "Au", "Hg",
    "Tl", "Pb", "Bi", "Po", "At", "Rn", "Fr", "Ra", "Ac", "Th",
    "Pa", "U", "Np", "Pu", "Am", "Cm", "Bk", "Cf", "Es", "Fm",
    "Md", "No", "Lr", "Rf", "Db", "Sg", "Bh", "Hs", "Mt", "Ds",
    "Rg", "Cn", "Nh", "Fl", "Mc", "Lv", "Ts", "Og",
)

AngularRule = Callable[[int], tuple[Sequence[float], Sequence[float], Sequence[float], Sequence[float]]]
PathLike = Union[str, Path]


@dataclass(frozen=True)
class RadialFormula:
    """Radial quadrature: ``kind`` is "de2" or "em"."""

    kind: str
    parameters: tuple[float, ...]
    nshells_total: int

    def radius(self, i):
        if self.kind == "de2":
            a, xi_first, _ = self.parameters
            xi = self._step() * np.asarray(i, dtype=float) + xi_first
            return np.exp(a * xi - np.exp(-xi))
        r = self.parameters[0]
        ii = np.asarray(i, dtype=float) + 1
        return r * (ii / (self.nshells_total + 1 - ii)) ** 2

    def weight(self, i):
        if self.kind == "de2":
            a, xi_first, _ = self.parameters
            h = self._step()
            xi = h * np.asarray(i, dtype=float) + xi_first
            return np.exp(3 * a * xi - 3 * np.exp(-xi)) * (a + np.exp(-xi)) * h
        r = self.parameters[0]
        n = self.nshells_total
        ii = np.asarray(i, dtype=float) + 1
        return 2 * r ** 3 * (n + 1) * ii ** 5 / (n + 1 - ii) ** 7

    def _step(self) -> float:
        _, xi_first, xi_last = self.parameters
        return (xi_last - xi_first) / (self.nshells_total - 1)


def de2_radial(a: float, xi_first: float, xi_last: float, nshells_total: int) -> RadialFormula:
    """Double-exponential radial formula over xi in [xi_first, xi_last]."""
    if nshells_total < 2:
        raise ValueError("the de2 formula needs at least two radial shells")
    return RadialFormula("de2", (float(a), float(xi_first), float(xi_last)), int(nshells_total))


def em_radial(r: float, nshells_total: int) -> RadialFormula:
    """Euler-Maclaurin radial formula with scale ``r``."""
    if nshells_total < 1:
        raise ValueError("the em formula needs at least one radial shell")
    return RadialFormula("em", (float(r),), int(nshells_total))


@dataclass(frozen=True)
class GridFile:
    """An element grid: radial formula and (angular points, radial shells) groups."""

    radial: RadialFormula
    groups: tuple[tuple[int, int], ...]

    def num_points(self) -> int:
        return sum(npoints * nshells for npoints, nshells in self.groups)


def parse_grid_file(text: str) -> GridFile:
    """Parse the contents of an element grid file."""
    lines = text.splitlines()
    if len(lines) < 2:
        raise ValueError("grid file is truncated")
    try:
        header = lines[0].split()
        ngroups, nshells_total = int(header[0]), int(header[1])
        formula = lines[1].split()
        kind = formula[0]
        values = [float(token) for token in formula[1:]]
        if kind == "de2":
            radial = de2_radial(values[0], values[1], values[2], nshells_total)
        elif kind == "em":
            radial = em_radial(values[0], nshells_total)
        else:
            raise ValueError(f"unrecognized radial formula {kind!r}")
        group_lines = lines[2:2 + ngroups]
        if len(group_lines) < ngroups:
            raise ValueError("grid file has fewer groups than declared")
        groups = []
        for line in group_lines:
            tokens = line.split()
            groups.append((int(tokens[0]), int(tokens[1])))
    except (IndexError, TypeError) as exc:
        raise ValueError("malformed grid file") from exc
    return GridFile(radial, tuple(groups))


def read_grid_file(path: PathLike) -> GridFile:
    """Read and parse an element grid file."""
    return parse_grid_file(Path(path).read_text())


def _grid_path(directory: PathLike, atomic_number: int) -> Path:
    if not 0 < atomic_number < len(ELEMENT_SYMBOLS):
        raise ValueError(f"no element with atomic number {atomic_number}")
    return Path(directory) / f"{ELEMENT_SYMBOLS[atomic_number]}.grid"


def spherical_grid_number(path: PathLike, centers: Sequence[Center]) -> int:
    """Total number of grid points for the given centres."""
    return sum(read_grid_file(_grid_path(path, c.index)).num_points() for c in centers)


def becke_switch(point, center_j, center_k):
    """Becke's cell function s(mu) for a point between centres j and k."""
    point = np.asarray(point, dtype=float)
    cj = np.asarray(center_j, dtype=float)
    ck = np.asarray(center_k, dtype=float)
    r01 = np.linalg.norm(point - cj, axis=-1)
    r02 = np.linalg.norm(point - ck, axis=-1)
    r12 = np.linalg.norm(cj - ck)
    p = (r01 - r02) / r12
    for _ in range(3):
        p = 1.5 * p - 0.5 * p ** 3
    return 0.5 * (1 - p)


def becke_weights(points, coordinates, owner: int) -> np.ndarray:
    """Becke partition weights of ``points`` for the atom numbered ``owner``."""
    points = np.atleast_2d(np.asarray(points, dtype=float))
    coordinates = np.asarray(coordinates, dtype=float).reshape(-1, 3)
    cells = np.ones((len(coordinates), len(points)))
    for j, cj in enumerate(coordinates):
        for k, ck in enumerate(coordinates):
            if j != k:
                cells[j] *= becke_switch(points, cj, ck)
    return cells[owner] / cells.sum(axis=0)


@dataclass
class MolecularGrid:
    """Grid point coordinates and integration weights."""

    xs: np.ndarray
    ys: np.ndarray
    zs: np.ndarray
    ws: np.ndarray

    @property
    def num_grids(self) -> int:
        return int(self.xs.size)

    @property
    def points(self) -> np.ndarray:
        return np.column_stack((self.xs, self.ys, self.zs))


def spherical_grid(path: PathLike, centers: Sequence[Center], angular_rule: AngularRule) -> MolecularGrid:
    """Build the molecular grid from element grid files in ``path``.

    ``angular_rule(npoints)`` returns unit-sphere points and weights summing
    to one, as Lebedev rules do.
    """
    coordinates = np.array([c.coordinates for c in centers], dtype=float).reshape(-1, 3)
    rules: dict[int, tuple[np.ndarray, np.ndarray]] = {}
    chunks: list[np.ndarray] = []
    weights: list[np.ndarray] = []
    for owner, center in enumerate(centers):
        grid_file = read_grid_file(_grid_path(path, center.index))
        ishell_total = 0
        for npoints, nshells in grid_file.groups:
            if npoints not in rules:
                lx, ly, lz, lw = (np.asarray(a, dtype=float) for a in angular_rule(npoints))
                rules[npoints] = (np.column_stack((lx, ly, lz))[:npoints], lw[:npoints])
            unit, angular_w = rules[npoints]
            for _ in range(nshells):
                ri = grid_file.radial.radius(ishell_total)
                radial_w = grid_file.radial.weight(ishell_total)
                pts = unit * ri + center.coordinates
                becke = becke_weights(pts, coordinates, owner)
                chunks.append(pts)
                weights.append(radial_w * 4 * math.pi * angular_w * becke)
                ishell_total += 1
    if chunks:
        points = np.vstack(chunks)
        ws = np.concatenate(weights)
    else:
        points = np.zeros((0, 3))
        ws = np.zeros(0)
    return MolecularGrid(points[:, 0].copy(), points[:, 1].copy(), points[:, 2].copy(), ws)