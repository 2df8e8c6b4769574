"""Initial SCF guess from a superposition of tabulated atomic potentials."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import scipy.linalg
import scipy.special

from chinium.grid_ao import AOValues, Center
from chinium.grid_generation import ELEMENT_SYMBOLS
from chinium.potential import v_matrix

SAP_LINES = 751
_CHUNK = 4096

PathLike = Union[str, Path]


@dataclass(frozen=True)
class SAPTable:
    """Tabulated atomic potential: radii and the values Z(r) with V(r) = Z(r)/r."""

    radii: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        radii = np.asarray(self.radii, dtype=float).ravel()
        values = np.asarray(self.values, dtype=float).ravel()
        if radii.shape != values.shape:
            raise ValueError("radii and values differ in length")
        if radii.size == 0:
            raise ValueError("an atomic potential table needs at least one entry")
        object.__setattr__(self, "radii", radii)
        object.__setattr__(self, "values", values)

    def potential(self, r):
        """Potential at distance ``r`` from the tabulated radius nearest to it.

        Of equally near radii the last one in the table is used.
        """
        r_array = np.asarray(r, dtype=float)
        flat = r_array.ravel()
        out = np.empty_like(flat)
        reversed_radii = self.radii[::-1]
        last = self.radii.size - 1
        for start in range(0, flat.size, _CHUNK):
            chunk = flat[start:start + _CHUNK]
            diffs = np.abs(reversed_radii[None, :] - chunk[:, None])
            index = last - np.argmin(diffs, axis=1)
            out[start:start + _CHUNK] = self.values[index] / chunk
        if r_array.ndim == 0:
            return float(out[0])
        return out.reshape(r_array.shape)


def read_sap_file(path: PathLike) -> SAPTable:
    """Read a table of ``SAP_LINES`` lines, each holding a radius and a value."""
    lines = Path(path).read_text().splitlines()
    if len(lines) < SAP_LINES:
        raise ValueError(f"atomic potential file has {len(lines)} lines, expected {SAP_LINES}")
    radii = []
    values = []
    for number, line in enumerate(lines[:SAP_LINES], start=1):
        tokens = line.split()
        if len(tokens) < 2:
            raise ValueError(f"line {number} of the atomic potential file is malformed")
        radii.append(float(tokens[0]))
        values.append(float(tokens[1]))
    return SAPTable(np.array(radii), np.array(values))


def _sap_path(directory: PathLike, atomic_number: int) -> Path:
    if not 0 < atomic_number < len(ELEMENT_SYMBOLS):
        raise ValueError(f"no element with atomic number {atomic_number}")
    return Path(directory) / f"v_{ELEMENT_SYMBOLS[atomic_number]}.dat"


def superposition_atomic_potential(
    path: PathLike,
    centers: Sequence[Center],
    xs,
    ys,
    zs,
    weights,
    aos: AOValues,
) -> np.ndarray:
    """Potential matrix of the summed atomic potentials of all centres."""
    xs = np.asarray(xs, dtype=float).ravel()
    ys = np.asarray(ys, dtype=float).ravel()
    zs = np.asarray(zs, dtype=float).ravel()
    if not xs.shape == ys.shape == zs.shape:
        raise ValueError("coordinate arrays differ in length")
    tables: dict[int, SAPTable] = {}
    vsap = np.zeros(xs.size)
    for center in centers:
        if center.index not in tables:
            tables[center.index] = read_sap_file(_sap_path(path, center.index))
        x = xs - center.coordinates[0]
        y = ys - center.coordinates[1]
        z = zs - center.coordinates[2]
        r = np.sqrt(x * x + y * y + z * z) + 1.e-12
        vsap += tables[center.index].potential(r)
    return v_matrix([0], weights, aos, vrs=vsap)


def fermi_occupations(energies, chemical_potential: float, temperature: float) -> np.ndarray:
    """Fermi-Dirac occupations 1 / (1 + exp((e - mu) / T))."""
    if temperature <= 0:
        raise ValueError("temperature must be positive")
    energies = np.asarray(energies, dtype=float)
    return scipy.special.expit(-(energies - chemical_potential) / temperature)


@dataclass
class GuessResult:
    """Orbitals of the guess, shared by all listed spins.

    ``spins`` is (0,) for a restricted wavefunction and (1, 2) otherwise.
    ``occupations`` is per spin channel for unrestricted wavefunctions and
    doubled for restricted ones; it is ``None`` at zero temperature.
    """

    coefficients: np.ndarray
    energies: np.ndarray
    occupations: Optional[np.ndarray]
    spins: tuple[int, ...]

    @property
    def restricted(self) -> bool:
        return self.spins == (0,)


def sap_guess(
    kinetic,
    nuclear,
    potential,
    overlap,
    temperature: float = 0.0,
    chemical_potential: float = 0.0,
    restricted: bool = True,
) -> GuessResult:
    """Diagonalize T + V_nuc + V_sap in the metric of the overlap matrix."""
    hamiltonian = (
        np.asarray(kinetic, dtype=float)
        + np.asarray(nuclear, dtype=float)
        + np.asarray(potential, dtype=float)
    )
    energies, coefficients = scipy.linalg.eigh(hamiltonian, np.asarray(overlap, dtype=float))
    occupations = None
    if temperature > 0:
        occupations = fermi_occupations(energies, chemical_potential, temperature)
        if restricted:
            occupations = 2 * occupations
    spins = (0,) if restricted else (1, 2)
    return GuessResult(coefficients, energies, occupations, spins)