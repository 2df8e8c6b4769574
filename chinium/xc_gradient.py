"""Exchange-correlation contributions to nuclear gradients and skeleton Fock derivatives."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np

from chinium.grid_ao import AOValues

MAX_GRIDS_PER_BATCH = 100000

_AXES = "xyz"
_FIRST = ("dx", "dy", "dz")
_SECOND = ("dxx", "dyy", "dzz", "dxy", "dxz", "dyz")
_KNOWN_ORDERS = frozenset({0, 1})


def batch_bounds(ngrids: int, per_batch: int = MAX_GRIDS_PER_BATCH) -> list[tuple[int, int]]:
    """Split ``ngrids`` grid points into consecutive (head, tail) ranges of at most ``per_batch``."""
    if per_batch <= 0:
        raise ValueError("the number of grid points per batch must be positive")
    if ngrids < 0:
        raise ValueError("the number of grid points must not be negative")
    return [(head, min(head + per_batch, ngrids)) for head in range(0, ngrids, per_batch)]


def basis_to_atom(basis_counts: Iterable[int]) -> list[int]:
    """Atom index of every basis function, given the number of basis functions per atom."""
    atoms: list[int] = []
    for atom, count in enumerate(basis_counts):
        if count < 0:
            raise ValueError("basis function counts must not be negative")
        atoms.extend([atom] * count)
    return atoms


def _grid_array(values, ngrids: int, name: str) -> np.ndarray:
    if values is None:
        raise ValueError(f"{name} on grids do not exist")
    array = np.asarray(values, dtype=float).ravel()
    if array.size != ngrids:
        raise ValueError(f"{name} has {array.size} grid values, expected {ngrids}")
    return array


def _atom_arrays(values, ngrids: int, name: str, natoms: Optional[int] = None) -> np.ndarray:
    if values is None:
        raise ValueError(f"{name} on grids does not exist")
    array = np.asarray(values, dtype=float)
    if array.ndim != 3 or array.shape[1] != 3 or array.shape[2] != ngrids:
        raise ValueError(f"{name} must be shaped (natoms, 3, {ngrids}), got {array.shape}")
    if array.shape[0] == 0:
        raise ValueError(f"{name} holds no atoms")
    if natoms is not None and array.shape[0] != natoms:
        raise ValueError(f"{name} has {array.shape[0]} atoms, expected {natoms}")
    return array


def xc_gradient(
    order: int,
    weights,
    rho1xs=None,
    rho1ys=None,
    rho1zs=None,
    erhos=None,
    esigmas=None,
    gds=None,
    gd1xs=None,
    gd1ys=None,
    gd1zs=None,
) -> np.ndarray:
    """XC part of the nuclear gradient, shaped (natoms, 3).

    ``gds`` and ``gd1*s`` are skeleton nuclear gradients of the density and
    its Cartesian derivatives, each shaped (natoms, 3, ngrids). Order 0 covers
    LDA and order 1 adds the gradient-dependent term of GGA.
    """
    w = np.asarray(weights, dtype=float).ravel()
    ngrids = w.size
    if order < 0:
        natoms = 0 if gds is None else len(gds)
        return np.zeros((natoms, 3))

    gd = _atom_arrays(gds, ngrids, "Nuclear gradient of density")
    natoms = gd.shape[0]
    erho = _grid_array(erhos, ngrids, "First-order XC potential w.r.t. density")
    gradient = np.einsum("k,ack->ac", w * erho, gd)

    if order >= 1:
        rho1 = [
            _grid_array(v, ngrids, f"First-order {axis}-derivatives of density")
            for v, axis in zip((rho1xs, rho1ys, rho1zs), _AXES)
        ]
        esigma = _grid_array(esigmas, ngrids, "First-order XC potential w.r.t. sigma")
        gd1 = [
            _atom_arrays(v, ngrids, f"Nuclear gradient of first-order {axis}-derivatives of density", natoms)
            for v, axis in zip((gd1xs, gd1ys, gd1zs), _AXES)
        ]
        factor = w * esigma
        contracted = sum(r[None, None, :] * g for r, g in zip(rho1, gd1))
        gradient = gradient + 2 * np.einsum("k,ack->ac", factor, contracted)
    return gradient


def _ao_array(aos: AOValues, name: str) -> np.ndarray:
    array = getattr(aos, name)
    if array is None:
        raise ValueError(f"AO derivative {name} on grids does not exist")
    return np.asarray(array, dtype=float)


def _second(aos: AOValues, a: str, b: str) -> np.ndarray:
    return _ao_array(aos, "d" + "".join(sorted(a + b)))


def gxc_skeleton(
    orders: Iterable[int],
    weights,
    aos: AOValues,
    d1xs=None,
    d1ys=None,
    d1zs=None,
    vrs=None,
    vss=None,
    bf2atom: Sequence[int] = (),
) -> np.ndarray:
    """Skeleton nuclear derivatives of the XC Fock matrix, shaped (natoms, 3, nbasis, nbasis).

    Basis functions move with the atoms given by ``bf2atom`` while the XC
    potentials ``vrs`` and ``vss`` and the density gradient stay fixed.
    """
    chosen = set(orders)
    unknown = chosen - _KNOWN_ORDERS
    if unknown:
        raise ValueError(f"unsupported orders: {sorted(unknown)}")
    phi = _ao_array(aos, "value")
    nbasis, ngrids = phi.shape
    atoms = np.asarray(bf2atom, dtype=int).ravel()
    if atoms.size == 0:
        raise ValueError("bf2atom is empty")
    if atoms.size != nbasis:
        raise ValueError(f"bf2atom has {atoms.size} entries, expected {nbasis}")
    if atoms.min() < 0:
        raise ValueError("atom indices must not be negative")
    natoms = int(atoms.max()) + 1
    w = _grid_array(weights, ngrids, "Weights")

    mats = np.zeros((3, nbasis, nbasis))
    if chosen:
        grads = [_ao_array(aos, name) for name in _FIRST]
    if 0 in chosen:
        local = w * _grid_array(vrs, ngrids, "dExc/drho")
        for c, grad in enumerate(grads):
            mats[c] -= (grad * local) @ phi.T
    if 1 in chosen:
        for name in _SECOND:
            _ao_array(aos, name)
        d1 = [
            _grid_array(v, ngrids, f"First-order {axis}-derivatives of density")
            for v, axis in zip((d1xs, d1ys, d1zs), _AXES)
        ]
        tmp1 = 2 * w * _grid_array(vss, ngrids, "dExc/dsigma")
        along = sum(d * grad for d, grad in zip(d1, grads))
        for c, axis_c in enumerate(_AXES):
            hess_dot = sum(d * _second(aos, axis_c, axis_r) for d, axis_r in zip(d1, _AXES))
            mats[c] -= (hess_dot * tmp1) @ phi.T + (grads[c] * tmp1) @ along.T

    result = np.zeros((natoms, 3, nbasis, nbasis))
    for atom in range(natoms):
        rows = atoms == atom
        result[atom][:, rows, :] = mats[:, rows, :]
    return result + np.swapaxes(result, -1, -2)