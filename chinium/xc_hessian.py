"""Exchange-correlation skeleton contributions to the nuclear hessian."""

from __future__ import annotations

from typing import Iterable

import numpy as np

_AXES = "xyz"
_KNOWN_ORDERS = frozenset({0, 1})


def _grid_array(values, ngrids: int, name: str) -> np.ndarray:
    if values is None:
        raise ValueError(f"{name} on grids do not exist")
    array = np.asarray(values, dtype=float).ravel()
    if array.size != ngrids:
        raise ValueError(f"{name} has {array.size} grid values, expected {ngrids}")
    return array


def _gradient_arrays(values, ngrids: int, name: str, npert=None) -> np.ndarray:
    """Nuclear gradient arrays shaped (natoms, 3, ngrids), flattened to (3 natoms, ngrids)."""
    if values is None:
        raise ValueError(f"{name} on grids does not exist")
    array = np.asarray(values, dtype=float)
    if array.ndim != 3 or array.shape[1] != 3 or array.shape[2] != ngrids:
        raise ValueError(f"{name} must be shaped (natoms, 3, {ngrids}), got {array.shape}")
    if array.shape[0] == 0:
        raise ValueError(f"{name} holds no atoms")
    flat = array.reshape(-1, ngrids)
    if npert is not None and flat.shape[0] != npert:
        raise ValueError(f"{name} has {flat.shape[0]} perturbations, expected {npert}")
    return flat


def _hessian_arrays(values, ngrids: int, name: str, npert=None) -> np.ndarray:
    if values is None:
        raise ValueError(f"{name} on grids does not exist")
    array = np.asarray(values, dtype=float)
    if array.ndim != 3 or array.shape[0] != array.shape[1] or array.shape[2] != ngrids:
        raise ValueError(f"{name} must be shaped (npert, npert, {ngrids}), got {array.shape}")
    if array.shape[0] == 0:
        raise ValueError(f"{name} holds no perturbations")
    if npert is not None and array.shape[0] != npert:
        raise ValueError(f"{name} has {array.shape[0]} perturbations, expected {npert}")
    return array


def _upper_symmetric(matrix: np.ndarray) -> np.ndarray:
    # Only elements with the first index not after the second are read.
    return np.triu(matrix) + np.triu(matrix, 1).T


def hxc_skeleton(
    orders: Iterable[int],
    weights,
    d1xs=None,
    d1ys=None,
    d1zs=None,
    vrrs=None,
    vrss=None,
    vsss=None,
    gds=None,
    gd1xs=None,
    gd1ys=None,
    gd1zs=None,
    vrs=None,
    vss=None,
    hds=None,
    hd1xs=None,
    hd1ys=None,
    hd1zs=None,
    part1: bool = True,
    part2: bool = True,
) -> np.ndarray:
    """Symmetric XC skeleton hessian, shaped (3 natoms, 3 natoms).

    Part 1 couples skeleton nuclear gradients of the density (``gds``,
    ``gd1*s``, each (natoms, 3, ngrids)) through the second derivatives of the
    XC energy density. Part 2 contracts skeleton nuclear hessians of the
    density (``hds``, ``hd1*s``, each (3 natoms, 3 natoms, ngrids), upper
    triangle read) with the first derivatives. Order 0 covers LDA and order 1
    adds the gradient-dependent GGA terms.
    """
    chosen = set(orders)
    unknown = chosen - _KNOWN_ORDERS
    if unknown:
        raise ValueError(f"unsupported orders: {sorted(unknown)}")
    zeroth, first = 0 in chosen, 1 in chosen
    w = np.asarray(weights, dtype=float).ravel()
    ngrids = w.size

    npert = None
    if part2 and hds is not None:
        npert = np.asarray(hds).shape[0]
    elif gds is not None:
        npert = 3 * np.asarray(gds).shape[0]
    elif hds is not None:
        npert = np.asarray(hds).shape[0]

    if not chosen or not (part1 or part2):
        return np.zeros((npert or 0, npert or 0))

    h = None

    if part1:
        gd = _gradient_arrays(gds, ngrids, "Nuclear gradient of density", npert)
        npert = gd.shape[0]
        h = np.zeros((npert, npert))
        if zeroth:
            vrr = _grid_array(vrrs, ngrids, "Second-order XC potential w.r.t. density")
            h += (gd * (w * vrr)) @ gd.T
        if first:
            vs = _grid_array(vss, ngrids, "First-order XC potential w.r.t. sigma")
            vrs_ = _grid_array(vrss, ngrids, "Second-order XC potential w.r.t. density and sigma")
            vsss_ = _grid_array(vsss, ngrids, "Second-order XC potential w.r.t. sigma")
            d1 = [
                _grid_array(v, ngrids, f"First-order {axis}-derivatives of density")
                for v, axis in zip((d1xs, d1ys, d1zs), _AXES)
            ]
            gd1 = [
                _gradient_arrays(
                    v, ngrids,
                    f"Nuclear gradient of first-order {axis}-derivative of density", npert,
                )
                for v, axis in zip((gd1xs, gd1ys, gd1zs), _AXES)
            ]
            gs = 2 * sum(d[None, :] * g for d, g in zip(d1, gd1))
            cross = (gd * (w * vrs_)) @ gs.T
            h += cross + cross.T
            h += (gs * (w * vsss_)) @ gs.T
            for g in gd1:
                h += 2 * (g * (w * vs)) @ g.T

    if part2:
        hd = _hessian_arrays(hds, ngrids, "Nuclear hessian of density", npert)
        npert = hd.shape[0]
        if h is None:
            h = np.zeros((npert, npert))
        contribution = np.zeros((npert, npert))
        if zeroth:
            vr = _grid_array(vrs, ngrids, "First-order XC potential w.r.t. density")
            contribution += np.einsum("ijk,k->ij", hd, w * vr)
        if first:
            vs = _grid_array(vss, ngrids, "First-order XC potential w.r.t. sigma")
            d1 = [
                _grid_array(v, ngrids, f"First-order {axis}-derivatives of density")
                for v, axis in zip((d1xs, d1ys, d1zs), _AXES)
            ]
            hd1 = [
                _hessian_arrays(
                    v, ngrids,
                    f"Nuclear hessian of first-order {axis}-derivative of density", npert,
                )
                for v, axis in zip((hd1xs, hd1ys, hd1zs), _AXES)
            ]
            factor = 2 * w * vs
            for d, hh in zip(d1, hd1):
                contribution += np.einsum("ijk,k->ij", hh, factor * d)
        h += _upper_symmetric(contribution)

    return h