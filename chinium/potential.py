"""Exchange-correlation potential matrices assembled from quantities on grid points."""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np

from chinium.grid_ao import AOValues

_KNOWN_ORDERS = frozenset({0, 1, 2})


def _orders(orders: Iterable[int]) -> set[int]:
    chosen = set(orders)
    unknown = chosen - _KNOWN_ORDERS
    if unknown:
        raise ValueError(f"unsupported orders: {sorted(unknown)}")
    return chosen


def _grid_array(values, ngrids: int, name: str) -> np.ndarray:
    if values is None:
        raise ValueError(f"{name} on grids do not exist")
    array = np.asarray(values, dtype=float).ravel()
    if array.size != ngrids:
        raise ValueError(f"{name} has {array.size} grid values, expected {ngrids}")
    return array


def _ao_array(aos: AOValues, name: str, what: str) -> np.ndarray:
    array = getattr(aos, name)
    if array is None:
        raise ValueError(f"{what} of AOs on grids do not exist")
    return np.asarray(array, dtype=float)


def _symmetric_product(left: np.ndarray, right: np.ndarray) -> np.ndarray:
    """Matrix of sum_k left[i,k] right[j,k] + right[i,k] left[j,k]."""
    product = left @ right.T
    return product + product.T


def _gradients(aos: AOValues) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    return tuple(
        _ao_array(aos, name, f"First order {name[-1]}-derivatives") for name in ("dx", "dy", "dz")
    )


def v_matrix(
    orders: Iterable[int],
    weights,
    aos: AOValues,
    d1xs=None,
    d1ys=None,
    d1zs=None,
    vrs=None,
    vss=None,
    vls=None,
    vts=None,
) -> np.ndarray:
    """XC potential matrix for LDA (order 0), GGA (order 1) or meta-GGA (order 2).

    ``vrs``, ``vss``, ``vls`` and ``vts`` are derivatives of the XC energy
    density with respect to rho, sigma, the Laplacian and tau.
    """
    orders = _orders(orders)
    phi = _ao_array(aos, "value", "Values")
    nbasis, ngrids = phi.shape
    if not orders:
        return np.zeros((nbasis, nbasis))
    w = _grid_array(weights, ngrids, "Weights")
    first, second = 1 in orders, 2 in orders

    vr = _grid_array(vrs, ngrids, "dExc/drho")
    fxc = (phi * (w * vr)) @ phi.T
    if first or second:
        grads = _gradients(aos)
        d1 = tuple(
            _grid_array(v, ngrids, f"First order {axis}-derivatives of density")
            for v, axis in zip((d1xs, d1ys, d1zs), "xyz")
        )
        factor = 2 * w * _grid_array(vss, ngrids, "dExc/dsigma")
        for grad, d in zip(grads, d1):
            fxc += _symmetric_product(grad * (factor * d), phi)
    if second:
        lapl = _ao_array(aos, "laplacian", "Laplacians")
        vl = _grid_array(vls, ngrids, "dExc/dlaplacian")
        vt = _grid_array(vts, ngrids, "dExc/dtau")
        kinetic = w * (0.5 * vt + 2 * vl)
        for grad in grads:
            fxc += (grad * kinetic) @ grad.T
        fxc += _symmetric_product(phi * (w * vl), lapl)
    return fxc


def potential_skeleton(
    orders: Iterable[int],
    weights,
    aos: AOValues,
    d1xs=None,
    d1ys=None,
    d1zs=None,
    vss=None,
    vrrs=None,
    vrss=None,
    vsss=None,
    gds=None,
    gd1xs=None,
    gd1ys=None,
    gd1zs=None,
) -> np.ndarray:
    """XC response matrix to a perturbed density ``gds`` and its gradient ``gd1*s``.

    Order 0 alone gives the LDA response; orders 0 and 1 together give the GGA
    response. Any other combination yields a zero matrix.
    """
    orders = _orders(orders)
    phi = _ao_array(aos, "value", "Values")
    nbasis, ngrids = phi.shape
    zeroth, first = 0 in orders, 1 in orders
    if not zeroth:
        return np.zeros((nbasis, nbasis))
    w = _grid_array(weights, ngrids, "Weights")
    vrr = _grid_array(vrrs, ngrids, "d2Exc/drho2")
    gd = _grid_array(gds, ngrids, "Perturbed density")

    if not first:
        return (phi * (w * vrr * gd)) @ phi.T

    grads = _gradients(aos)
    d1 = tuple(
        _grid_array(v, ngrids, f"First order {axis}-derivatives of density")
        for v, axis in zip((d1xs, d1ys, d1zs), "xyz")
    )
    gd1 = tuple(
        _grid_array(v, ngrids, f"Perturbed first order {axis}-derivatives of density")
        for v, axis in zip((gd1xs, gd1ys, gd1zs), "xyz")
    )
    vs = _grid_array(vss, ngrids, "dExc/dsigma")
    vrs_ = _grid_array(vrss, ngrids, "d2Exc/drho dsigma")
    vsss_ = _grid_array(vsss, ngrids, "d2Exc/dsigma2")

    coupling = sum(d * g for d, g in zip(d1, gd1))
    local = w * (vrr * gd + 2 * vrs_ * coupling)
    v = (phi * local) @ phi.T
    gradient_factor = 2 * vrs_ * gd + 4 * vsss_ * coupling
    for grad, d, g in zip(grads, d1, gd1):
        b = w * (gradient_factor * d + 2 * vs * g)
        v += _symmetric_product(grad * b, phi)
    return v