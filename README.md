# chinium

Numerical building blocks for Kohn-Sham density functional theory on
atom-centred integration grids, written with numpy and scipy.

## Modules

- `chinium.grid_generation`: per-element grid description files
  (`parse_grid_file`, `read_grid_file`, `GridFile`), radial formulas
  (`RadialFormula`, `de2_radial`, `em_radial`), Becke partitioning
  (`becke_switch`, `becke_weights`) and whole molecular grids
  (`spherical_grid`, `spherical_grid_number`, `MolecularGrid`).
- `chinium.grid_ao`: contracted Gaussian shells and atomic centres
  (`Shell`, `Center`, `num_basis`) and their values and Cartesian
  derivatives up to third order on grid points (`get_ao_values`, which
  returns an `AOValues`). Shell type 0 is s, 1 is Cartesian p, and -l is a
  pure shell of angular momentum l from 1 to 6.
- `chinium.potential`: exchange-correlation potential matrices for LDA, GGA
  and meta-GGA (`v_matrix`) and the XC response to a perturbed density
  (`potential_skeleton`).
- `chinium.guess`: superposition-of-atomic-potentials initial guesses
  (`read_sap_file`, `SAPTable`, `superposition_atomic_potential`,
  `sap_guess`, `GuessResult`, `fermi_occupations`).
- `chinium.xc_gradient`: XC contributions to nuclear gradients
  (`xc_gradient`), skeleton nuclear derivatives of the XC Fock matrix
  (`gxc_skeleton`), and helpers for batching grid points (`batch_bounds`)
  and mapping basis functions to atoms (`basis_to_atom`).
- `chinium.xc_hessian`: XC skeleton contributions to the nuclear hessian
  (`hxc_skeleton`).

## File formats

An element grid file is named after the element symbol, e.g. `H.grid`, and
lives in the directory passed to `spherical_grid`. Its first line holds the
number of groups and the total number of radial shells; its second line
names the radial formula, either `de2 a xi_first xi_last` or `em R`; each
following line holds one group as `npoints nshells`.

An atomic potential file is named `v_<symbol>.dat` and holds 751 lines of
`radius value`, with the potential being `value / r`.

## Installing

    pip install .

To run the tests:

    pip install .[test]
    pytest

## Example

    import numpy as np
    from chinium.grid_ao import Shell, Center, get_ao_values
    from chinium.potential import v_matrix

    s = Shell(shell_type=0, exponents=[1.0], coefficients=[0.7127])
    h = Center(index=1, coordinates=(0.0, 0.0, 0.0), shells=[s])
    xs = ys = zs = np.linspace(-1.0, 1.0, 5)
    aos = get_ao_values([h], xs, ys, zs, order=1)

    weights = np.full(5, 0.1)
    vrs = -np.ones(5)
    fxc = v_matrix([0], weights, aos, vrs=vrs)

A molecular grid needs an angular rule: a callable that, given a number of
points, returns the x, y, z coordinates on the unit sphere and weights that
sum to one:

    from chinium.grid_generation import spherical_grid

    def octahedron(npoints):
        x = [1, -1, 0, 0, 0, 0]
        y = [0, 0, 1, -1, 0, 0]
        z = [0, 0, 0, 0, 1, -1]
        return x, y, z, [1 / 6] * 6

    grid = spherical_grid("grids", [h], octahedron)

## What it does not do

The package ships no angular quadrature tables, no grid or atomic potential
files, and no exchange-correlation functionals. It does not compute the
electron density or its derivatives on the grid from a density matrix, nor
the skeleton nuclear derivatives of the density; those, and the XC energy
density and its derivatives, are supplied by the caller as arrays. There are
no one- or two-electron integrals, no SCF iterations and no command-line
program.