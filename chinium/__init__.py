"""Integration grids, Gaussian basis functions on grids and Kohn-Sham exchange-correlation matrices."""

__version__ = "0.1.0"

__all__ = [
    "grid_ao",
    "grid_generation",
    "potential",
    "guess",
    "xc_gradient",
    "xc_hessian",
]