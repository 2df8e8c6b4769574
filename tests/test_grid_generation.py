import numpy as np
import pytest

from chinium.grid_ao import Center
from chinium.grid_generation import (
    GridFile,
    MolecularGrid,
    RadialFormula,
    becke_switch,
    becke_weights,
    de2_radial,
    em_radial,
    parse_grid_file,
    read_grid_file,
    spherical_grid,
    spherical_grid_number,
)


def octahedron(npoints):
    if npoints != 6:
        raise ValueError("only the six-point rule is available here")
    xs = [1, -1, 0, 0, 0, 0]
    ys = [0, 0, 1, -1, 0, 0]
    zs = [0, 0, 0, 0, 1, -1]
    return xs, ys, zs, [1 / 6] * 6


EM_TEXT = "1 100\nem 1.0\n6 100\n"
DE2_TEXT = "1 100\nde2 1.0 -5.0 3.0\n6 100\n"


def test_parse_em_grid_file():
    grid = parse_grid_file(EM_TEXT)
    assert isinstance(grid, GridFile)
    assert grid.radial == em_radial(1.0, 100)
    assert grid.groups == ((6, 100),)
    assert grid.num_points() == 600


def test_parse_de2_grid_file():
    grid = parse_grid_file("2 30\nde2 1.5 -4.0 2.5\n6 10\n14 20\n")
    assert grid.radial == de2_radial(1.5, -4.0, 2.5, 30)
    assert grid.radial.kind == "de2"
    assert grid.num_points() == 6 * 10 + 14 * 20


def test_unknown_radial_formula_raises():
    with pytest.raises(ValueError):
        parse_grid_file("1 10\nbogus 1.0\n6 10\n")


def test_truncated_grid_file_raises():
    with pytest.raises(ValueError):
        parse_grid_file("2 10\nem 1.0\n6 10\n")


def test_de2_needs_two_shells():
    with pytest.raises(ValueError):
        de2_radial(1.0, -1.0, 1.0, 1)


@pytest.mark.parametrize("radial", [em_radial(1.0, 50), de2_radial(1.0, -5.0, 3.0, 50)])
def test_radii_increase_and_weights_positive(radial):
    assert isinstance(radial, RadialFormula)
    idx = np.arange(radial.nshells_total)
    radii = radial.radius(idx)
    assert np.all(np.diff(radii) > 0)
    assert np.all(radial.weight(idx) > 0)
    assert radial.radius(3) == pytest.approx(radii[3])


def test_becke_switch_limits():
    a = [0.0, 0.0, 0.0]
    b = [2.0, 0.0, 0.0]
    assert becke_switch(a, a, b) == pytest.approx(1.0)
    assert becke_switch(b, a, b) == pytest.approx(0.0)
    assert becke_switch([1.0, 0.0, 0.0], a, b) == pytest.approx(0.5)


def test_becke_switch_is_complementary():
    rng = np.random.default_rng(1)
    pts = rng.normal(size=(20, 3))
    a, b = [0.3, 0.0, 0.1], [-1.0, 0.7, 0.4]
    np.testing.assert_allclose(becke_switch(pts, a, b) + becke_switch(pts, b, a), 1.0)


def test_becke_weights_partition_unity():
    rng = np.random.default_rng(2)
    pts = rng.normal(scale=2.0, size=(30, 3))
    coords = np.array([[0, 0, 0], [1.4, 0, 0], [0, 1.1, 0.5]], dtype=float)
    total = sum(becke_weights(pts, coords, owner) for owner in range(3))
    np.testing.assert_allclose(total, 1.0)


def test_single_atom_becke_weights_are_one():
    pts = np.random.default_rng(4).normal(size=(5, 3))
    np.testing.assert_allclose(becke_weights(pts, [[0.0, 0.0, 0.0]], 0), 1.0)


@pytest.mark.parametrize("text", [EM_TEXT, DE2_TEXT])
def test_single_atom_grid_integrates_gaussian(tmp_path, text):
    (tmp_path / "H.grid").write_text(text)
    centers = [Center(1, [0.2, -0.1, 0.4])]
    grid = spherical_grid(tmp_path, centers, octahedron)
    assert isinstance(grid, MolecularGrid)
    r2 = ((grid.points - centers[0].coordinates) ** 2).sum(axis=1)
    integral = np.sum(grid.ws * np.exp(-r2))
    assert integral == pytest.approx(np.pi ** 1.5, rel=1e-5)


def test_grid_number_matches_generated_grid(tmp_path):
    (tmp_path / "H.grid").write_text(EM_TEXT)
    (tmp_path / "O.grid").write_text("1 40\nem 1.5\n6 40\n")
    centers = [Center(8, [0, 0, 0]), Center(1, [0, 0, 1.8]), Center(1, [1.7, 0, -0.5])]
    grid = spherical_grid(tmp_path, centers, octahedron)
    assert spherical_grid_number(tmp_path, centers) == grid.num_grids
    assert grid.num_grids == read_grid_file(tmp_path / "O.grid").num_points() + 2 * 600
    assert np.all(grid.ws >= 0)
    assert grid.xs.shape == grid.ws.shape


def test_missing_grid_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        spherical_grid_number(tmp_path, [Center(6, [0, 0, 0])])


def test_unknown_element_raises(tmp_path):
    with pytest.raises(ValueError):
        spherical_grid_number(tmp_path, [Center(0, [0, 0, 0])])