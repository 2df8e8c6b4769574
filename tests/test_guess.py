import numpy as np
import pytest

from chinium.grid_ao import Center, Shell, get_ao_values
from chinium.guess import (
    SAP_LINES,
    GuessResult,
    SAPTable,
    fermi_occupations,
    read_sap_file,
    sap_guess,
    superposition_atomic_potential,
)
from chinium.potential import v_matrix


def _write_table(path, radii, values):
    path.write_text("".join(f"{r:.10f} {z:.10f}\n" for r, z in zip(radii, values)))


def test_potential_uses_nearest_radius():
    table = SAPTable(np.array([1.0, 2.0, 3.0]), np.array([-1.0, -4.0, -9.0]))
    assert table.potential(2.1) == pytest.approx(-4.0 / 2.1)


def test_potential_tie_takes_last_entry():
    table = SAPTable(np.array([1.0, 2.0]), np.array([-1.0, -4.0]))
    assert table.potential(1.5) == pytest.approx(-4.0 / 1.5)


def test_potential_keeps_shape():
    table = SAPTable(np.array([1.0, 2.0]), np.array([-1.0, -4.0]))
    r = np.array([[0.5, 1.9], [3.0, 1.0]])
    result = table.potential(r)
    assert result.shape == r.shape
    np.testing.assert_allclose(result, [[-1.0 / 0.5, -4.0 / 1.9], [-4.0 / 3.0, -1.0]])


def test_table_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        SAPTable(np.array([1.0, 2.0]), np.array([1.0]))


def test_read_sap_file_round_trip(tmp_path):
    radii = np.linspace(0.01, 10.0, SAP_LINES)
    values = -np.linspace(1.0, 0.0, SAP_LINES)
    path = tmp_path / "v_H.dat"
    _write_table(path, radii, values)
    table = read_sap_file(path)
    np.testing.assert_allclose(table.radii, radii)
    np.testing.assert_allclose(table.values, values, atol=1e-10)


def test_read_sap_file_too_short(tmp_path):
    path = tmp_path / "v_H.dat"
    _write_table(path, [1.0, 2.0], [1.0, 2.0])
    with pytest.raises(ValueError):
        read_sap_file(path)


def test_fermi_occupations_half_at_chemical_potential():
    occ = fermi_occupations([-0.3, 0.0, 0.4], 0.0, 0.05)
    assert occ[1] == pytest.approx(0.5)
    assert occ[0] > occ[1] > occ[2]
    assert np.all((occ > 0) & (occ < 1))


def test_fermi_occupations_symmetric_about_mu():
    below = fermi_occupations([-0.2], 0.1, 0.1)
    above = fermi_occupations([0.4], 0.1, 0.1)
    assert below[0] + above[0] == pytest.approx(1.0)


def test_fermi_occupations_needs_positive_temperature():
    with pytest.raises(ValueError):
        fermi_occupations([0.0], 0.0, 0.0)


@pytest.fixture
def matrices():
    rng = np.random.default_rng(3)
    a = rng.normal(size=(4, 4))
    overlap = a @ a.T + 4 * np.eye(4)
    kinetic = np.diag([1.0, 2.0, 3.0, 4.0])
    b = rng.normal(size=(4, 4))
    nuclear = -(b + b.T)
    potential = np.zeros((4, 4))
    return kinetic, nuclear, potential, overlap


def test_sap_guess_solves_generalized_problem(matrices):
    kinetic, nuclear, potential, overlap = matrices
    result = sap_guess(kinetic, nuclear, potential, overlap)
    h = kinetic + nuclear + potential
    c = result.coefficients
    np.testing.assert_allclose(h @ c, overlap @ c @ np.diag(result.energies), atol=1e-10)
    np.testing.assert_allclose(c.T @ overlap @ c, np.eye(4), atol=1e-10)
    assert np.all(np.diff(result.energies) >= 0)
    assert result.occupations is None
    assert result.restricted


def test_sap_guess_restricted_occupations_doubled(matrices):
    result = sap_guess(*matrices, temperature=0.1, chemical_potential=0.0, restricted=True)
    expected = 2 * fermi_occupations(result.energies, 0.0, 0.1)
    np.testing.assert_allclose(result.occupations, expected)
    assert result.spins == (0,)


def test_sap_guess_unrestricted_occupations_per_spin(matrices):
    result = sap_guess(*matrices, temperature=0.1, chemical_potential=0.0, restricted=False)
    np.testing.assert_allclose(result.occupations, fermi_occupations(result.energies, 0.0, 0.1))
    assert result.spins == (1, 2)
    assert not result.restricted


def test_superposition_matches_potential_matrix(tmp_path):
    radii = np.linspace(0.001, 20.0, SAP_LINES)
    _write_table(tmp_path / "v_H.dat", radii, np.ones(SAP_LINES))
    centers = [Center(1, [0.0, 0.0, 0.0], [Shell(0, [1.0], [1.0]), Shell(0, [0.3], [0.5])])]
    rng = np.random.default_rng(11)
    xs, ys, zs = rng.uniform(-2, 2, size=(3, 25))
    weights = rng.uniform(0.1, 1.0, size=25)
    aos = get_ao_values(centers, xs, ys, zs, 0)
    result = superposition_atomic_potential(tmp_path, centers, xs, ys, zs, weights, aos)
    r = np.sqrt(xs ** 2 + ys ** 2 + zs ** 2) + 1e-12
    np.testing.assert_allclose(result, v_matrix([0], weights, aos, vrs=1.0 / r))
    assert isinstance(sap_guess(np.eye(2), np.zeros((2, 2)), result, np.eye(2)), GuessResult)


def test_superposition_missing_file(tmp_path):
    centers = [Center(2, [0.0, 0.0, 0.0], [Shell(0, [1.0], [1.0])])]
    aos = get_ao_values(centers, [0.5], [0.0], [0.0], 0)
    with pytest.raises(FileNotFoundError):
        superposition_atomic_potential(tmp_path, centers, [0.5], [0.0], [0.0], [1.0], aos)