"""Tests for ideal-gas state conversions."""

import numpy as np
import pytest

from immersed.thermo import (
    conservative_state,
    ideal_gas_density,
    primitive_state,
)

GAMMA = 1.4
GAS_R = 287.058


class TestStateConversion:
    """Primitive <-> conservative conversions."""

    def test_conservative_components(self):
        """Momentum and total energy follow from the primitive state."""
        Uo = np.array([1.2, 10.0, -2.0, 0.5, 101325.0, 0.0])
        U = conservative_state(GAMMA, Uo)

        assert U[0] == pytest.approx(1.2)
        assert np.allclose(U[1:4], 1.2 * Uo[1:4])
        kinetic = 0.5 * 1.2 * (100.0 + 4.0 + 0.25)
        assert U[4] == pytest.approx(101325.0 / (GAMMA - 1.0) + kinetic)

    @pytest.mark.parametrize(
        "p, T, velocity",
        [
            (101325.0, 288.15, (30.0, 5.0, -1.0)),
            (10.0, 200.0, (1.0, 0.0, 0.0)),  # rarefied
            (101325.0, 288.15, (1700.0, -300.0, 50.0)),  # Mach ~5
            (5.0e6, 1500.0, (0.0, 0.0, 0.0)),
            (2.0e4, 60.0, (-250.0, 120.0, 400.0)),  # cold, supersonic
        ],
    )
    def test_round_trip(self, p, T, velocity):
        """Converting back recovers velocity and pressure; T follows from p and rho."""
        rho = p / (T * GAS_R)
        Uo = np.array([rho, *velocity, p, T])

        back = primitive_state(GAMMA, GAS_R, conservative_state(GAMMA, Uo))

        assert np.allclose(back, Uo, rtol=1e-12)

    def test_fluid_at_rest(self):
        """Zero velocity leaves only internal energy."""
        U = np.array([1.0, 0.0, 0.0, 0.0, 2.5e5])
        Uo = primitive_state(GAMMA, GAS_R, U)

        assert np.allclose(Uo[1:4], 0.0)
        assert Uo[4] == pytest.approx(1.0e5)


class TestIdealGasDensity:
    def test_density_from_pressure_and_temperature(self):
        Uo = np.array([0.0, 1.0, 2.0, 3.0, 101325.0, 288.15])
        ideal_gas_density(GAS_R, Uo)

        assert Uo[0] == pytest.approx(101325.0 / (288.15 * GAS_R))
        assert np.allclose(Uo[1:], [1.0, 2.0, 3.0, 101325.0, 288.15])
