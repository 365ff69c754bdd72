"""Ideal-gas conversions between primitive and conservative states.

Primitive vector: [rho, u, v, w, p, T]
Conservative vector: [rho, rho*u, rho*v, rho*w, rho*E]
"""

import numpy as np
from numba import njit


@njit(cache=True)
def primitive_by_conservative(gamma, gas_r, U, Uo):
    """Fill ``Uo`` with the primitive state of the conservative state ``U``."""
    rho = U[0]
    u = U[1] / rho
    v = U[2] / rho
    w = U[3] / rho
    p = (gamma - 1.0) * (U[4] - 0.5 * rho * (u * u + v * v + w * w))
    Uo[0] = rho
    Uo[1] = u
    Uo[2] = v
    Uo[3] = w
    Uo[4] = p
    Uo[5] = p / (rho * gas_r)


@njit(cache=True)
def conservative_by_primitive(gamma, Uo, U):
    """Fill ``U`` with the conservative state of the primitive state ``Uo``."""
    rho = Uo[0]
    u = Uo[1]
    v = Uo[2]
    w = Uo[3]
    U[0] = rho
    U[1] = rho * u
    U[2] = rho * v
    U[3] = rho * w
    U[4] = Uo[4] / (gamma - 1.0) + 0.5 * rho * (u * u + v * v + w * w)


@njit(cache=True)
def ideal_gas_density(gas_r, Uo):
    """Overwrite the density of ``Uo`` from its pressure and temperature."""
    Uo[0] = Uo[4] / (Uo[5] * gas_r)


def conservative_state(gamma, Uo):
    """Return the conservative state of ``Uo`` as a new array."""
    U = np.empty(5, dtype=np.float64)
    conservative_by_primitive(gamma, np.asarray(Uo, dtype=np.float64), U)
    return U


def primitive_state(gamma, gas_r, U):
    """Return the primitive state of ``U`` as a new array."""
    Uo = np.empty(6, dtype=np.float64)
    primitive_by_conservative(gamma, gas_r, np.asarray(U, dtype=np.float64), Uo)
    return Uo
