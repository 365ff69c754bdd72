"""Inverse distance weighting over structured-grid neighbours.

Neighbours are gathered from cubes of growing half-width around a centre
node until at least one qualifying neighbour turns up. Each contributes its
primitive state weighted by the reciprocal of its squared distance to the
interpolated point, floored by the partition's tiny length. Callers
accumulate one or more contributions and normalise once at the end.
"""

import numpy as np
from numba import njit

from .datastructures import DIMUO, FLUID
from .thermo import primitive_by_conservative


class SearchExhaustedError(RuntimeError):
    """No qualifying neighbour exists within the maximum search radius."""

    def __init__(self, node, radius):
        self.node = tuple(int(i) for i in node)
        self.radius = int(radius)
        super().__init__(
            f"No reconstruction stencil found around node {self.node} "
            f"within search radius {self.radius}"
        )


@njit(cache=True)
def apply_weighting(Uoh, tiny, distance2, weight_sum, Uo):
    """Accumulate ``Uoh`` into ``Uo`` with weight 1 / max(tiny, distance2).

    Returns the updated weight sum.
    """
    if tiny > distance2:  # avoid overflow of too small distances
        distance2 = tiny
    weight = 1.0 / distance2
    for n in range(Uo.shape[0]):
        Uo[n] += Uoh[n] * weight
    return weight_sum + weight


@njit(cache=True)
def normalize(weight_sum, Uo):
    for n in range(Uo.shape[0]):
        Uo[n] /= weight_sum


@njit(cache=True)
def weighting_kernel(U, gid_map, gst_map, exposed, n, p, h, layer, gid, x, y, z,
                     tiny, gamma, gas_r, max_radius, Uo):
    """Numba kernel behind :func:`inverse_distance_weighting`.

    Returns the weight sum and the number of contributing neighbours; a zero
    tally means the search was exhausted.
    """
    nx, ny, nz = gid_map.shape
    Uoh = np.zeros(Uo.shape[0])
    ph = np.empty(3)
    weight_sum = 0.0
    tally = 0
    Uo[:] = 0.0
    # Symmetric search range keeps the stencil symmetric about the centre node
    r = h
    while tally == 0 and r <= max_radius:
        for i in range(n[0] - r, n[0] + r + 1):
            if i < 0 or i >= nx:
                continue
            for j in range(n[1] - r, n[1] + r + 1):
                if j < 0 or j >= ny:
                    continue
                for k in range(n[2] - r, n[2] + r + 1):
                    if k < 0 or k >= nz:
                        continue
                    if gid_map[i, j, k] != gid:
                        continue
                    if gid == FLUID:  # require a settled normal node
                        if exposed[i, j, k]:
                            continue
                    elif gst_map[i, j, k] != layer:  # require the given ghost layer
                        continue
                    tally += 1
                    ph[0] = x[i]
                    ph[1] = y[j]
                    ph[2] = z[k]
                    primitive_by_conservative(gamma, gas_r, U[i, j, k], Uoh)
                    d0 = p[0] - ph[0]
                    d1 = p[1] - ph[1]
                    d2 = p[2] - ph[2]
                    # Squared distance avoids a square root
                    weight_sum = apply_weighting(Uoh, tiny, d0 * d0 + d1 * d1 + d2 * d2, weight_sum, Uo)
        r += 1
    return weight_sum, tally


def inverse_distance_weighting(tn, n, p, h, layer, gid, space, model, Uo):
    """Accumulate a weighted primitive state at point ``p`` into ``Uo``.

    Parameters
    ----------
    tn : int
        Time level of the node states to read.
    n : array_like (3,)
        Centre node of the search.
    p : array_like (3,)
        Interpolated point.
    h : int
        Initial search half-width.
    layer : int
        Required ghost depth of the neighbours when ``gid`` is a body id;
        ignored for fluid neighbours, which must not be awaiting reconciliation.
    gid : int
        Required owner of the neighbours.
    Uo : ndarray (6,)
        Accumulator, reset before the search.

    Returns
    -------
    float
        Sum of weights; divide ``Uo`` by it (see :func:`normalize`) once all
        contributions are in.

    Raises
    ------
    SearchExhaustedError
        If no neighbour qualifies within ``model.max_search_radius``.
    """
    part, node = space.part, space.node
    n = np.asarray(n, dtype=np.int64)
    weight_sum, tally = weighting_kernel(
        node.U[tn], node.gid, node.gst, node.exposed,
        n, np.asarray(p, dtype=np.float64), int(h), int(layer), int(gid),
        part.x, part.y, part.z,
        part.tiny_l, model.gamma, model.gas_r, int(model.max_search_radius), Uo,
    )
    if tally == 0:
        raise SearchExhaustedError(n, model.max_search_radius)
    return weight_sum


def weighted_state(tn, n, p, h, layer, gid, space, model):
    """Normalised inverse distance weighted primitive state at ``p``."""
    Uo = np.zeros(DIMUO)
    weight_sum = inverse_distance_weighting(tn, n, p, h, layer, gid, space, model, Uo)
    normalize(weight_sum, Uo)
    return Uo
