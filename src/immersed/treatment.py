"""Ghost node reconstruction for the sharp-interface immersed boundary method.

Mo, H., Lien, F.S., Zhang, F. and Cronin, D.S., 2016. A sharp interface
immersed boundary method for solving flow with arbitrarily irregular and
changing geometry. arXiv preprint arXiv:1602.06830.

Ghost layers are processed one stage at a time in increasing depth. The
fallback weighting of layer r reads layer r - 1, so every stage is computed
from the arena as it stood at the start of the stage and committed as a
whole before the next one begins.
"""

import logging

import numpy as np

from .datastructures import DIMU, DIMUO, FLUID
from .domain import R
from .geometry import orthogonal_space
from .geometry.computational_geometry import dist2
from .thermo import conservative_by_primitive, ideal_gas_density
from .weighting import apply_weighting, inverse_distance_weighting, normalize

log = logging.getLogger(__name__)


def immersed_boundary_treatment(tn, space, model):
    """Reconstruct the state of every ghost node at time level ``tn``.

    Layers within ``model.ibm_layer`` use the method of images; deeper
    layers are weighted from the already reconstructed layer above them.

    Returns
    -------
    int
        Number of reconstructed ghost nodes.
    """
    part, node = space.part, space.node
    treated = 0
    for n, poly in enumerate(space.geo):
        gid = n + 1
        lo, hi = part.node_box(poly.box)
        box = tuple(slice(a, b) for a, b in zip(lo, hi))
        for r in range(1, part.gl + 1):  # layer by layer treatment
            targets = np.argwhere((node.gst[box] == r) & (node.gid[box] == gid)) + lo
            if not len(targets):
                continue
            states = np.empty((len(targets), DIMU))
            for m, idx in enumerate(targets):
                UoG = reconstruct_ghost_node(tn, idx, r, gid, poly, space, model)
                conservative_by_primitive(model.gamma, UoG, states[m])
            node.U[tn][tuple(targets.T)] = states
            treated += len(targets)
            log.debug(f"Body {gid}: reconstructed {len(targets)} ghost nodes in layer {r}")
    return treated


def reconstruct_ghost_node(tn, idx, r, gid, poly, space, model):
    """Primitive state of ghost node ``idx`` in layer ``r`` of body ``gid``."""
    part, node = space.part, space.node
    i, j, k = (int(s) for s in idx)
    pG = part.point(i, j, k)
    if model.ibm_layer >= r:  # immersed boundary treatment
        pO, pI, N = compute_geometric_data(node.fid[i, j, k], poly, pG)
        nI = part.node_index(pI)
        # Strong discontinuities inside the weighting stencil are not filtered
        UoO, UoI = flow_reconstruction(tn, nI, pI, poly, space, model, pO, N)
        UoG = method_of_image(UoI, UoO)
    else:  # inverse distance weighting from the layer above
        UoG = np.zeros(DIMUO)
        weight_sum = inverse_distance_weighting(tn, (i, j, k), pG, 1, r - 1, gid, space, model, UoG)
        normalize(weight_sum, UoG)
    ideal_gas_density(model.gas_r, UoG)
    return UoG


def method_of_image(UoI, UoO):
    """Apply the method of images.

    - Velocity is reflected over the wall through the boundary value, which
      unifies slip and no-slip, stationary and moving walls.
    - Pressure and temperature are reflected symmetrically (copied).
    - Density is left to the equation of state.
    """
    UoI = np.asarray(UoI, dtype=np.float64)
    UoO = np.asarray(UoO, dtype=np.float64)
    UoG = UoI.copy()
    UoG[1:4] = 2.0 * UoO[1:4] - UoI[1:4]
    return UoG


def compute_geometric_data(fid, poly, pG):
    """Probe the boundary from ghost point ``pG``.

    Returns
    -------
    pO : ndarray (3,)
        Nearest boundary point.
    pI : ndarray (3,)
        Image point, the mirror of ``pG`` through ``pO``.
    N : ndarray (3,)
        Outward unit normal at ``pO``.
    """
    pG = np.asarray(pG, dtype=np.float64)
    pO, N = poly.shape.probe(fid, pG)
    pI = 2.0 * pO - pG
    return pO, pI, N


def flow_reconstruction(tn, nI, pI, poly, space, model, pO, N):
    """Interpolate the flow at image point ``pI`` and enforce the wall conditions.

    Returns
    -------
    UoO : ndarray (6,)
        Primitive state at the boundary point.
    UoI : ndarray (6,)
        Primitive state at the image point, corrected with the boundary point
        as an extra stencil point.
    """
    # Pre-estimate from the surrounding fluid
    UoI = np.zeros(DIMUO)
    weight_sum = inverse_distance_weighting(tn, nI, pI, R, 0, FLUID, space, model, UoI)
    weight = 1.0 / weight_sum

    # Physical boundary conditions at the boundary point
    UoO = np.zeros(DIMUO)
    Vs = poly.surface_velocity(pO)
    if poly.friction > 0.0:  # no-slip wall
        UoO[1:4] = Vs
    else:  # slip wall: no penetration, free tangential velocity
        VI = UoI[1:4] * weight
        Ta, Tb = orthogonal_space(np.asarray(N, dtype=np.float64))
        UoO[1:4] = N * np.dot(Vs, N) + Ta * np.dot(VI, Ta) + Tb * np.dot(VI, Tb)

    # dp/dn = rho * v_t^2 / R_curvature - rho * a_s is dropped; its effect is
    # negligible, leaving dp/dn = 0
    UoO[4] = UoI[4] * weight
    if poly.wall_temperature < 0.0:  # adiabatic, dT/dn = 0
        UoO[5] = UoI[5] * weight
    else:  # fixed wall temperature
        UoO[5] = poly.wall_temperature
    ideal_gas_density(model.gas_r, UoO)

    # Correction step: the boundary point joins the stencil
    weight_sum = apply_weighting(UoO, space.part.tiny_l, dist2(pI, pO), weight_sum, UoI)
    normalize(weight_sum, UoI)
    return UoO, UoI
