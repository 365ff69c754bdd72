"""Geometry domain computation: node classification against immersed bodies.

The identification proceeds in separate phases so that no phase observes a
half-updated domain:

1. Initialize: reset classification where it may have changed. Stationary
   bodies keep everything; moving bodies only give up their interfacial
   nodes, since a deep interior node must become interfacial before it can
   leave the body.
2. Identify geometry nodes: per body, test the nodes of its bounding box and
   link the claimed ones to the body (and nearest face).
3. Identify interfacial nodes: first rebuild the state of nodes freshly
   exposed to the fluid, then scan the search path of every owned node for
   its interfacial depth and ghost depth.

Ghost nodes lie inside a body on the numerical boundary of the fluid domain,
so they form a subset of the interfacial nodes. Where two bodies touch, their
nodes are interfacial without being ghost nodes.
"""

import logging

import numpy as np
from numba import njit

from .datastructures import CURRENT, DIMUO, EXTERIOR, FLUID, NONE
from .thermo import conservative_by_primitive, ideal_gas_density
from .weighting import inverse_distance_weighting, normalize

log = logging.getLogger(__name__)

R = 2  # initial search radius when sampling plain fluid


def compute_geometry_domain(space, model):
    """Classify every node for the current body poses.

    Must run once per step before any flux evaluation.

    Returns
    -------
    int
        Number of freshly exposed nodes that were reconciled.
    """
    initialize_geometry_domain(space)
    identify_geometry_node(space)
    return identify_interfacial_node(space, model)


def initialize_geometry_domain(space):
    """Reset node classification that body motion may have invalidated."""
    part, node = space.part, space.node
    gid = node.gid[part.interior]
    lid = node.lid[part.interior]
    gst = node.gst[part.interior]
    exposed = node.exposed[part.interior]
    fid = node.fid[part.interior]

    # Interfacial nodes of moving bodies are reclassified from scratch
    moving = np.isin(gid, space.geo.moving_ids()) & (lid > 0)

    unowned = gid <= 0
    gid[unowned] = FLUID
    lid[unowned] = 0
    gst[unowned] = 0

    gid[moving] = FLUID
    lid[moving] = 0
    gst[moving] = 0
    fid[moving] = NONE
    exposed[moving] = True
    log.debug(f"Released {np.count_nonzero(moving)} interfacial nodes of moving bodies")


def identify_geometry_node(space):
    """Claim the nodes in or on each body; first claim wins.

    Stationary bodies are classified on the first call for each space.
    """
    part, node = space.part, space.node
    for n, poly in enumerate(space.geo):
        if poly.stationary and n + 1 in space.classified:  # preserved by the initializer
            continue
        lo, hi = part.node_box(poly.box)
        claimed = poly.shape.classify(part, node, lo, hi, n + 1)
        space.classified.add(n + 1)
        log.debug(f"Body {n + 1}: claimed {claimed} nodes in box {lo.tolist()}-{hi.tolist()}")


def identify_interfacial_node(space, model):
    """Reconcile exposed nodes, then compute interfacial and ghost depths.

    Returns the number of reconciled nodes.
    """
    part, node = space.part, space.node

    # Exposed nodes are rebuilt in index order; each one becomes a valid
    # stencil point for the next.
    exposed = np.argwhere(node.exposed & (node.gid == FLUID))
    for idx in exposed:
        reconcile_node(space, model, idx)
        node.exposed[tuple(idx)] = False
    if len(exposed):
        log.debug(f"Reconciled {len(exposed)} freshly exposed nodes")

    identify_interfacial_kernel(
        node.gid, node.lid, node.gst, part.path, part.path_sep, part.gl, part.lo, part.hi
    )
    return len(exposed)


@njit(cache=True)
def identify_interfacial_kernel(gid, lid, gst, path, path_sep, gl, lo, hi):
    for i in range(lo[0], hi[0]):
        for j in range(lo[1], hi[1]):
            for k in range(lo[2], hi[2]):
                owner = gid[i, j, k]
                if owner <= 0:  # fluid nodes are never interfacial
                    continue
                lid[i, j, k] = interfacial_state(i, j, k, owner, path_sep[0], path, gid, path_sep, gl)
                gst[i, j, k] = 0
                if lid[i, j, k] != 0:  # an interfacial node may be a ghost node
                    # searched no deeper than its interfacial shell
                    gst[i, j, k] = ghost_state(i, j, k, FLUID, path_sep[lid[i, j, k]], path, gid, path_sep, gl)


@njit(cache=True)
def _shell(n, path_sep, gl):
    """Shell radius of path position ``n``."""
    for r in range(1, gl + 1):
        if path_sep[r] > n:
            return r
    return 0


@njit(cache=True)
def interfacial_state(i, j, k, owner, end, path, gid, path_sep, gl):
    """Shell radius of the nearest node owned by someone other than ``owner``."""
    nx, ny, nz = gid.shape
    for n in range(end):
        ih = i + path[n, 0]
        jh = j + path[n, 1]
        kh = k + path[n, 2]
        if ih < 0 or ih >= nx or jh < 0 or jh >= ny or kh < 0 or kh >= nz:
            continue
        other = gid[ih, jh, kh]
        if other == EXTERIOR:  # an exterior node is not valid
            continue
        if other != owner:  # a heterogeneous node on the path
            return _shell(n, path_sep, gl)
    return 0


@njit(cache=True)
def ghost_state(i, j, k, owner, end, path, gid, path_sep, gl):
    """Shell radius of the nearest node owned by ``owner`` (the normal domain)."""
    nx, ny, nz = gid.shape
    for n in range(end):
        ih = i + path[n, 0]
        jh = j + path[n, 1]
        kh = k + path[n, 2]
        if ih < 0 or ih >= nx or jh < 0 or jh >= ny or kh < 0 or kh >= nz:
            continue
        other = gid[ih, jh, kh]
        if other == EXTERIOR:
            continue
        if other == owner:  # a normal computational node on the path
            return _shell(n, path_sep, gl)
    return 0


def reconcile_node(space, model, idx):
    """Rebuild the state of a node that just left a body from nearby fluid.

    Raises
    ------
    SearchExhaustedError
        If no settled fluid node lies within the search cap, e.g. when two
        touching bodies separate and open a gap with no fluid around it.
    """
    i, j, k = (int(s) for s in idx)
    Uo = np.zeros(DIMUO)
    p = space.part.point(i, j, k)
    weight_sum = inverse_distance_weighting(CURRENT, (i, j, k), p, R, 0, FLUID, space, model, Uo)
    normalize(weight_sum, Uo)
    ideal_gas_density(model.gas_r, Uo)
    conservative_by_primitive(model.gamma, Uo, space.node.U[CURRENT, i, j, k])
    return Uo
