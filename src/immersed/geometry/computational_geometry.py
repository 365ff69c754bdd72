"""Computational geometry kernels for triangulated and analytical bodies.

All kernels are numba-compiled and operate on plain float64/int64 arrays:
- vertices : ndarray (n_vertices, 3)
- faces : ndarray (n_faces, 3), vertex indices ordered counter-clockwise
  when seen from outside the body (outward normals)
"""

import math

import numpy as np
from numba import njit

from ..datastructures import NONE


@njit(inline="always", cache=True)
def dot(a, b):
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


@njit(cache=True)
def cross(a, b):
    c = np.empty(3)
    c[0] = a[1] * b[2] - a[2] * b[1]
    c[1] = a[2] * b[0] - a[0] * b[2]
    c[2] = a[0] * b[1] - a[1] * b[0]
    return c


@njit(inline="always", cache=True)
def dist2(a, b):
    """Squared distance between two points."""
    dx = a[0] - b[0]
    dy = a[1] - b[1]
    dz = a[2] - b[2]
    return dx * dx + dy * dy + dz * dz


@njit(cache=True)
def face_normal(vertices, faces, fid):
    """Outward unit normal of face ``fid``."""
    a = vertices[faces[fid, 0]]
    b = vertices[faces[fid, 1]]
    c = vertices[faces[fid, 2]]
    N = cross(b - a, c - a)
    N /= math.sqrt(dot(N, N))
    return N


@njit(cache=True)
def closest_point_on_triangle(p, a, b, c):
    """Closest point to ``p`` on triangle ``abc`` (Ericson, Real-Time Collision Detection)."""
    ab = b - a
    ac = c - a
    ap = p - a
    d1 = dot(ab, ap)
    d2 = dot(ac, ap)
    if d1 <= 0.0 and d2 <= 0.0:
        return a.copy()

    bp = p - b
    d3 = dot(ab, bp)
    d4 = dot(ac, bp)
    if d3 >= 0.0 and d4 <= d3:
        return b.copy()

    vc = d1 * d4 - d3 * d2
    if vc <= 0.0 and d1 >= 0.0 and d3 <= 0.0:
        return a + (d1 / (d1 - d3)) * ab

    cp = p - c
    d5 = dot(ab, cp)
    d6 = dot(ac, cp)
    if d6 >= 0.0 and d5 <= d6:
        return c.copy()

    vb = d5 * d2 - d1 * d6
    if vb <= 0.0 and d2 >= 0.0 and d6 <= 0.0:
        return a + (d2 / (d2 - d6)) * ac

    va = d3 * d6 - d5 * d4
    if va <= 0.0 and (d4 - d3) >= 0.0 and (d5 - d6) >= 0.0:
        return b + ((d4 - d3) / ((d4 - d3) + (d5 - d6))) * (c - b)

    denom = 1.0 / (va + vb + vc)
    return a + ab * (vb * denom) + ac * (vc * denom)


@njit(cache=True)
def nearest_face(p, vertices, faces):
    """Index of the face closest to ``p`` and the squared distance to it."""
    best = NONE
    best_d2 = np.inf
    for f in range(faces.shape[0]):
        q = closest_point_on_triangle(
            p, vertices[faces[f, 0]], vertices[faces[f, 1]], vertices[faces[f, 2]]
        )
        d2 = dist2(p, q)
        if d2 < best_d2:
            best_d2 = d2
            best = f
    return best, best_d2


@njit(cache=True)
def solid_angle(p, a, b, c):
    """Signed solid angle of triangle ``abc`` seen from ``p`` (Van Oosterom & Strackee)."""
    ra = a - p
    rb = b - p
    rc = c - p
    la = math.sqrt(dot(ra, ra))
    lb = math.sqrt(dot(rb, rb))
    lc = math.sqrt(dot(rc, rc))
    numerator = dot(ra, cross(rb, rc))
    denominator = la * lb * lc + dot(ra, rb) * lc + dot(ra, rc) * lb + dot(rb, rc) * la
    return 2.0 * math.atan2(numerator, denominator)


@njit(cache=True)
def point_in_polyhedron(p, vertices, faces, tiny):
    """Test whether ``p`` lies in or on a closed triangulated surface.

    Points within ``tiny`` of the surface count as inside. Membership of the
    remaining points follows from the winding number (total solid angle).

    Returns
    -------
    inside : bool
    fid : int
        Index of the nearest face.
    """
    fid, d2 = nearest_face(p, vertices, faces)
    if d2 <= tiny * tiny:
        return True, fid
    omega = 0.0
    for f in range(faces.shape[0]):
        omega += solid_angle(
            p, vertices[faces[f, 0]], vertices[faces[f, 1]], vertices[faces[f, 2]]
        )
    return abs(omega) > 2.0 * math.pi, fid


@njit(cache=True)
def compute_intersection(p, fid, vertices, faces):
    """Boundary point of ``p`` on face ``fid`` and the face's outward unit normal."""
    if fid == NONE:
        fid, _ = nearest_face(p, vertices, faces)
    pO = closest_point_on_triangle(
        p, vertices[faces[fid, 0]], vertices[faces[fid, 1]], vertices[faces[fid, 2]]
    )
    return pO, face_normal(vertices, faces, fid)


@njit(cache=True)
def orthogonal_space(N):
    """Two unit tangents ``Ta``, ``Tb`` completing ``N`` to a right-handed basis."""
    # Cross with the axis least aligned with N
    axis = np.zeros(3)
    ax = abs(N[0])
    ay = abs(N[1])
    az = abs(N[2])
    if ax <= ay and ax <= az:
        axis[0] = 1.0
    elif ay <= az:
        axis[1] = 1.0
    else:
        axis[2] = 1.0
    Ta = cross(N, axis)
    Ta /= math.sqrt(dot(Ta, Ta))
    Tb = cross(N, Ta)
    return Ta, Tb


@njit(cache=True)
def classify_mesh_nodes(gid, fid, exposed, lo, hi, x, y, z, vertices, faces, tiny, owner):
    """Claim unowned nodes of the box [lo, hi) lying in or on a triangulated body."""
    claimed = 0
    p = np.empty(3)
    for i in range(lo[0], hi[0]):
        for j in range(lo[1], hi[1]):
            for k in range(lo[2], hi[2]):
                if gid[i, j, k] != 0:  # already classified
                    continue
                p[0] = x[i]
                p[1] = y[j]
                p[2] = z[k]
                inside, f = point_in_polyhedron(p, vertices, faces, tiny)
                if inside:
                    gid[i, j, k] = owner
                    fid[i, j, k] = f
                    exposed[i, j, k] = False
                    claimed += 1
    return claimed
