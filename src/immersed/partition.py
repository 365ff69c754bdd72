"""
Partition: structured grid metadata for the immersed boundary pipeline (3D, node based).

Indexing Conventions:
- Node arrays have full shape n = m + 2*ng per axis and are indexed [i, j, k] (x, y, z).
- Interior (physical) nodes occupy indices [ng, ng + m) on each axis; the ghost margin
  around them is never classified and is flagged EXTERIOR.
- point_space(i) = lower + (i - ng) * d maps an index to a coordinate;
  node_space(s) = floor((s - lower) / d + 0.5) + ng maps a coordinate to the nearest index.

Search Path:
- path[n] is a neighbour offset (di, dj, dk); offsets are sorted by squared length.
- The shell radius of an offset is ceil(|offset|); only shells 1..gl are kept.
- path_sep[r] is the end (exclusive) of shell r in the path and path_sep[0] the path length.
"""

import numpy as np


def build_search_path(gl: int):
    """Build the concentric-shell neighbour path for ``gl`` ghost layers.

    Returns
    -------
    path : ndarray (n_path, 3)
        Integer neighbour offsets sorted by increasing shell radius.
    path_sep : ndarray (gl + 1,)
        Separator indices; ``path_sep[r]`` marks the end of shell ``r``.
    """
    r = np.arange(-gl, gl + 1)
    offsets = np.stack(np.meshgrid(r, r, r, indexing="ij"), axis=-1).reshape(-1, 3)
    dist2 = np.sum(offsets**2, axis=1)
    keep = (dist2 > 0) & (dist2 <= gl * gl)
    offsets, dist2 = offsets[keep], dist2[keep]

    # Deterministic order: squared length first, then lexicographic offset
    order = np.lexsort((offsets[:, 2], offsets[:, 1], offsets[:, 0], dist2))
    offsets, dist2 = offsets[order], dist2[order]

    # Smallest r with r*r >= dist2
    shell = np.searchsorted(np.arange(gl + 1) ** 2, dist2)

    path_sep = np.zeros(gl + 1, dtype=np.int64)
    path_sep[0] = offsets.shape[0]
    for s in range(1, gl + 1):
        path_sep[s] = np.count_nonzero(shell <= s)

    return np.ascontiguousarray(offsets, dtype=np.int64), path_sep


class Partition:
    """Single structured grid with a fixed ghost margin.

    Parameters
    ----------
    lower, upper : sequence of float
        Physical domain bounds per axis.
    m : sequence of int
        Interior node count per axis (both domain bounds carry a node).
    ng : int
        Ghost margin width in nodes, at least ``gl``.
    gl : int
        Number of shells receiving boundary treatment.
    tiny_l : float, optional
        Floor for squared distances in inverse distance weighting.
        Defaults to ``1e-3 * min(d)``.
    """

    def __init__(self, lower, upper, m, ng=2, gl=2, tiny_l=None):
        self.lower = np.asarray(lower, dtype=np.float64)
        self.upper = np.asarray(upper, dtype=np.float64)
        self.m = np.asarray(m, dtype=np.int64)
        if self.lower.shape != (3,) or self.upper.shape != (3,) or self.m.shape != (3,):
            raise ValueError("Partition bounds and node counts must have 3 components")
        if np.any(self.upper <= self.lower):
            raise ValueError(f"Inverted domain: lower={self.lower}, upper={self.upper}")
        if np.any(self.m < 2):
            raise ValueError(f"Need at least 2 nodes per axis, got m={self.m}")
        if gl < 1:
            raise ValueError(f"Ghost layer count must be positive, got gl={gl}")
        if ng < gl:
            raise ValueError(f"Ghost margin ng={ng} must cover gl={gl} layers")

        self.ng = int(ng)
        self.gl = int(gl)
        self.n = self.m + 2 * self.ng
        self.d = (self.upper - self.lower) / (self.m - 1)
        self.dd = 1.0 / self.d
        self.tiny_l = float(1.0e-3 * np.min(self.d) if tiny_l is None else tiny_l)

        # --- Interior index bounds ---
        self.lo = np.full(3, self.ng, dtype=np.int64)
        self.hi = self.lo + self.m
        self.interior = tuple(slice(a, b) for a, b in zip(self.lo, self.hi))

        # --- Node coordinates (full grid, margin included) ---
        self.x, self.y, self.z = (
            self.lower[s] + (np.arange(self.n[s]) - self.ng) * self.d[s]
            for s in range(3)
        )

        # --- Neighbour search path ---
        self.path, self.path_sep = build_search_path(self.gl)

    @classmethod
    def from_spacing(cls, lower, upper, spacing, ng=2, gl=2, tiny_l=None):
        """Create a partition with (approximately) uniform spacing ``spacing``."""
        lower = np.asarray(lower, dtype=np.float64)
        upper = np.asarray(upper, dtype=np.float64)
        spacing = np.broadcast_to(np.asarray(spacing, dtype=np.float64), (3,))
        if np.any(spacing <= 0.0):
            raise ValueError(f"Spacing must be positive, got {spacing}")
        m = np.rint((upper - lower) / spacing).astype(np.int64) + 1
        return cls(lower, upper, m, ng=ng, gl=gl, tiny_l=tiny_l)

    @property
    def shape(self):
        return tuple(int(s) for s in self.n)

    def point_space(self, i, s):
        """Coordinate of node index ``i`` along axis ``s``."""
        return self.lower[s] + (i - self.ng) * self.d[s]

    def node_space(self, p, s):
        """Nearest node index of coordinate ``p`` along axis ``s`` (unclamped)."""
        return int(np.floor((p - self.lower[s]) * self.dd[s] + 0.5)) + self.ng

    def valid_node_space(self, i, s):
        """Clamp node index ``i`` into the interior range of axis ``s``."""
        return int(min(max(i, self.lo[s]), self.hi[s] - 1))

    def point(self, i, j, k):
        """Physical coordinate of node ``(i, j, k)``."""
        return np.array(
            [self.point_space(i, 0), self.point_space(j, 1), self.point_space(k, 2)]
        )

    def node_index(self, p):
        """Nearest node index of point ``p`` as an int64 array (unclamped)."""
        return np.array([self.node_space(p[s], s) for s in range(3)], dtype=np.int64)

    def node_box(self, box):
        """Interior index box [lo, hi) covering a physical bounding box ``box`` (3, 2)."""
        lo = np.empty(3, dtype=np.int64)
        hi = np.empty(3, dtype=np.int64)
        for s in range(3):
            lo[s] = self.valid_node_space(self.node_space(box[s][0], s), s)
            hi[s] = self.valid_node_space(self.node_space(box[s][1], s), s) + 1
        return lo, hi
