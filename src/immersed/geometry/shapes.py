"""Body shapes: analytical spheres and closed triangulated surfaces.

A body's shape is one of two variants sharing the same interface:

- ``Sphere(center, radius)``: closed-form inside test and boundary probe.
- ``Mesh(vertices, faces)``: winding-number inside test and nearest-face probe.

Shapes are immutable; motion produces a translated copy.
"""

from dataclasses import dataclass

import numpy as np

from .computational_geometry import (
    NONE,
    classify_mesh_nodes,
    compute_intersection,
    point_in_polyhedron,
)


@dataclass(frozen=True, eq=False)
class Sphere:
    """Analytical sphere."""

    center: np.ndarray
    radius: float

    def __post_init__(self):
        object.__setattr__(self, "center", np.asarray(self.center, dtype=np.float64))
        object.__setattr__(self, "radius", float(self.radius))
        if self.center.shape != (3,):
            raise ValueError(f"Sphere center must have 3 components, got {self.center}")
        if self.radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {self.radius}")

    def centroid(self):
        return self.center.copy()

    def bounding_box(self):
        return np.stack([self.center - self.radius, self.center + self.radius], axis=1)

    def translated(self, offset):
        return Sphere(self.center + offset, self.radius)

    def contains(self, p, tiny=0.0):
        """Inside-or-on test; spheres carry no face information."""
        d = np.asarray(p, dtype=np.float64) - self.center
        return bool(np.dot(d, d) <= self.radius * self.radius), NONE

    def classify(self, part, node, lo, hi, owner):
        """Claim unowned nodes of the index box [lo, hi) inside or on the sphere."""
        box = tuple(slice(a, b) for a, b in zip(lo, hi))
        c = self.center
        dist2 = (
            (part.x[lo[0]:hi[0], None, None] - c[0]) ** 2
            + (part.y[None, lo[1]:hi[1], None] - c[1]) ** 2
            + (part.z[None, None, lo[2]:hi[2]] - c[2]) ** 2
        )
        # Squared radius comparison avoids a square root and keeps the surface inclusive
        claim = (node.gid[box] == 0) & (dist2 <= self.radius * self.radius)
        node.gid[box][claim] = owner
        node.fid[box][claim] = NONE
        node.exposed[box][claim] = False
        return int(np.count_nonzero(claim))

    def probe(self, fid, p):
        """Nearest boundary point of ``p`` and the outward unit normal there."""
        p = np.asarray(p, dtype=np.float64)
        N = p - self.center
        dist = np.linalg.norm(N)
        if dist == 0.0:
            # Every direction is nearest from the center
            N = np.array([1.0, 0.0, 0.0])
        else:
            N = N / dist
        pO = p + (self.radius - dist) * N
        return pO, N


@dataclass(frozen=True, eq=False)
class Mesh:
    """Closed triangulated surface with outward (counter-clockwise) faces."""

    vertices: np.ndarray
    faces: np.ndarray

    def __post_init__(self):
        vertices = np.ascontiguousarray(self.vertices, dtype=np.float64)
        faces = np.ascontiguousarray(self.faces, dtype=np.int64)
        if vertices.ndim != 2 or vertices.shape[1] != 3:
            raise ValueError(f"Mesh vertices must have shape (n, 3), got {vertices.shape}")
        if faces.ndim != 2 or faces.shape[1] != 3 or faces.shape[0] < 4:
            raise ValueError(f"Mesh faces must have shape (n >= 4, 3), got {faces.shape}")
        if faces.min() < 0 or faces.max() >= vertices.shape[0]:
            raise ValueError("Mesh faces reference missing vertices")
        object.__setattr__(self, "vertices", vertices)
        object.__setattr__(self, "faces", faces)

    @classmethod
    def box(cls, lower, upper):
        """Axis-aligned box triangulated into 12 outward faces."""
        if np.any(np.asarray(upper, dtype=np.float64) <= np.asarray(lower, dtype=np.float64)):
            raise ValueError(f"Inverted box: lower={lower}, upper={upper}")
        (x0, y0, z0), (x1, y1, z1) = lower, upper
        vertices = [
            [x0, y0, z0], [x1, y0, z0], [x1, y1, z0], [x0, y1, z0],
            [x0, y0, z1], [x1, y0, z1], [x1, y1, z1], [x0, y1, z1],
        ]
        faces = [
            [0, 2, 1], [0, 3, 2],  # z = z0
            [4, 5, 6], [4, 6, 7],  # z = z1
            [0, 1, 5], [0, 5, 4],  # y = y0
            [3, 6, 2], [3, 7, 6],  # y = y1
            [0, 4, 7], [0, 7, 3],  # x = x0
            [1, 2, 6], [1, 6, 5],  # x = x1
        ]
        return cls(np.array(vertices), np.array(faces))

    def centroid(self):
        """Volume centroid from the signed tetrahedra spanned with the origin."""
        a = self.vertices[self.faces[:, 0]]
        b = self.vertices[self.faces[:, 1]]
        c = self.vertices[self.faces[:, 2]]
        volumes = np.einsum("ij,ij->i", a, np.cross(b, c)) / 6.0
        total = volumes.sum()
        if abs(total) < 1e-300:
            return self.vertices.mean(axis=0)
        return (volumes[:, None] * (a + b + c)).sum(axis=0) / (4.0 * total)

    def bounding_box(self):
        return np.stack([self.vertices.min(axis=0), self.vertices.max(axis=0)], axis=1)

    def translated(self, offset):
        return Mesh(self.vertices + offset, self.faces)

    def contains(self, p, tiny=0.0):
        inside, fid = point_in_polyhedron(
            np.asarray(p, dtype=np.float64), self.vertices, self.faces, tiny
        )
        return bool(inside), int(fid)

    def classify(self, part, node, lo, hi, owner):
        return int(
            classify_mesh_nodes(
                node.gid, node.fid, node.exposed, lo, hi,
                part.x, part.y, part.z,
                self.vertices, self.faces, part.tiny_l, owner,
            )
        )

    def probe(self, fid, p):
        return compute_intersection(
            np.asarray(p, dtype=np.float64), fid, self.vertices, self.faces
        )
