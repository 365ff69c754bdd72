"""Body geometry: shapes, rigid bodies and computational geometry kernels."""

from .computational_geometry import (
    compute_intersection,
    orthogonal_space,
    point_in_polyhedron,
)
from .polyhedron import Geometry, MotionState, Polyhedron, box, sphere
from .shapes import Mesh, Sphere

__all__ = [
    # Shapes
    "Sphere",
    "Mesh",
    # Bodies
    "Polyhedron",
    "MotionState",
    "Geometry",
    "sphere",
    "box",
    # Kernels
    "point_in_polyhedron",
    "compute_intersection",
    "orthogonal_space",
]
