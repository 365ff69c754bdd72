"""Immersed boundary treatment for structured-grid compressible flow solvers.

Pipeline per step:
-----------------
compute_geometry_domain (once per step, before any flux evaluation)
├── initialize_geometry_domain   (reset invalidated classification)
├── identify_geometry_node       (claim nodes in or on each body)
└── identify_interfacial_node    (reconcile exposed nodes, layer depths)
immersed_boundary_treatment (once per time level evaluation)
"""

from .datastructures import (
    CURRENT,
    EXTERIOR,
    FLUID,
    NONE,
    TARGET,
    Metrics,
    NodeFields,
    Parameters,
)
from .domain import compute_geometry_domain
from .geometry import Geometry, Mesh, MotionState, Polyhedron, Sphere
from .partition import Partition
from .solver import ImmersedBoundarySolver
from .space import Space
from .treatment import (
    compute_geometric_data,
    flow_reconstruction,
    immersed_boundary_treatment,
    method_of_image,
)
from .weighting import SearchExhaustedError, inverse_distance_weighting

__all__ = [
    # Driver
    "ImmersedBoundarySolver",
    # Pipeline entry points
    "compute_geometry_domain",
    "immersed_boundary_treatment",
    # Standalone building blocks
    "method_of_image",
    "compute_geometric_data",
    "flow_reconstruction",
    "inverse_distance_weighting",
    "SearchExhaustedError",
    # Data structures
    "Parameters",
    "Metrics",
    "NodeFields",
    "Partition",
    "Space",
    "Geometry",
    "Polyhedron",
    "MotionState",
    "Sphere",
    "Mesh",
    # Sentinels
    "FLUID",
    "EXTERIOR",
    "NONE",
    "CURRENT",
    "TARGET",
]
