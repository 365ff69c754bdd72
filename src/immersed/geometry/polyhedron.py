"""Rigid bodies and the geometry registry.

Nodes refer to bodies by 1-based id; the registry owns the bodies and
validates every id on lookup.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union

import numpy as np

from .shapes import Mesh, Sphere

log = logging.getLogger(__name__)

Shape = Union[Sphere, Mesh]


class MotionState(IntEnum):
    STATIONARY = 1
    MOVING = 2


@dataclass(eq=False)
class Polyhedron:
    """A rigid body immersed in the flow.

    Parameters
    ----------
    shape : Sphere or Mesh
        Body geometry; topology never changes.
    state : MotionState or str
        Stationary bodies keep their node classification between steps.
    velocity, angular_velocity : array_like (3,)
        Rigid motion of the body, advanced externally.
    friction : float
        0 for a slip wall, positive for a no-slip wall.
    wall_temperature : float
        Negative for an adiabatic wall, otherwise the fixed wall temperature.
    """

    shape: Shape
    state: MotionState = MotionState.STATIONARY
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    angular_velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    friction: float = 0.0
    wall_temperature: float = -1.0
    centroid: np.ndarray = None
    box: np.ndarray = None

    def __post_init__(self):
        if isinstance(self.state, str):
            if self.state.upper() not in MotionState.__members__:
                raise ValueError(f"Unknown motion state {self.state!r}")
            self.state = MotionState[self.state.upper()]
        self.state = MotionState(self.state)
        self.velocity = np.asarray(self.velocity, dtype=np.float64)
        self.angular_velocity = np.asarray(self.angular_velocity, dtype=np.float64)
        if self.centroid is None:
            self.centroid = self.shape.centroid()
        self.centroid = np.asarray(self.centroid, dtype=np.float64)
        self.box = self.shape.bounding_box()

    @property
    def stationary(self):
        return self.state == MotionState.STATIONARY

    def translate(self, offset):
        """Move the body rigidly by ``offset``, updating pose and bounding box."""
        offset = np.asarray(offset, dtype=np.float64)
        self.shape = self.shape.translated(offset)
        self.centroid = self.centroid + offset
        self.box = self.shape.bounding_box()

    def surface_velocity(self, p):
        """Rigid-body velocity of the surface point ``p``."""
        return self.velocity + np.cross(self.angular_velocity, p - self.centroid)


def sphere(center, radius, **kwargs):
    """Polyhedron factory for an analytical sphere (Hydra ``_target_``)."""
    return Polyhedron(Sphere(np.asarray(center), radius), **kwargs)


def box(lower, upper, **kwargs):
    """Polyhedron factory for a triangulated axis-aligned box (Hydra ``_target_``)."""
    return Polyhedron(Mesh.box(lower, upper), **kwargs)


def _boxes_overlap(a, b):
    return bool(np.all(a[:, 0] <= b[:, 1]) and np.all(b[:, 0] <= a[:, 1]))


class Geometry:
    """Registry of the bodies immersed in one grid.

    Overlapping bodies are tolerated: the first registered body claims any
    node the bodies share.
    """

    def __init__(self, polyhedra=()):
        self.poly = []
        for poly in polyhedra:
            self.add(poly)

    def add(self, poly):
        """Register a body and return its 1-based id."""
        for gid, other in enumerate(self.poly, start=1):
            if _boxes_overlap(poly.box, other.box):
                log.warning(
                    f"Body {len(self.poly) + 1} bounding box overlaps body {gid}; "
                    f"shared nodes are claimed by body {gid}"
                )
        self.poly.append(poly)
        return len(self.poly)

    def body(self, gid):
        """Look up a body by its 1-based id."""
        if not 1 <= gid <= len(self.poly):
            raise KeyError(f"Unknown body id {gid} (have {len(self.poly)} bodies)")
        return self.poly[gid - 1]

    def moving_ids(self):
        return [gid for gid, poly in enumerate(self.poly, start=1) if not poly.stationary]

    def __len__(self):
        return len(self.poly)

    def __iter__(self):
        return iter(self.poly)
