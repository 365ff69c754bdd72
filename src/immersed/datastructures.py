"""Data structures for immersed boundary configuration, node storage and results.

This module defines the configuration, the node arena and the per-step
result data structures shared by every phase of the immersed boundary
pipeline.

Structure:
- Parameters: Model configuration (logged to MLflow at start)
- Metrics: Per-step classification results (logged to MLflow every step)
- NodeFields: Flat per-node arrays (ownership, depths, face cache, state)
"""

from dataclasses import dataclass, asdict, field
from typing import List, Tuple

import numpy as np
import pandas as pd


# ========================================================
# Sentinels and Layout Constants
# ========================================================

FLUID = 0  # owner id of a plain fluid node
EXTERIOR = -1  # owner id of a ghost-margin node outside the physical domain
NONE = -1  # face id of a node without a cached boundary face

CURRENT = 0  # state at the start of the step
TARGET = 1  # intermediate state written by the time integrator
N_LEVELS = 2

DIMU = 5  # conservative: rho, rho*u, rho*v, rho*w, rho*E
DIMUO = 6  # primitive: rho, u, v, w, p, T


# ========================================================
# Parameters (Model Configuration)
# ========================================================


@dataclass
class Parameters:
    """Model parameters consumed read-only by the immersed boundary pipeline."""

    gas_r: float = 287.058  # specific gas constant
    gamma: float = 1.4  # heat capacity ratio
    ibm_layer: int = 2  # ghost layers reconstructed by the method of images
    max_search_radius: int = 10  # cap for expanding-radius searches
    pressure: float = 101325.0  # free-stream pressure
    temperature: float = 288.15  # free-stream temperature
    velocity: Tuple[float, float, float] = (0.0, 0.0, 0.0)  # free-stream velocity

    def __post_init__(self):
        if self.gas_r <= 0.0 or self.gamma <= 1.0:
            raise ValueError(
                f"Invalid gas model: gas_r={self.gas_r}, gamma={self.gamma}"
            )
        if self.max_search_radius < 2:
            raise ValueError(
                f"max_search_radius must be at least 2, got {self.max_search_radius}"
            )
        if self.ibm_layer < 0:
            raise ValueError(f"ibm_layer must be non-negative, got {self.ibm_layer}")
        self.velocity = tuple(float(v) for v in self.velocity)

    def free_stream(self) -> np.ndarray:
        """Primitive free-stream state [rho, u, v, w, p, T]."""
        rho = self.pressure / (self.temperature * self.gas_r)
        return np.array([rho, *self.velocity, self.pressure, self.temperature])

    def to_dataframe(self):
        return pd.DataFrame([asdict(self)])

    def to_mlflow(self):
        params = asdict(self)
        u, v, w = params.pop("velocity")
        params.update(u_inf=u, v_inf=v, w_inf=w)
        return params


# ========================================================
# Metrics (Per-Step Results)
# ========================================================


@dataclass
class Metrics:
    """Node classification statistics for one step."""

    step: int = 0
    owned_nodes: int = 0
    interfacial_nodes: int = 0
    ghost_nodes: int = 0
    reconciled_nodes: int = 0
    treated_nodes: int = 0
    ghost_layer_counts: List[int] = field(default_factory=list)
    wall_time_seconds: float = 0.0

    def to_dataframe(self):
        return pd.DataFrame([self.to_mlflow()])

    def to_mlflow(self):
        """Flatten to scalar metrics (one entry per ghost layer)."""
        metrics = asdict(self)
        counts = metrics.pop("ghost_layer_counts")
        for r, count in enumerate(counts, start=1):
            metrics[f"ghost_layer_{r}"] = count
        return metrics


# ========================================================
# Node Arena
# ========================================================


@dataclass
class NodeFields:
    """Per-node arrays on the full grid (interior plus ghost margin).

    All arrays are indexed ``[i, j, k]``; the state array carries the time
    level first and the conservative component last.
    """

    gid: np.ndarray  # owner id: FLUID, body id (1-based) or EXTERIOR
    lid: np.ndarray  # interfacial depth
    gst: np.ndarray  # ghost depth
    fid: np.ndarray  # nearest boundary face cache
    exposed: np.ndarray  # node left a moving body and awaits reconciliation
    U: np.ndarray  # conservative state per time level

    @classmethod
    def allocate(cls, shape, n_levels: int = N_LEVELS):
        """Allocate all arrays for a grid of the given full shape."""
        shape = tuple(int(s) for s in shape)
        return cls(
            gid=np.zeros(shape, dtype=np.int64),
            lid=np.zeros(shape, dtype=np.int64),
            gst=np.zeros(shape, dtype=np.int64),
            fid=np.full(shape, NONE, dtype=np.int64),
            exposed=np.zeros(shape, dtype=np.bool_),
            U=np.zeros((n_levels, *shape, DIMU), dtype=np.float64),
        )
