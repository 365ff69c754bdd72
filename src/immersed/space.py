"""Space: the grid, its node arena and the immersed bodies of one domain."""

from dataclasses import dataclass, field
from typing import Set

from .datastructures import EXTERIOR, FLUID, N_LEVELS, NodeFields, Parameters
from .geometry import Geometry
from .partition import Partition
from .thermo import conservative_state


@dataclass
class Space:
    part: Partition
    node: NodeFields
    geo: Geometry
    classified: Set[int] = field(default_factory=set)  # stationary body ids already classified here

    @classmethod
    def create(cls, part: Partition, geo: Geometry, model: Parameters, n_levels: int = N_LEVELS):
        """Allocate the node arena with a uniform free-stream state.

        Interior nodes start as plain fluid and the ghost margin as exterior.
        """
        node = NodeFields.allocate(part.shape, n_levels)
        node.gid[...] = EXTERIOR
        node.gid[part.interior] = FLUID
        node.U[...] = conservative_state(model.gamma, model.free_stream())
        return cls(part=part, node=node, geo=geo)
