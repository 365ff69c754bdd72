"""Tests for the geometry domain computation (node classification).

End-to-end scenario: a stationary unit sphere at the origin on a grid of
spacing 0.1 with two ghost layers.
"""

import numpy as np
import pytest

from immersed import (
    EXTERIOR,
    FLUID,
    NONE,
    Geometry,
    Parameters,
    Partition,
    Space,
    compute_geometry_domain,
)
from immersed.datastructures import CURRENT
from immersed.domain import (
    ghost_state,
    identify_geometry_node,
    initialize_geometry_domain,
    interfacial_state,
)
from immersed.geometry import box, sphere
from immersed.thermo import primitive_state


def make_space(*bodies, spacing=0.1, extent=1.5, velocity=(10.0, 0.0, 0.0)):
    part = Partition.from_spacing([-extent] * 3, [extent] * 3, spacing, ng=2, gl=2)
    params = Parameters(velocity=velocity)
    return Space.create(part, Geometry(bodies), params), params


@pytest.fixture(scope="module")
def sphere_space():
    """Unit sphere classified once."""
    space, params = make_space(sphere([0.0, 0.0, 0.0], 1.0))
    compute_geometry_domain(space, params)
    return space


# ========================================================
# End-to-end classification
# ========================================================


class TestSphereClassification:
    """Stationary unit sphere, spacing 0.1, gl = 2."""

    def test_nodes_in_or_on_sphere_are_owned(self, sphere_space):
        part, node = sphere_space.part, sphere_space.node
        X, Y, Z = np.meshgrid(part.x, part.y, part.z, indexing="ij")
        inside = X**2 + Y**2 + Z**2 <= 1.0

        gid = node.gid[part.interior]
        assert np.array_equal(gid == 1, inside[part.interior])
        assert np.all(gid[~inside[part.interior]] == FLUID)

    def test_margin_stays_exterior(self, sphere_space):
        part, node = sphere_space.part, sphere_space.node
        margin = np.ones(part.shape, dtype=bool)
        margin[part.interior] = False

        assert np.all(node.gid[margin] == EXTERIOR)

    def test_ghost_depth_along_axis(self, sphere_space):
        part, node = sphere_space.part, sphere_space.node
        surface = tuple(part.node_index([1.0, 0.0, 0.0]))
        below = tuple(part.node_index([0.9, 0.0, 0.0]))
        deep = tuple(part.node_index([0.8, 0.0, 0.0]))
        outside = tuple(part.node_index([1.1, 0.0, 0.0]))

        assert node.gst[surface] == 1
        assert node.gst[below] == 2
        assert node.gst[deep] == 0
        assert node.lid[deep] == 0
        assert node.gid[outside] == FLUID

    def test_fluid_nodes_carry_no_depth(self, sphere_space):
        node = sphere_space.node
        fluid = node.gid <= 0

        assert np.all(node.lid[fluid] == 0)
        assert np.all(node.gst[fluid] == 0)

    def test_ghost_nodes_are_interfacial(self, sphere_space):
        node = sphere_space.node
        ghost = node.gst > 0

        assert np.count_nonzero(ghost) > 0
        assert np.all(node.lid[ghost] > 0)
        # A single body touches only fluid
        assert np.array_equal(node.lid, node.gst)

    def test_ghost_layers_within_range(self, sphere_space):
        node, gl = sphere_space.node, sphere_space.part.gl

        assert node.gst.max() == gl
        assert node.lid.max() <= gl
        assert np.count_nonzero(node.gst == 1) > 0
        assert np.count_nonzero(node.gst == 2) > 0

    def test_first_layer_touches_fluid(self, sphere_space):
        """Every layer-1 node has a face, edge or corner neighbour in the fluid."""
        part, node = sphere_space.part, sphere_space.node
        for i, j, k in np.argwhere(node.gst == 1)[:50]:
            block = node.gid[i - 1:i + 2, j - 1:j + 2, k - 1:k + 2]
            assert np.any(block == FLUID)


class TestStationaryIdempotence:
    def test_repeated_calls_preserve_classification(self):
        space, params = make_space(
            sphere([0.0, 0.0, 0.0], 0.6),
            box([0.8, -0.4, -0.4], [1.2, 0.4, 0.4]),
            spacing=0.1,
        )
        compute_geometry_domain(space, params)
        node = space.node
        before = [a.copy() for a in (node.gid, node.lid, node.gst, node.fid)]

        for _ in range(2):
            reconciled = compute_geometry_domain(space, params)
            assert reconciled == 0

        for old, new in zip(before, (node.gid, node.lid, node.gst, node.fid)):
            assert np.array_equal(old, new)

    def test_mesh_nodes_link_to_faces(self):
        space, params = make_space(box([-0.5, -0.5, -0.5], [0.5, 0.5, 0.5]), spacing=0.1)
        compute_geometry_domain(space, params)
        node = space.node

        owned = node.gid == 1
        assert np.count_nonzero(owned) == 11**3
        assert np.all(node.fid[owned] >= 0)
        assert np.all(node.fid[~owned] == -1)


class TestTouchingBodies:
    """Nodes shared by two bodies are interfacial without being ghost nodes."""

    @pytest.fixture(scope="class")
    def touching(self):
        space, params = make_space(
            box([-0.8, -0.4, -0.4], [0.0, 0.4, 0.4]),
            box([0.1, -0.4, -0.4], [0.9, 0.4, 0.4]),
            spacing=0.1,
        )
        compute_geometry_domain(space, params)
        return space

    def test_first_body_claims_its_nodes(self, touching):
        part, node = touching.part, touching.node
        assert node.gid[tuple(part.node_index([0.0, 0.0, 0.0]))] == 1
        assert node.gid[tuple(part.node_index([0.1, 0.0, 0.0]))] == 2

    def test_contact_nodes_are_not_ghosts(self, touching):
        part, node = touching.part, touching.node
        contact = tuple(part.node_index([0.0, 0.0, 0.0]))

        assert node.lid[contact] == 1
        # Nearest fluid is beyond the box face at y = 0.4
        assert node.gst[contact] == 0

    def test_ghost_depth_bounded_by_interfacial_depth(self, touching):
        node = touching.node
        ghost = node.gst > 0
        assert np.count_nonzero(ghost) > 0
        assert np.all(node.gst[ghost] <= node.lid[ghost])

    def test_fluid_beyond_interfacial_shell_is_ignored(self, touching):
        """A contact node with fluid only in the second shell is not a ghost."""
        part, node = touching.part, touching.node
        idx = tuple(part.node_index([0.0, 0.3, 0.0]))

        assert node.lid[idx] == 1
        assert node.gst[idx] == 0


# ========================================================
# Neighbour scans
# ========================================================


class TestNeighbourScan:
    def test_exterior_neighbours_are_ignored(self, small_partition):
        part = small_partition
        gid = np.full(part.shape, EXTERIOR, dtype=np.int64)
        gid[part.interior] = 1
        i = j = k = int(part.lo[0])
        end = part.path_sep[0]

        assert interfacial_state(i, j, k, 1, end, part.path, gid, part.path_sep, part.gl) == 0
        assert ghost_state(i, j, k, FLUID, end, part.path, gid, part.path_sep, part.gl) == 0

    def test_shell_of_nearest_heterogeneous_node(self, small_partition):
        part = small_partition
        gid = np.zeros(part.shape, dtype=np.int64)
        gid[part.interior] = 1
        i, j, k = 7, 7, 7
        gid[i + 1, j + 1, k] = FLUID
        end = part.path_sep[0]

        # sqrt(2) lies in the second shell
        assert interfacial_state(i, j, k, 1, end, part.path, gid, part.path_sep, part.gl) == 2
        assert ghost_state(i, j, k, FLUID, end, part.path, gid, part.path_sep, part.gl) == 2

        gid[i, j, k - 1] = FLUID
        assert ghost_state(i, j, k, FLUID, end, part.path, gid, part.path_sep, part.gl) == 1


# ========================================================
# Moving bodies
# ========================================================


class TestInitializer:
    def test_moving_body_releases_interfacial_nodes(self):
        space, params = make_space(sphere([0.0, 0.0, 0.0], 0.6, state="moving"), spacing=0.1)
        compute_geometry_domain(space, params)
        node = space.node
        interfacial = node.lid > 0
        deep = (node.gid == 1) & ~interfacial

        initialize_geometry_domain(space)

        assert np.all(node.gid[interfacial] == FLUID)
        assert np.all(node.exposed[interfacial])
        assert np.all(node.gid[deep] == 1)
        assert not np.any(node.exposed[deep])

    def test_released_mesh_nodes_drop_face_cache(self):
        space, params = make_space(box([-0.5, -0.5, -0.5], [0.5, 0.5, 0.5], state="moving"), spacing=0.1)
        compute_geometry_domain(space, params)
        node = space.node
        interfacial = node.lid > 0
        deep = (node.gid == 1) & ~interfacial
        assert np.all(node.fid[interfacial] >= 0)

        initialize_geometry_domain(space)

        assert np.all(node.fid[interfacial] == NONE)
        assert np.all(node.fid[deep] >= 0)

    def test_stationary_body_is_preserved(self):
        space, params = make_space(sphere([0.0, 0.0, 0.0], 0.6), spacing=0.1)
        compute_geometry_domain(space, params)
        gid = space.node.gid.copy()

        initialize_geometry_domain(space)
        identify_geometry_node(space)

        assert np.array_equal(space.node.gid, gid)
        assert not np.any(space.node.exposed)


RADIUS = 0.65


class TestMovingSphere:
    """A sphere moving one cell along x exposes its trailing nodes."""

    @pytest.fixture(scope="class")
    def moved(self):
        space, params = make_space(
            sphere([0.0, 0.0, 0.0], RADIUS, state="moving", velocity=[10.0, 0.0, 0.0]),
            spacing=0.1,
        )
        compute_geometry_domain(space, params)
        owned_before = space.node.gid == 1

        space.geo.body(1).translate([0.1, 0.0, 0.0])
        reconciled = compute_geometry_domain(space, params)
        return space, params, owned_before, reconciled

    def test_trailing_nodes_are_reconciled(self, moved):
        space, _, owned_before, reconciled = moved
        left = owned_before & (space.node.gid == FLUID)

        assert reconciled == np.count_nonzero(left)
        assert reconciled > 0
        assert not np.any(space.node.exposed)

    def test_reconciled_state_is_free_stream(self, moved):
        space, params, owned_before, _ = moved
        left = np.argwhere(owned_before & (space.node.gid == FLUID))
        expected = params.free_stream()
        for i, j, k in left:
            Uo = primitive_state(params.gamma, params.gas_r, space.node.U[CURRENT, i, j, k])
            assert np.allclose(Uo, expected, rtol=1e-10, atol=1e-10)

    def test_classification_follows_body(self, moved):
        space, _, _, _ = moved
        part, node = space.part, space.node
        X, Y, Z = np.meshgrid(part.x, part.y, part.z, indexing="ij")
        inside = (X - 0.1) ** 2 + Y**2 + Z**2 <= RADIUS * RADIUS

        assert np.array_equal((node.gid == 1)[part.interior], inside[part.interior])

    def test_leading_edge_gained(self, moved):
        space, _, owned_before, _ = moved
        part, node = space.part, space.node
        tip = tuple(part.node_index([0.7, 0.0, 0.0]))

        assert not owned_before[tip]
        assert node.gid[tip] == 1
        assert node.gst[tip] == 1
