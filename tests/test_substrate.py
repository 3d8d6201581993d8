"""Tests for buffer layout, ping-pong buffers and the numpy compute substrate."""

import numpy as np
import pytest

from edge_bundling.fdeb.compatibility import compute_compatibility_lists
from edge_bundling.fdeb.forces import edge_spring_constants, integrate
from edge_bundling.fdeb.subdivision import update_subdivisions
from edge_bundling.parallel import (
    BufferAliasingError,
    BufferLayout,
    KernelNotLinkedError,
    NumpySubstrate,
    PingPongBuffers,
    SubstrateError,
    TargetNotReadyError,
    compatibility_kernel,
    subdivision_kernel,
    update_kernel,
)
from edge_bundling.validation import ProblemTooLargeError


def copy_kernel(inputs):
    """Kernel returning its first input unchanged."""
    return np.array(inputs[0])


def create_random_paths(n_edges=5, n_points=6, seed=1):
    """Random (E, n_points, 3) paths."""
    rng = np.random.default_rng(seed)
    return rng.uniform(0, 100, size=(n_edges, n_points, 3))


# =============================================================================
# Buffer layout
# =============================================================================


class TestBufferLayout:
    """Tests for tiled buffer shape arithmetic."""

    def test_single_tile(self):
        """Few edges fit one tile, one row per edge."""
        layout = BufferLayout(n_edges=5, n_points=4, capacity=3, max_extent=16)
        assert layout.n_tiles == 1
        assert layout.n_rows == 5
        assert layout.shape == (5, 4, 4)
        assert layout.compat_shape == (5, 3, 4)

    def test_tiling(self):
        """Edges beyond max_extent wrap into further tiles."""
        layout = BufferLayout(n_edges=10, n_points=3, capacity=2, max_extent=8)
        assert layout.n_tiles == 2
        assert layout.n_rows == 8
        assert layout.n_columns == 6
        assert layout.compat_columns == 4

    def test_edge_cell(self):
        """Edge e lives in row e % n_rows of tile e // n_rows."""
        layout = BufferLayout(n_edges=10, n_points=3, capacity=2, max_extent=8)
        assert layout.edge_cell(0) == (0, 0)
        assert layout.edge_cell(7) == (7, 0)
        assert layout.edge_cell(9) == (1, 3)

    def test_cell_edges_padding(self):
        """Rows past the last edge of the last tile are padding."""
        layout = BufferLayout(n_edges=10, n_points=3, capacity=2, max_extent=8)
        cells = layout.cell_edges()
        assert cells.shape == (8, 2)
        assert cells[1, 1] == 9
        assert cells[2, 1] == -1

    def test_too_wide(self):
        """Point columns beyond the extent raise."""
        with pytest.raises(ProblemTooLargeError):
            BufferLayout(n_edges=10, n_points=6, capacity=2, max_extent=4)

    def test_pack_unpack(self):
        """Packed paths come back unchanged, tiles included."""
        layout = BufferLayout(n_edges=10, n_points=3, capacity=2, max_extent=8)
        paths = create_random_paths(n_edges=10, n_points=3)
        image = layout.pack_points(paths)
        assert image.shape == layout.shape
        np.testing.assert_array_equal(layout.unpack_points(image), paths)

    def test_pack_fewer_points(self):
        """Shorter paths occupy the first columns of each tile."""
        layout = BufferLayout(n_edges=3, n_points=6, capacity=2, max_extent=8)
        paths = create_random_paths(n_edges=3, n_points=3)
        image = layout.pack_points(paths)
        np.testing.assert_array_equal(layout.unpack_points(image, count=3), paths)
        assert np.all(image[:, 3:] == 0.0)

    def test_pack_too_many_points(self):
        """Paths longer than the layout are rejected."""
        layout = BufferLayout(n_edges=2, n_points=3, capacity=2, max_extent=8)
        with pytest.raises(ValueError):
            layout.pack_points(create_random_paths(n_edges=2, n_points=4))

    def test_tile_region(self):
        """Tile regions are n_points wide column blocks."""
        layout = BufferLayout(n_edges=10, n_points=3, capacity=2, max_extent=8)
        image = layout.pack_points(create_random_paths(n_edges=10, n_points=3))
        x, region = layout.tile_region(image, 1)
        assert x == 3
        assert region.shape == (8, 3, 4)


class TestPingPongBuffers:
    """Tests for double buffering."""

    def test_initial(self):
        """Slot a is read first."""
        state = PingPongBuffers("a", "b")
        assert state.parity == 0
        assert state.read == "a"
        assert state.write == "b"

    def test_swap(self):
        """Swapping flips read and write."""
        state = PingPongBuffers("a", "b")
        state.swap()
        assert state.parity == 1
        assert state.read == "b"
        assert state.write == "a"
        state.swap()
        assert state.read == "a"

    def test_read_never_equals_write(self):
        """The slots read and written are always distinct."""
        state = PingPongBuffers("a", "b")
        for _ in range(5):
            assert state.read != state.write
            state.swap()

    def test_slots_fixed_order(self):
        """slots lists both buffers in construction order whatever the parity."""
        state = PingPongBuffers("a", "b")
        assert state.slots == ("a", "b")
        state.swap()
        assert state.slots == ("a", "b")
        assert set(state.slots) == {state.read, state.write}


# =============================================================================
# Substrate
# =============================================================================


class TestNumpySubstrate:
    """Tests for the host-memory substrate."""

    def test_allocate_and_read(self):
        """New buffers are zeroed and read back as copies."""
        substrate = NumpySubstrate()
        buffer = substrate.allocate_buffer(4, 2)
        data = substrate.read_buffer(buffer)
        assert data.shape == (2, 4, 4)
        assert np.all(data == 0)
        data[0, 0, 0] = 1.0
        assert substrate.read_buffer(buffer)[0, 0, 0] == 0.0

    def test_allocate_with_data(self):
        """Buffers can be initialized from data."""
        substrate = NumpySubstrate()
        data = np.arange(24, dtype=np.float32).reshape(2, 3, 4)
        buffer = substrate.allocate_buffer(3, 2, data=data)
        np.testing.assert_array_equal(substrate.read_buffer(buffer), data)

    def test_allocate_too_large(self):
        """Buffers beyond the max extent cannot be allocated."""
        substrate = NumpySubstrate(max_buffer_extent=8)
        with pytest.raises(TargetNotReadyError, match="exceeds"):
            substrate.allocate_buffer(9, 1)

    def test_invalid_extent(self):
        """The max extent must be at least 2."""
        with pytest.raises(ValueError):
            NumpySubstrate(max_buffer_extent=1)

    def test_write_subregion(self):
        """Sub-region writes land at (x, y)."""
        substrate = NumpySubstrate()
        buffer = substrate.allocate_buffer(4, 4)
        substrate.write_subregion(buffer, 2, 1, np.ones((2, 2, 4)))
        data = substrate.read_buffer(buffer)
        assert data[1:3, 2:4].sum() == 16
        assert data.sum() == 16

    def test_write_subregion_out_of_bounds(self):
        """Regions must fit the buffer."""
        substrate = NumpySubstrate()
        buffer = substrate.allocate_buffer(4, 4)
        with pytest.raises(TargetNotReadyError, match="does not fit"):
            substrate.write_subregion(buffer, 3, 0, np.ones((1, 2, 4)))

    def test_run_kernel(self):
        """A kernel writes its result into the bound target."""
        substrate = NumpySubstrate()
        source = substrate.allocate_buffer(2, 2, data=np.full((2, 2, 4), 7.0))
        target = substrate.allocate_buffer(2, 2)
        kernel = substrate.compile_kernel("copy", copy_kernel)
        substrate.bind_target(target)
        substrate.run_kernel(kernel, target, [source], {})
        assert np.all(substrate.read_buffer(target) == 7.0)
        assert substrate.kernel_runs == 1

    def test_unbound_target(self):
        """Running without binding the target fails."""
        substrate = NumpySubstrate()
        source = substrate.allocate_buffer(2, 2)
        target = substrate.allocate_buffer(2, 2)
        kernel = substrate.compile_kernel("copy", copy_kernel)
        with pytest.raises(TargetNotReadyError, match="not the bound target"):
            substrate.run_kernel(kernel, target, [source], {})

    def test_unbind_target(self):
        """unbind_target clears the binding."""
        substrate = NumpySubstrate()
        source = substrate.allocate_buffer(2, 2)
        target = substrate.allocate_buffer(2, 2)
        kernel = substrate.compile_kernel("copy", copy_kernel)
        substrate.bind_target(target)
        substrate.unbind_target()
        with pytest.raises(TargetNotReadyError):
            substrate.run_kernel(kernel, target, [source], {})

    def test_aliasing(self):
        """A kernel may not read the buffer it writes."""
        substrate = NumpySubstrate()
        target = substrate.allocate_buffer(2, 2)
        kernel = substrate.compile_kernel("copy", copy_kernel)
        substrate.bind_target(target)
        with pytest.raises(BufferAliasingError):
            substrate.run_kernel(kernel, target, [target], {})

    def test_inputs_read_only(self):
        """Kernels see their inputs read-only."""

        def writing_kernel(inputs):
            inputs[0][...] = 1.0
            return np.array(inputs[0])

        substrate = NumpySubstrate()
        source = substrate.allocate_buffer(2, 2)
        target = substrate.allocate_buffer(2, 2)
        kernel = substrate.compile_kernel("write", writing_kernel)
        substrate.bind_target(target)
        with pytest.raises(ValueError, match="read-only"):
            substrate.run_kernel(kernel, target, [source], {})

    def test_wrong_output_shape(self):
        """Kernels must fill exactly the target domain."""
        substrate = NumpySubstrate()
        source = substrate.allocate_buffer(3, 2)
        target = substrate.allocate_buffer(2, 2)
        kernel = substrate.compile_kernel("copy", copy_kernel)
        substrate.bind_target(target)
        with pytest.raises(SubstrateError, match="produced shape"):
            substrate.run_kernel(kernel, target, [source], {})

    def test_released_kernel(self):
        """Released kernels cannot run."""
        substrate = NumpySubstrate()
        source = substrate.allocate_buffer(2, 2)
        target = substrate.allocate_buffer(2, 2)
        kernel = substrate.compile_kernel("copy", copy_kernel)
        substrate.release_kernel(kernel)
        substrate.bind_target(target)
        with pytest.raises(KernelNotLinkedError):
            substrate.run_kernel(kernel, target, [source], {})

    def test_uncallable_kernel(self):
        """Compiling a non-callable fails to link."""
        with pytest.raises(KernelNotLinkedError):
            NumpySubstrate().compile_kernel("bad", None)

    def test_released_buffer(self):
        """Released buffers cannot be read or bound."""
        substrate = NumpySubstrate()
        buffer = substrate.allocate_buffer(2, 2)
        substrate.release_buffer(buffer)
        assert substrate.live_buffers == 0
        with pytest.raises(TargetNotReadyError, match="released"):
            substrate.read_buffer(buffer)
        with pytest.raises(TargetNotReadyError):
            substrate.bind_target(buffer)

    def test_integer_target(self):
        """Targets must hold floating point data."""
        substrate = NumpySubstrate()
        buffer = substrate.allocate_buffer(2, 2, dtype=np.int32)
        with pytest.raises(TargetNotReadyError, match="floating point"):
            substrate.bind_target(buffer)

    def test_live_counts(self):
        """live_buffers and live_kernels track allocations."""
        substrate = NumpySubstrate()
        a = substrate.allocate_buffer(2, 2)
        substrate.allocate_buffer(2, 2)
        kernel = substrate.compile_kernel("copy", copy_kernel)
        assert substrate.live_buffers == 2
        assert substrate.live_kernels == 1
        substrate.release_buffer(a)
        substrate.release_kernel(kernel)
        assert substrate.live_buffers == 1
        assert substrate.live_kernels == 0


# =============================================================================
# Kernels against the sequential building blocks
# =============================================================================


class TestKernels:
    """Kernels compute what the sequential functions compute."""

    def test_compatibility_kernel(self):
        """Compatibility slots hold the sequential lists and true counts."""
        rng = np.random.default_rng(4)
        sources = rng.uniform(0, 300, size=(12, 3))
        targets = rng.uniform(0, 300, size=(12, 3))
        sources[:, 2] = targets[:, 2] = 0.0
        layout = BufferLayout(n_edges=12, n_points=3, capacity=4, max_extent=8)
        paths = np.stack([sources, (sources + targets) / 2, targets], axis=1)

        image = compatibility_kernel(
            [layout.pack_points(paths)],
            n_edges=12,
            n_points=3,
            capacity=4,
            last_column=2,
            threshold=0.3,
            eps=1e-6,
        )
        lists, counts = layout.unpack_compatibility(image)
        expected = compute_compatibility_lists(sources, targets, threshold=0.3)
        # Slots keep the first `capacity` partners; the count is never truncated
        assert lists == [x[:4] for x in expected]
        assert counts.tolist() == [len(x) for x in expected]

    def test_compatibility_kernel_threshold_zero(self):
        """Edges are never listed as compatible with themselves."""
        paths = create_random_paths(n_edges=4, n_points=3)
        layout = BufferLayout(n_edges=4, n_points=3, capacity=4, max_extent=8)
        image = compatibility_kernel(
            [layout.pack_points(paths)],
            n_edges=4,
            n_points=3,
            capacity=4,
            last_column=2,
            threshold=0.0,
            eps=1e-6,
        )
        lists, _ = layout.unpack_compatibility(image)
        assert lists == [[1, 2, 3], [0, 2, 3], [0, 1, 3], [0, 1, 2]]

    def test_subdivision_kernel(self):
        """Re-sampling in the kernel matches the sequential walk."""
        paths = create_random_paths(n_edges=13, n_points=5)
        layout = BufferLayout(n_edges=13, n_points=6, capacity=1, max_extent=12)
        image = subdivision_kernel(
            [layout.pack_points(paths)], n_points=6, subdivisions=4, old_subdivisions=3, eps=1e-6
        )
        expected = update_subdivisions(paths, 4)
        np.testing.assert_allclose(layout.unpack_points(image), expected, atol=1e-9)

    def test_subdivision_kernel_collapsed(self):
        """Zero-length paths put every sample on the source."""
        paths = np.zeros((1, 3, 3))
        layout = BufferLayout(n_edges=1, n_points=6, capacity=1, max_extent=8)
        image = subdivision_kernel(
            [layout.pack_points(paths)], n_points=6, subdivisions=4, old_subdivisions=1, eps=1e-6
        )
        assert np.all(layout.unpack_points(image) == 0.0)

    def test_update_kernel(self):
        """One update pass matches one sequential iteration."""
        paths = create_random_paths(n_edges=12, n_points=5)
        compat = [[1, 11], [0, 5], [0], [], [5], [1, 4], [], [8], [7, 11], [], [], [0, 8]]
        layout = BufferLayout(n_edges=12, n_points=5, capacity=2, max_extent=10)

        compat_image = np.zeros(layout.compat_shape)
        compat_image[..., 0] = -1.0
        tiled = compat_image.reshape(layout.n_rows, layout.n_tiles, layout.capacity, 4)
        for e, neighbors in enumerate(compat):
            row, tile = e % layout.n_rows, e // layout.n_rows
            for slot, other in enumerate(neighbors):
                tiled[row, tile, slot, 0] = other

        image = update_kernel(
            [layout.pack_points(paths), compat_image],
            n_points=5,
            capacity=2,
            subdivisions=3,
            K=0.1,
            S=0.05,
            eps=1e-6,
        )
        kp = edge_spring_constants(paths[:, 0], paths[:, -1], 0.1, 3)
        expected = integrate(paths, compat, kp, 0.05)
        np.testing.assert_allclose(layout.unpack_points(image), expected, atol=1e-10)
