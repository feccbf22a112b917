# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""The offset table of the flat state vector.

For every node a in index order, the flat state vector holds [Re u_a, Im u_a, y_a1, ..., y_an],
so the total size is sum_a (2 + n_int(a)). Nodes are numbered from 1 in all public methods, offsets
into the flat vector start at 0.
"""

from dataclasses import dataclass

import numpy as np
from beartype.typing import Sequence
from jaxtyping import Int
from powerdyn_engine.errors import GridDynamicsError


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class NetworkLayout:
    """Holds the precomputed, immutable offsets of all nodes in the flat state vector."""

    offsets: Int[np.ndarray, " n_node"]
    """The offset of the real part of the voltage of each node, i.e. where the node starts"""

    n_internals: Int[np.ndarray, " n_node"]
    """The number of internal variables of each node"""

    voltage_real_index: Int[np.ndarray, " n_node"]
    """The offset of the real part of the voltage of each node"""

    voltage_imag_index: Int[np.ndarray, " n_node"]
    """The offset of the imaginary part of the voltage of each node"""

    internal_index: Int[np.ndarray, " n_internal_total"]
    """The offsets of all internal variables, concatenated in node order"""

    system_size: int
    """The length of the flat state vector"""

    @property
    def n_nodes(self) -> int:
        """The number of nodes"""
        return len(self.offsets)

    def internal_slice(self, position: int) -> slice:
        """Get the slice of the internal variables of the node at 0-based position"""
        start = int(self.offsets[position]) + 2
        return slice(start, start + int(self.n_internals[position]))

    def check_node(self, node: int) -> int:
        """Check a 1-based node number and return its 0-based position

        Raises
        ------
        GridDynamicsError
            If the node is outside [1, n_nodes]
        """
        if isinstance(node, bool) or not isinstance(node, (int, np.integer)) or not 1 <= node <= self.n_nodes:
            raise GridDynamicsError(f"Node {node!r} is outside [1, {self.n_nodes}]")
        return int(node) - 1

    def node_range(self, node: int) -> range:
        """Get all offsets of a 1-based node"""
        position = self.check_node(node)
        start = int(self.offsets[position])
        return range(start, start + 2 + int(self.n_internals[position]))

    def voltage_range(self, node: int) -> range:
        """Get the offsets of the real and the imaginary part of the voltage of a 1-based node"""
        position = self.check_node(node)
        start = int(self.offsets[position])
        return range(start, start + 2)

    def internal_range(self, node: int) -> range:
        """Get the offsets of the internal variables of a 1-based node"""
        position = self.check_node(node)
        internal = self.internal_slice(position)
        return range(internal.start, internal.stop)

    def node_of_offset(self, offset: int) -> int:
        """Get the 1-based node that owns an offset of the flat state vector"""
        if not 0 <= offset < self.system_size:
            raise GridDynamicsError(f"Offset {offset} is outside [0, {self.system_size - 1}]")
        return int(np.searchsorted(self.offsets, offset, side="right"))


def build_layout(n_internals: Sequence[int]) -> NetworkLayout:
    """Build the offset table for nodes with the given numbers of internal variables

    Parameters
    ----------
    n_internals : Sequence[int]
        The number of internal variables of each node, in node order

    Returns
    -------
    NetworkLayout
        The immutable offset table

    Raises
    ------
    GridDynamicsError
        If there are no nodes or a negative number of internal variables
    """
    n_internals = np.asarray(n_internals, dtype=int).reshape(-1)
    if n_internals.size == 0:
        raise GridDynamicsError("A network needs at least one node")
    if np.any(n_internals < 0):
        raise GridDynamicsError(f"Negative number of internal variables in {n_internals.tolist()}")

    sizes = 2 + n_internals
    offsets = np.concatenate([[0], np.cumsum(sizes)[:-1]]).astype(int)
    internal_index = np.concatenate(
        [np.arange(start + 2, start + 2 + n_int, dtype=int) for start, n_int in zip(offsets, n_internals, strict=True)]
    )
    return NetworkLayout(
        offsets=_read_only(offsets),
        n_internals=_read_only(n_internals),
        voltage_real_index=_read_only(offsets.copy()),
        voltage_imag_index=_read_only(offsets + 1),
        internal_index=_read_only(internal_index.astype(int)),
        system_size=int(np.sum(sizes)),
    )
