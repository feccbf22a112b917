# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""A symbol addressed view on a flat state vector.

    state = State(grid, x)
    state[2, "u"]              complex voltage of node 2
    state[2, "omega"]          internal variable omega of node 2
    state[2, "int", 1]         first internal variable of node 2
    state[2, "u"] = 1.0 + 0j   writes into x

Supported symbols:

    u, u_r, u_i     complex voltage and its real/imaginary part (settable)
    v, phi          voltage magnitude and angle
    i, iabs, delta  complex nodal current, its magnitude and its angle
    s, p, q         complex, active and reactive power, s = u conj(i)

The currents and powers are derived from the voltages of all nodes and the admittance laplacian on
every access, so they never go stale after a write. Nodes and internal indices are 1-based.
"""

import jax
import numpy as np
from beartype.typing import Optional, Union
from jaxtyping import Complex, Float
from powerdyn_engine.dynamics.grid_dynamics import GridDynamics
from powerdyn_engine.dynamics.types import DERIVED_SYMBOLS, INTERNAL_INDEX_SYMBOL, VOLTAGE_SYMBOLS
from powerdyn_engine.errors import StateError

Value = Union[int, float, complex]
NodeNumber = Union[int, np.integer]


class State:
    """A view on the flat state vector of a grid that is addressed by node and symbol.

    A float64 numpy vector is wrapped without copying, so writes through the State are visible in
    the vector and vice versa. Any other input, e.g. an immutable jax array, is copied once.
    """

    def __init__(
        self,
        grid: GridDynamics,
        vec: Union[np.ndarray, jax.Array],
        t: Optional[float] = None,
    ) -> None:
        """Wrap a flat state vector

        Parameters
        ----------
        grid : GridDynamics
            The grid the vector belongs to
        vec : Union[np.ndarray, jax.Array]
            The flat state vector of length grid.system_size
        t : Optional[float]
            The time of the state, if known

        Raises
        ------
        StateError
            If the vector doesn't have the length of the flat state vector of the grid
        """
        if isinstance(vec, np.ndarray) and vec.dtype == np.float64:
            array = vec
        else:
            array = np.array(vec, dtype=np.float64)
        if array.shape != (grid.system_size,):
            raise StateError(f"Expected a state vector of shape ({grid.system_size},), got {array.shape}")

        self._grid = grid
        self._vec = array
        self._t = t
        self._layout = grid.rhs.layout
        self._laplacian = np.asarray(grid.rhs.laplacian.dense)

    @classmethod
    def from_grid(cls, grid: GridDynamics, t: Optional[float] = None) -> "State":
        """Create a zero state for a grid"""
        return cls(grid, np.zeros(grid.system_size), t=t)

    @property
    def grid(self) -> GridDynamics:
        """The grid the state belongs to"""
        return self._grid

    @property
    def vec(self) -> Float[np.ndarray, " n_state"]:
        """The wrapped flat state vector"""
        return self._vec

    @property
    def t(self) -> Optional[float]:
        """The time of the state"""
        return self._t

    def copy(self) -> "State":
        """Create a State on a copy of the vector"""
        return State(self._grid, self._vec.copy(), t=self._t)

    def _position(self, node: NodeNumber) -> int:
        if isinstance(node, bool) or not 1 <= int(node) <= self._layout.n_nodes:
            raise StateError(f"Node {node!r} is outside [1, {self._layout.n_nodes}]")
        return int(node) - 1

    def _internal_offset(self, node: NodeNumber, index_or_symbol: Union[int, np.integer, str]) -> int:
        position = self._position(node)
        n_int = int(self._layout.n_internals[position])
        if isinstance(index_or_symbol, str):
            index = self._grid.nodes[position].internal_index(index_or_symbol)
            if index is None:
                raise StateError(f"Node {node} has no internal variable {index_or_symbol!r}")
        else:
            if isinstance(index_or_symbol, bool) or not 1 <= index_or_symbol <= n_int:
                raise StateError(f"Internal index {index_or_symbol!r} of node {node} is outside [1, {n_int}]")
            index = int(index_or_symbol) - 1
        return int(self._layout.offsets[position]) + 2 + index

    def voltages(self) -> Complex[np.ndarray, " n_node"]:
        """The complex voltages of all nodes"""
        layout = self._layout
        return self._vec[layout.voltage_real_index] + 1j * self._vec[layout.voltage_imag_index]

    def currents(self) -> Complex[np.ndarray, " n_node"]:
        """The complex nodal currents of all nodes, i = LY u"""
        return self._laplacian @ self.voltages()

    def powers(self) -> Complex[np.ndarray, " n_node"]:
        """The complex powers of all nodes, s = u conj(i)"""
        return self.voltages() * np.conj(self.currents())

    def _voltage(self, position: int) -> complex:
        offset = int(self._layout.offsets[position])
        return complex(self._vec[offset], self._vec[offset + 1])

    def _current(self, position: int) -> complex:
        return complex(self._laplacian[position] @ self.voltages())

    def get(self, node: NodeNumber, symbol: str) -> Value:
        """Read a voltage symbol, a derived quantity or a named internal variable of a node

        Raises
        ------
        StateError
            If the node is out of range or the symbol is unknown for the node
        """
        position = self._position(node)
        if symbol == INTERNAL_INDEX_SYMBOL:
            raise StateError(f"Use state[{node}, 'int', k] or get_internal to read an internal variable by index")
        if symbol in VOLTAGE_SYMBOLS or symbol in ("v", "phi"):
            u = self._voltage(position)
            if symbol == "u":
                return u
            if symbol == "u_r":
                return u.real
            if symbol == "u_i":
                return u.imag
            if symbol == "v":
                return abs(u)
            return float(np.angle(u))
        if symbol in ("s", "p", "q"):
            s = self._voltage(position) * self._current(position).conjugate()
            if symbol == "s":
                return s
            return s.real if symbol == "p" else s.imag
        if symbol in DERIVED_SYMBOLS:
            i = self._current(position)
            if symbol == "i":
                return i
            if symbol == "iabs":
                return abs(i)
            return float(np.angle(i))
        return float(self._vec[self._internal_offset(node, symbol)])

    def set(self, node: NodeNumber, symbol: str, value: Value) -> None:
        """Write the voltage or a named internal variable of a node into the vector

        Raises
        ------
        StateError
            If the node is out of range, the symbol is unknown or a derived quantity
        """
        position = self._position(node)
        offset = int(self._layout.offsets[position])
        if symbol == "u":
            value = complex(value)
            self._vec[offset] = value.real
            self._vec[offset + 1] = value.imag
        elif symbol in ("u_r", "u_i"):
            if isinstance(value, complex):
                raise StateError(f"{symbol} is a real quantity, got {value}")
            self._vec[offset + (symbol == "u_i")] = value
        elif symbol in DERIVED_SYMBOLS:
            raise StateError(f"{symbol} is derived from the voltages and can not be set")
        elif symbol == INTERNAL_INDEX_SYMBOL:
            raise StateError(f"Use state[{node}, 'int', k] or set_internal to write an internal variable by index")
        else:
            self.set_internal(node, symbol, value)

    def get_internal(self, node: NodeNumber, index_or_symbol: Union[int, np.integer, str]) -> float:
        """Read an internal variable by 1-based index or by name

        Raises
        ------
        StateError
            If the node or the internal index is out of range or the name is unknown
        """
        return float(self._vec[self._internal_offset(node, index_or_symbol)])

    def set_internal(self, node: NodeNumber, index_or_symbol: Union[int, np.integer, str], value: Value) -> None:
        """Write an internal variable by 1-based index or by name

        Raises
        ------
        StateError
            If the node or the internal index is out of range, the name is unknown or the value is
            complex
        """
        offset = self._internal_offset(node, index_or_symbol)
        if isinstance(value, complex):
            raise StateError(f"Internal variables are real, got {value}")
        self._vec[offset] = value

    def __getitem__(self, key: tuple) -> Value:
        """Read state[node, symbol] or state[node, "int", k]"""
        if len(key) == 3 and key[1] == INTERNAL_INDEX_SYMBOL:
            return self.get_internal(key[0], key[2])
        if len(key) != 2:
            raise StateError(f"Expected state[node, symbol] or state[node, 'int', k], got {key!r}")
        return self.get(key[0], key[1])

    def __setitem__(self, key: tuple, value: Value) -> None:
        """Write state[node, symbol] = value or state[node, "int", k] = value"""
        if len(key) == 3 and key[1] == INTERNAL_INDEX_SYMBOL:
            self.set_internal(key[0], key[2], value)
            return
        if len(key) != 2:
            raise StateError(f"Expected state[node, symbol] or state[node, 'int', k], got {key!r}")
        self.set(key[0], key[1], value)

    def __repr__(self) -> str:
        """Print the grid size and the time"""
        return f"State(system_size={self._vec.shape[0]}, t={self._t})"
