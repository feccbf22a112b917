# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Wraps the raw trajectory of an integrator for symbol based access.

    solution = GridSolution(grid, times, states)
    solution(0.5, 2, "omega")                  omega of node 2 at t=0.5
    solution(np.linspace(0, 1, 11), slice(None), "v")   voltage magnitudes of all nodes

Between two stored time points the flat state vector is interpolated linearly, the symbols are
evaluated on the interpolated vector.
"""

import jax
import logbook
import numpy as np
from beartype.typing import Optional, Sequence, Union
from jaxtyping import Float
from powerdyn_engine.dynamics.grid_dynamics import GridDynamics
from powerdyn_engine.errors import GridSolutionError
from powerdyn_engine.states.state import State

logger = logbook.Logger(__name__)

Nodes = Union[int, Sequence[int], slice, np.ndarray]


class GridSolution:
    """A trajectory of flat state vectors of a grid."""

    def __init__(
        self,
        grid: GridDynamics,
        times: Union[np.ndarray, jax.Array, Sequence],
        states: Union[np.ndarray, jax.Array],
    ) -> None:
        """Wrap a trajectory

        Parameters
        ----------
        grid : GridDynamics
            The grid that was integrated
        times : Union[np.ndarray, jax.Array, Sequence]
            The strictly increasing time points, shape (n_t,)
        states : Union[np.ndarray, jax.Array]
            The flat state vectors at the time points, shape (n_t, system_size)

        Raises
        ------
        GridSolutionError
            If the times are not strictly increasing or the shapes don't match
        """
        times = np.array(times, dtype=np.float64)
        states = np.array(states, dtype=np.float64)
        if times.ndim != 1 or times.size == 0:
            raise GridSolutionError(f"Expected a non-empty 1-dimensional time vector, got shape {times.shape}")
        if np.any(np.diff(times) <= 0):
            raise GridSolutionError("The time points must be strictly increasing")
        if states.shape != (times.size, grid.system_size):
            raise GridSolutionError(
                f"Expected states of shape ({times.size}, {grid.system_size}), got {states.shape}"
            )
        times.setflags(write=False)
        states.setflags(write=False)

        self._grid = grid
        self._times = times
        self._states = states
        logger.debug(f"Wrapped a trajectory with {times.size} time points in [{times[0]}, {times[-1]}]")

    @property
    def grid(self) -> GridDynamics:
        """The grid that was integrated"""
        return self._grid

    @property
    def times(self) -> Float[np.ndarray, " n_t"]:
        """The (read-only) time points"""
        return self._times

    @property
    def states(self) -> Float[np.ndarray, " n_t n_state"]:
        """The (read-only) flat state vectors"""
        return self._states

    @property
    def t_span(self) -> tuple[float, float]:
        """The first and the last time point"""
        return float(self._times[0]), float(self._times[-1])

    def _interpolate(self, t: Float[np.ndarray, " n_query"]) -> Float[np.ndarray, " n_query n_state"]:
        """Linearly interpolate the flat state vectors at the query times"""
        start, stop = self.t_span
        if np.any(t < start) or np.any(t > stop):
            raise GridSolutionError(f"Times {t[(t < start) | (t > stop)].tolist()} are outside [{start}, {stop}]")
        if self._times.size == 1:
            return np.repeat(self._states, t.size, axis=0)

        upper = np.clip(np.searchsorted(self._times, t, side="right"), 1, self._times.size - 1)
        lower = upper - 1
        weight = (t - self._times[lower]) / (self._times[upper] - self._times[lower])
        return (1 - weight)[:, np.newaxis] * self._states[lower] + weight[:, np.newaxis] * self._states[upper]

    def _node_list(self, nodes: Nodes) -> list[int]:
        if isinstance(nodes, slice):
            if nodes != slice(None):
                raise GridSolutionError("Only the full slice (:) is supported, pass a sequence of nodes instead")
            return list(range(1, self._grid.n_nodes + 1))
        return [int(node) for node in np.asarray(nodes).reshape(-1)]

    def state_at(self, t: Union[int, float]) -> State:
        """Get the interpolated state at a single time point

        Raises
        ------
        GridSolutionError
            If t is outside the time span of the solution
        """
        vec = self._interpolate(np.array([t], dtype=np.float64))[0]
        return State(self._grid, vec, t=float(t))

    def __call__(
        self,
        t: Union[int, float, np.ndarray, Sequence],
        nodes: Nodes,
        symbol: str,
        index: Optional[int] = None,
    ) -> Union[int, float, complex, np.ndarray]:
        """Evaluate a symbol at some time points and nodes

        Parameters
        ----------
        t : Union[int, float, np.ndarray, Sequence]
            A single time point or an array of time points
        nodes : Nodes
            A single 1-based node, a sequence of nodes or slice(None) for all nodes
        symbol : str
            Any symbol a State understands, "int" together with index for an internal variable by
            position
        index : Optional[int]
            The 1-based index of the internal variable if symbol is "int"

        Returns
        -------
        Union[int, float, complex, np.ndarray]
            A scalar for a single time point and a single node. Otherwise an array of shape
            (n_t,), (n_nodes,) or (n_t, n_nodes)

        Raises
        ------
        GridSolutionError
            If a time point is outside the time span of the solution
        StateError
            If a node, the symbol or the index is invalid
        """
        single_time = np.ndim(t) == 0
        single_node = isinstance(nodes, (int, np.integer))
        times = np.array(t, dtype=np.float64).reshape(-1)
        node_list = self._node_list(nodes)
        if symbol != "int" and index is not None:
            raise GridSolutionError(f"An index is only allowed together with the symbol 'int', got {symbol!r}")
        if symbol == "int" and index is None:
            raise GridSolutionError("The symbol 'int' needs the 1-based index of the internal variable")

        values = []
        for time, vec in zip(times, self._interpolate(times), strict=True):
            state = State(self._grid, vec, t=float(time))
            if symbol == "int":
                values.append([state[node, "int", index] for node in node_list])
            else:
                values.append([state[node, symbol] for node in node_list])
        values = np.array(values)

        if single_time and single_node:
            return values[0, 0].item()
        if single_time:
            return values[0]
        if single_node:
            return values[:, 0]
        return values
