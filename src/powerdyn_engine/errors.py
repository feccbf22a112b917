# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Exceptions raised by the dynamics engine.

All errors are raised synchronously where they are detected. Construction errors
(NodeDynamicsError, GridDynamicsError) prevent a model from reaching the solver, evaluation errors
(NodeEvaluationError) abort a single right hand side evaluation and indexing errors (StateError)
abort a single access on a State.
"""

from beartype.typing import Optional


class PowerDynamicsError(Exception):
    """Base class of all errors of the engine."""


class NodeDynamicsError(PowerDynamicsError):
    """Something went wrong while constructing the dynamics of a node or its parameters."""


class GridDynamicsError(PowerDynamicsError):
    """Something went wrong while constructing the dynamics of the whole grid.

    Raised for invalid admittance laplacians, mismatching mass/differential vectors, mismatching
    state vector lengths and invalid promotions.
    """


class NodeEvaluationError(PowerDynamicsError):
    """The evaluation function of a node failed for a given state.

    The integrator is expected to catch this and decide whether to retry with a smaller step or to
    abort, the engine itself does not retry.
    """

    def __init__(self, node: int, message: str, time: Optional[float] = None) -> None:
        self.node = node
        """The 1-based index of the node whose evaluation failed"""

        self.time = time
        """The time of the failed evaluation, if known"""

        at_time = f" at t={time}" if time is not None else ""
        super().__init__(f"Evaluation of node {node} failed{at_time}: {message}")


class StateError(PowerDynamicsError, IndexError):
    """Something went wrong when creating, reading or modifying a State."""


class GridSolutionError(PowerDynamicsError):
    """Something went wrong when creating or querying a GridSolution."""
