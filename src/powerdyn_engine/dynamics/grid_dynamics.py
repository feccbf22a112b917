# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""The grid dynamics variants handed to an integrator.

A grid dynamics pairs a NetworkRHS with the metadata the respective formulation needs:

- OrdinaryGridDynamics:          dx/dt = f(x, t)
- OrdinaryGridDynamicsWithMass:  M dx/dt = f(x, t), M = diag(masses) with binary masses
- AlgebraicGridDynamics:         0 = g(dx, x, t), differentials mark the dynamic variables

The grid dynamics together with an initial flat state vector is the complete input of an
integrator. This module never steps time itself.
"""

import jax
import logbook
import numpy as np
from beartype.typing import Optional, Sequence, Union
from jaxtyping import ArrayLike, Bool, Float
from powerdyn_engine.config import EngineConfig
from powerdyn_engine.dynamics.coupling import AdmittanceLaplacian
from powerdyn_engine.dynamics.node_dynamics import AnyNodeDynamics
from powerdyn_engine.dynamics.network_rhs import NetworkRHS
from powerdyn_engine.dynamics.types import DynamicsKind
from powerdyn_engine.errors import GridDynamicsError

logger = logbook.Logger(__name__)


def _check_flags(
    flags: Bool[ArrayLike, " n_state"],
    rhs: NetworkRHS,
    name: str,
) -> Bool[np.ndarray, " n_state"]:
    """Convert a mass/differential vector to a read-only bool array and check its length

    Raises
    ------
    GridDynamicsError
        If the vector is not 1-dimensional or its length differs from the system size
    """
    flags = np.array(flags, dtype=bool)
    if flags.ndim != 1 or flags.shape[0] != rhs.system_size:
        raise GridDynamicsError(
            f"The {name} vector has shape {flags.shape} but the system size is {rhs.system_size}"
        )
    flags.setflags(write=False)
    return flags


class GridDynamics:
    """Shared accessors of all grid dynamics variants."""

    kind: DynamicsKind
    """The formulation of this variant"""

    def __init__(self, rhs: NetworkRHS) -> None:
        if not isinstance(rhs, NetworkRHS):
            raise GridDynamicsError(f"Expected a NetworkRHS, got {type(rhs).__name__}")
        if rhs.kind != self.kind:
            raise GridDynamicsError(f"A {type(self).__name__} needs a {self.kind.name} network, got {rhs.kind.name}")
        self._rhs = rhs

    @property
    def rhs(self) -> NetworkRHS:
        """The whole-network evaluation function"""
        return self._rhs

    @property
    def nodes(self) -> tuple[AnyNodeDynamics, ...]:
        """The node dynamics, in node order"""
        return self._rhs.nodes

    @property
    def n_nodes(self) -> int:
        """The number of nodes"""
        return self._rhs.n_nodes

    @property
    def system_size(self) -> int:
        """The length of the flat state vector"""
        return self._rhs.system_size

    def __repr__(self) -> str:
        """Print the variant, the number of nodes and the system size"""
        return f"{type(self).__name__}(n_nodes={self.n_nodes}, system_size={self.system_size})"


class OrdinaryGridDynamics(GridDynamics):
    """A power grid model described as an ordinary differential equation dx/dt = f(x, t)."""

    kind = DynamicsKind.ORDINARY

    def __call__(self, x: ArrayLike, t: float = 0.0) -> Float[np.ndarray, " n_state"]:
        """Evaluate f(x, t)"""
        return self._rhs(x, t)


class OrdinaryGridDynamicsWithMass(GridDynamics):
    """A power grid model described as an ODE with binary masses, i.e. a semi-explicit DAE.

    A mass of True means the equation is treated as an ordinary differential equation, False means
    it is an algebraic constraint on the state variables. The off-diagonal entries of the mass
    matrix are zero.
    """

    kind = DynamicsKind.ORDINARY_WITH_MASS

    def __init__(self, rhs: NetworkRHS, masses: Bool[ArrayLike, " n_state"]) -> None:
        super().__init__(rhs)
        self._masses = _check_flags(masses, rhs, "masses")

    @property
    def masses(self) -> Bool[np.ndarray, " n_state"]:
        """The (read-only) diagonal of the mass matrix"""
        return self._masses

    def mass_matrix(self) -> Float[np.ndarray, " n_state n_state"]:
        """Get the diagonal mass matrix as a float matrix, as expected by most integrators"""
        return np.diag(self._masses.astype(float))

    def __call__(self, x: ArrayLike, t: float = 0.0) -> Float[np.ndarray, " n_state"]:
        """Evaluate f(x, t)"""
        return self._rhs(x, t)


class AlgebraicGridDynamics(GridDynamics):
    """A power grid model described as a fully implicit differential algebraic equation.

    A differential of True means the variable is dynamic and has a derivative variable, False
    means it is defined by an algebraic constraint only.
    """

    kind = DynamicsKind.ALGEBRAIC

    def __init__(self, rhs: NetworkRHS, differentials: Bool[ArrayLike, " n_state"]) -> None:
        super().__init__(rhs)
        self._differentials = _check_flags(differentials, rhs, "differentials")

    @property
    def differentials(self) -> Bool[np.ndarray, " n_state"]:
        """The (read-only) flags marking the differential variables"""
        return self._differentials

    def __call__(self, dx: ArrayLike, x: ArrayLike, t: float = 0.0) -> Float[np.ndarray, " n_state"]:
        """Evaluate the residual g(dx, x, t)"""
        return self._rhs.residual(dx, x, t)


AnyGridDynamics = Union[OrdinaryGridDynamics, OrdinaryGridDynamicsWithMass, AlgebraicGridDynamics]


def build_grid_dynamics(
    nodes: Sequence[AnyNodeDynamics],
    laplacian: Union[AdmittanceLaplacian, ArrayLike],
    config: Optional[EngineConfig] = None,
) -> AnyGridDynamics:
    """Build the grid dynamics of a power grid model.

    The variant is the most general formulation among the nodes. Nodes of a less general
    formulation are promoted once, the flags are collected from the promoted nodes.

    Parameters
    ----------
    nodes : Sequence[AnyNodeDynamics]
        The dynamics of every node, in node order (node 1 first)
    laplacian : Union[AdmittanceLaplacian, ArrayLike]
        The admittance laplacian
    config : Optional[EngineConfig]
        The engine config, by default default_config()

    Returns
    -------
    AnyGridDynamics
        The grid dynamics variant matching the nodes

    Raises
    ------
    GridDynamicsError
        If the network can not be assembled
    """
    if not jax.config.read("jax_enable_x64"):
        logger.warning("jax_enable_x64 is set to False. This means the grid dynamics will be evaluated in float32")

    rhs = NetworkRHS(nodes, laplacian, config=config)
    flags = np.concatenate([node.flat_flags() for node in rhs.nodes])
    if rhs.kind == DynamicsKind.ORDINARY:
        grid = OrdinaryGridDynamics(rhs)
    elif rhs.kind == DynamicsKind.ORDINARY_WITH_MASS:
        grid = OrdinaryGridDynamicsWithMass(rhs, flags)
    else:
        grid = AlgebraicGridDynamics(rhs, flags)

    logger.info(f"Built {type(grid).__name__} with {grid.n_nodes} nodes and system size {grid.system_size}")
    return grid
