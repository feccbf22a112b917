# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Provides small example grids for testing and as usage examples."""

import jax.numpy as jnp
import numpy as np
from beartype.typing import Optional
from jaxtyping import Complex
from powerdyn_engine.config import EngineConfig
from powerdyn_engine.dynamics.coupling import AdmittanceLaplacian, admittance_laplacian_from_branches
from powerdyn_engine.dynamics.grid_dynamics import AnyGridDynamics, build_grid_dynamics
from powerdyn_engine.dynamics.node_dynamics import OrdinaryNodeDynamics, OrdinaryNodeDynamicsWithMass
from powerdyn_engine.node_types import PQAlgebraic, SlackAlgebraic, SwingEq


def two_node_laplacian() -> Complex[np.ndarray, " 2 2"]:
    """The admittance laplacian of two nodes connected by a unit admittance"""
    return np.array([[1.0, -1.0], [-1.0, 1.0]], dtype=complex)


def linear_current_node() -> OrdinaryNodeDynamics:
    """A node with the trivial dynamics du/dt = i_c and one decaying internal variable x"""

    def rhs(u, i_c, internals, t):  # noqa: ANN001, ANN202
        return i_c, -internals

    return OrdinaryNodeDynamics(rhs=rhs, n_int=1, internal_symbols=("x",))


def two_node_grid(config: Optional[EngineConfig] = None) -> AnyGridDynamics:
    """Two nodes, node 1 fixes the voltage to 1, node 2 follows du/dt = i_c.

    At u_1 = 1, u_2 = 0 the nodal currents are i_c = [1, -1].
    """
    nodes = [SlackAlgebraic(U=1.0).construct_node_dynamics(), linear_current_node()]
    return build_grid_dynamics(nodes, two_node_laplacian(), config=config)


def layout_grid(config: Optional[EngineConfig] = None) -> AnyGridDynamics:
    """A ring of three nodes with 2, 0 and 1 internal variables, all with trivial ODEs"""

    def two_internals(u, i_c, internals, t):  # noqa: ANN001, ANN202
        return 1j * u, jnp.array([internals[1], -internals[0]])

    def no_internals(u, i_c, internals, t):  # noqa: ANN001, ANN202
        return -i_c, jnp.zeros(0)

    nodes = [
        OrdinaryNodeDynamics(rhs=two_internals, n_int=2, internal_symbols=("a", "b")),
        OrdinaryNodeDynamics(rhs=no_internals, n_int=0),
        linear_current_node(),
    ]
    laplacian = admittance_laplacian_from_branches([0, 1, 2], [1, 2, 0], [1.0 - 2.0j, 0.5 - 1.0j, 2.0 - 4.0j])
    return build_grid_dynamics(nodes, laplacian, config=config)


def constraint_node(voltage: complex = 1.0) -> OrdinaryNodeDynamicsWithMass:
    """A node without internal variables that fixes the voltage through the constraint 0 = voltage - u"""

    def rhs(u, i_c, internals, t):  # noqa: ANN001, ANN202
        return voltage - u, jnp.zeros(0)

    return OrdinaryNodeDynamicsWithMass(rhs=rhs, n_int=0, voltage_mass=False, internal_masses=())


def swing_laplacian() -> AdmittanceLaplacian:
    """A line of three nodes with inductive lines"""
    return admittance_laplacian_from_branches([0, 1], [1, 2], [-10.0j, -8.0j])


def swing_grid(config: Optional[EngineConfig] = None) -> AnyGridDynamics:
    """A slack bus, a swing equation generator and a PQ load in a line"""
    nodes = [
        SlackAlgebraic(U=1.0).construct_node_dynamics(),
        SwingEq(H=5.0, P=1.0, D=0.1, Omega=50.0).construct_node_dynamics(),
        PQAlgebraic(S=-1.0 - 0.2j).construct_node_dynamics(),
    ]
    return build_grid_dynamics(nodes, swing_laplacian(), config=config)


def swing_ode_grid(config: Optional[EngineConfig] = None) -> AnyGridDynamics:
    """Two swing equation generators, feeding and consuming the same power, a pure ODE"""
    nodes = [
        SwingEq(H=5.0, P=1.0, D=0.1, Omega=50.0).construct_node_dynamics(),
        SwingEq(H=3.0, P=-1.0, D=0.1, Omega=50.0).construct_node_dynamics(),
    ]
    laplacian = admittance_laplacian_from_branches([0], [1], [-5.0j])
    return build_grid_dynamics(nodes, laplacian, config=config)
