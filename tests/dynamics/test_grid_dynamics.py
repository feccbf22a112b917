# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

import jax
import logbook
import numpy as np
import pytest
from powerdyn_engine.dynamics.grid_dynamics import (
    AlgebraicGridDynamics,
    AnyGridDynamics,
    OrdinaryGridDynamics,
    OrdinaryGridDynamicsWithMass,
    build_grid_dynamics,
)
from powerdyn_engine.dynamics.network_rhs import NetworkRHS
from powerdyn_engine.dynamics.node_dynamics import to_algebraic
from powerdyn_engine.errors import GridDynamicsError
from powerdyn_engine.example_grids import constraint_node, linear_current_node, two_node_laplacian


def test_build_ordinary(swing_ode: AnyGridDynamics) -> None:
    assert isinstance(swing_ode, OrdinaryGridDynamics)
    assert swing_ode.n_nodes == 2
    assert swing_ode.system_size == 6
    assert len(swing_ode.nodes) == 2
    assert swing_ode(np.zeros(6), 0.0).shape == (6,)
    assert repr(swing_ode) == "OrdinaryGridDynamics(n_nodes=2, system_size=6)"


def test_build_with_mass(two_node: AnyGridDynamics) -> None:
    assert isinstance(two_node, OrdinaryGridDynamicsWithMass)
    assert two_node.masses.tolist() == [False, False, True, True, True]
    assert np.array_equal(two_node.mass_matrix(), np.diag([0.0, 0.0, 1.0, 1.0, 1.0]))
    with pytest.raises(ValueError):
        two_node.masses[0] = True

    out = two_node(np.array([1.0, 0.0, 0.0, 0.0, 0.0]), 0.0)
    assert np.allclose(out, [0.0, 0.0, -1.0, 0.0, 0.0])


def test_build_algebraic() -> None:
    grid = build_grid_dynamics([to_algebraic(constraint_node()), linear_current_node()], two_node_laplacian())
    assert isinstance(grid, AlgebraicGridDynamics)
    assert grid.differentials.tolist() == [False, False, True, True, True]

    x = np.array([1.0, 0.0, 0.0, 0.0, 1.0])
    dx = np.array([0.0, 0.0, -1.0, 0.0, -1.0])
    assert np.allclose(grid(dx, x, 0.0), 0.0)


def test_flag_length_mismatch() -> None:
    rhs = NetworkRHS([constraint_node(), linear_current_node()], two_node_laplacian())
    with pytest.raises(GridDynamicsError, match="system size is 5"):
        OrdinaryGridDynamicsWithMass(rhs, [True, True, True, True])
    with pytest.raises(GridDynamicsError):
        OrdinaryGridDynamicsWithMass(rhs, np.ones((5, 1), dtype=bool))


def test_variant_must_match_network() -> None:
    rhs = NetworkRHS([constraint_node(), linear_current_node()], two_node_laplacian())
    with pytest.raises(GridDynamicsError):
        OrdinaryGridDynamics(rhs)
    with pytest.raises(GridDynamicsError):
        AlgebraicGridDynamics(rhs, np.ones(5, dtype=bool))
    with pytest.raises(GridDynamicsError):
        OrdinaryGridDynamics("not a network")


def test_build_logs() -> None:
    with logbook.handlers.TestHandler() as caplog:
        build_grid_dynamics([linear_current_node(), linear_current_node()], two_node_laplacian())
        assert "Built OrdinaryGridDynamics with 2 nodes and system size 6" in "".join(caplog.formatted_records)


def test_warns_without_x64() -> None:
    jax.config.update("jax_enable_x64", False)
    try:
        with logbook.handlers.TestHandler() as caplog:
            build_grid_dynamics([linear_current_node(), linear_current_node()], two_node_laplacian())
    finally:
        jax.config.update("jax_enable_x64", True)
    assert "jax_enable_x64 is set to False" in "".join(caplog.formatted_records)
