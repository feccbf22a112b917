# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from powerdyn_engine.dynamics.node_dynamics import (
    AlgebraicNodeDynamics,
    OrdinaryNodeDynamics,
    OrdinaryNodeDynamicsWithMass,
    common_kind,
    promote,
    to_algebraic,
    to_ordinary_with_mass,
)
from powerdyn_engine.dynamics.types import DynamicsKind
from powerdyn_engine.errors import NodeDynamicsError
from powerdyn_engine.example_grids import constraint_node, linear_current_node


def oscillator_rhs(u, i_c, internals, t):  # noqa: ANN001, ANN201
    return 1j * u * internals[0] - i_c, jnp.array([internals[1], -internals[0] + jnp.real(u * jnp.conj(i_c))])


@pytest.fixture
def oscillator() -> OrdinaryNodeDynamics:
    return OrdinaryNodeDynamics(rhs=oscillator_rhs, n_int=2, internal_symbols=("omega", "theta"))


def random_inputs(rng: np.random.Generator, n_int: int) -> tuple:
    u = complex(rng.normal(), rng.normal())
    i_c = complex(rng.normal(), rng.normal())
    return jnp.asarray(u), jnp.asarray(i_c), jnp.asarray(rng.normal(size=n_int)), 0.3


def test_ordinary_node(oscillator: OrdinaryNodeDynamics) -> None:
    assert oscillator.kind == DynamicsKind.ORDINARY
    assert oscillator.n_state == 4
    assert oscillator.symbol_index == {"omega": 0, "theta": 1}
    assert oscillator.internal_index("theta") == 1
    assert oscillator.internal_index("u") is None
    assert oscillator.flat_flags().tolist() == [True] * 4
    assert repr(oscillator) == "OrdinaryNodeDynamics[omega, theta](n_int=2)"

    d_u, d_internals = oscillator.evaluate(1.0 + 0j, 0.5 + 0j, jnp.array([2.0, 3.0]), 0.0)
    chex.assert_trees_all_close(d_u, jnp.asarray(2j - 0.5))
    chex.assert_trees_all_close(d_internals, jnp.array([3.0, -1.5]))


def test_arity_check_detects_too_few_internals() -> None:
    with pytest.raises(NodeDynamicsError, match="n_int=1"):
        OrdinaryNodeDynamics(rhs=oscillator_rhs, n_int=1)


def test_arity_check_detects_clamped_read_beyond_internals() -> None:
    def rhs(u, i_c, internals, t):  # noqa: ANN001, ANN202
        return i_c, jnp.array([jnp.asarray(internals)[3]])

    with pytest.raises(NodeDynamicsError, match="n_int=1"):
        OrdinaryNodeDynamics(rhs=rhs, n_int=1)
    with pytest.raises(NodeDynamicsError, match="n_int=1"):
        OrdinaryNodeDynamicsWithMass(rhs=rhs, n_int=1, voltage_mass=True, internal_masses=(True,))


def test_arity_check_detects_clamped_read_in_residual() -> None:
    def residual(u, i_c, internals, t, du, d_internals):  # noqa: ANN001, ANN202
        return du - i_c, jnp.array([jnp.asarray(d_internals)[0], jnp.asarray(d_internals)[2]])

    with pytest.raises(NodeDynamicsError, match="n_int=2"):
        AlgebraicNodeDynamics(
            residual=residual, n_int=2, voltage_differential=True, internal_differentials=(True, True)
        )


def test_functional_updates_on_inputs() -> None:
    def rhs(u, i_c, internals, t):  # noqa: ANN001, ANN202
        return i_c, internals.at[0].set(-internals[0])

    node = OrdinaryNodeDynamics(rhs=rhs, n_int=1, internal_symbols=("x",))
    d_u, d_internals = node.evaluate(1.0 + 0j, 0.5 + 0j, jnp.array([2.0]), 0.0)
    chex.assert_trees_all_close(d_u, jnp.asarray(0.5 + 0j))
    chex.assert_trees_all_close(d_internals, jnp.array([-2.0]))

    residual = to_algebraic(to_ordinary_with_mass(node))
    res_u, res_internals = residual.evaluate(1.0 + 0j, 0.5 + 0j, jnp.array([2.0]), 0.0, 0.5 + 0j, jnp.array([-2.0]))
    chex.assert_trees_all_close(res_u, jnp.asarray(0j))
    chex.assert_trees_all_close(res_internals, jnp.array([0.0]))


def test_arity_check_wraps_attribute_errors() -> None:
    with pytest.raises(NodeDynamicsError):
        OrdinaryNodeDynamics(rhs=lambda u, i_c, internals, t: (u.no_such_method(), internals), n_int=1)


def test_arity_check_detects_wrong_output_shape() -> None:
    with pytest.raises(NodeDynamicsError, match="internal output"):
        OrdinaryNodeDynamics(rhs=lambda u, i_c, internals, t: (u, jnp.zeros(3)), n_int=2)
    with pytest.raises(NodeDynamicsError, match="complex scalar"):
        OrdinaryNodeDynamics(rhs=lambda u, i_c, internals, t: (jnp.ones(2), internals), n_int=2)


@pytest.mark.parametrize(
    "n_int, internal_symbols",
    [
        (-1, ()),
        (2, ("a",)),
        (2, ("a", "a")),
        (1, ("not valid",)),
        (1, ("p",)),
        (1, ("int",)),
    ],
)
def test_invalid_metadata(n_int: int, internal_symbols: tuple) -> None:
    with pytest.raises(NodeDynamicsError):
        OrdinaryNodeDynamics(
            rhs=lambda u, i_c, internals, t: (u, internals), n_int=n_int, internal_symbols=internal_symbols
        )


def test_mass_length_mismatch() -> None:
    with pytest.raises(NodeDynamicsError, match="internal_masses"):
        OrdinaryNodeDynamicsWithMass(
            rhs=lambda u, i_c, internals, t: (u, internals), n_int=2, voltage_mass=True, internal_masses=(True,)
        )
    with pytest.raises(NodeDynamicsError, match="internal_differentials"):
        AlgebraicNodeDynamics(
            residual=lambda u, i_c, internals, t, du, d_internals: (du, d_internals),
            n_int=1,
            voltage_differential=True,
            internal_differentials=(),
        )


def test_flat_flags_duplicate_voltage() -> None:
    node = OrdinaryNodeDynamicsWithMass(
        rhs=lambda u, i_c, internals, t: (u, internals), n_int=2, voltage_mass=False, internal_masses=(True, False)
    )
    assert node.flat_flags().tolist() == [False, False, True, False]
    assert constraint_node().flat_flags().tolist() == [False, False]


def test_promotion_preserves_derivatives(oscillator: OrdinaryNodeDynamics, rng: np.random.Generator) -> None:
    promoted = to_ordinary_with_mass(oscillator)
    assert promoted.kind == DynamicsKind.ORDINARY_WITH_MASS
    assert promoted.voltage_mass
    assert promoted.internal_masses == (True, True)
    assert promoted.internal_symbols == oscillator.internal_symbols

    for _ in range(10):
        inputs = random_inputs(rng, 2)
        chex.assert_trees_all_equal(promoted.evaluate(*inputs), oscillator.evaluate(*inputs))


def test_residual_vanishes_for_true_derivative(oscillator: OrdinaryNodeDynamics, rng: np.random.Generator) -> None:
    with_mass = to_ordinary_with_mass(oscillator)
    algebraic = to_algebraic(with_mass)
    assert algebraic.kind == DynamicsKind.ALGEBRAIC
    assert algebraic.flat_flags().tolist() == [True] * 4

    for _ in range(10):
        u, i_c, internals, t = random_inputs(rng, 2)
        du, d_internals = with_mass.evaluate(u, i_c, internals, t)
        res_u, res_internals = algebraic.evaluate(u, i_c, internals, t, du, d_internals)
        chex.assert_trees_all_close(res_u, jnp.asarray(0j), atol=1e-12)
        chex.assert_trees_all_close(res_internals, jnp.zeros(2), atol=1e-12)


def test_residual_keeps_constraints() -> None:
    node = OrdinaryNodeDynamicsWithMass(
        rhs=lambda u, i_c, internals, t: (1.0 - u, jnp.array([internals[0] - 2.0, -internals[1]])),
        n_int=2,
        voltage_mass=False,
        internal_masses=(False, True),
    )
    algebraic = to_algebraic(node)
    assert algebraic.flat_flags().tolist() == [False, False, False, True]

    res_u, res_internals = algebraic.evaluate(0.5 + 0j, 0j, jnp.array([3.0, 4.0]), 0.0, 7.0 + 0j, jnp.array([5.0, 6.0]))
    chex.assert_trees_all_close(res_u, jnp.asarray(0.5 + 0j))
    chex.assert_trees_all_close(res_internals, jnp.array([1.0, 10.0]))


def test_promote(oscillator: OrdinaryNodeDynamics) -> None:
    assert promote(oscillator, DynamicsKind.ORDINARY) is oscillator
    assert isinstance(promote(oscillator, DynamicsKind.ORDINARY_WITH_MASS), OrdinaryNodeDynamicsWithMass)
    algebraic = promote(oscillator, DynamicsKind.ALGEBRAIC)
    assert isinstance(algebraic, AlgebraicNodeDynamics)
    assert algebraic.internal_symbols == ("omega", "theta")

    with pytest.raises(NodeDynamicsError):
        promote(algebraic, DynamicsKind.ORDINARY)
    with pytest.raises(NodeDynamicsError):
        promote(constraint_node(), DynamicsKind.ORDINARY)


def test_common_kind(oscillator: OrdinaryNodeDynamics) -> None:
    assert common_kind([oscillator, linear_current_node()]) == DynamicsKind.ORDINARY
    assert common_kind([oscillator, constraint_node()]) == DynamicsKind.ORDINARY_WITH_MASS
    assert common_kind([constraint_node(), to_algebraic(constraint_node())]) == DynamicsKind.ALGEBRAIC
    with pytest.raises(NodeDynamicsError):
        common_kind([])


def test_nodes_are_immutable(oscillator: OrdinaryNodeDynamics) -> None:
    with pytest.raises(AttributeError):
        oscillator.n_int = 3
    with pytest.raises(TypeError):
        oscillator.symbol_index["omega"] = 1
    assert oscillator.internal_index("omega") == 0
