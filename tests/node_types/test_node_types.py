# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

import math

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from beartype.typing import ClassVar
from powerdyn_engine.dynamics.node_dynamics import (
    AlgebraicNodeDynamics,
    OrdinaryNodeDynamics,
    OrdinaryNodeDynamicsWithMass,
)
from powerdyn_engine.dynamics.types import DynamicsKind
from powerdyn_engine.errors import NodeDynamicsError
from powerdyn_engine.node_types import (
    FourthEq,
    NodeParameters,
    PQAlgebraic,
    PVAlgebraic,
    SlackAlgebraic,
    SwingEq,
    SwingEqLVS,
    VSIMinimal,
    VSIVoltagePT1,
    internal_symbols_of,
)
from pydantic import ValidationError

VSI_PARAMETERS = {"tau_P": 0.5, "tau_Q": 0.2, "K_P": 0.3, "K_Q": 0.4, "V_r": 1.0, "P": 0.8, "Q": 0.1}
FOURTH_EQ_PARAMETERS = {
    "H": 5.0,
    "P": 0.5,
    "D": 0.1,
    "Omega": 50.0,
    "E_f": 1.1,
    "T_d_dash": 7.0,
    "T_q_dash": 0.5,
    "X_q_dash": 0.6,
    "X_d_dash": 0.3,
    "X_d": 1.8,
    "X_q": 1.7,
}


def test_pq_algebraic() -> None:
    node = PQAlgebraic(S=1.0 + 0.5j).construct_node_dynamics()
    assert isinstance(node, OrdinaryNodeDynamicsWithMass)
    assert node.n_int == 0
    assert node.flat_flags().tolist() == [False, False]

    u, i_c = 1.0 + 0.2j, 0.8 - 0.3j
    d_u, d_internals = node.evaluate(u, i_c, jnp.zeros(0), 0.0)
    chex.assert_trees_all_close(d_u, jnp.asarray(1.0 + 0.5j - u * np.conj(i_c)))
    assert d_internals.shape == (0,)


def test_pv_algebraic() -> None:
    node = PVAlgebraic(P=1.0, V=1.05).construct_node_dynamics()
    u, i_c = 1.0 + 0.2j, 0.8 - 0.3j
    d_u, _ = node.evaluate(u, i_c, jnp.zeros(0), 0.0)
    assert np.isclose(complex(d_u).real, 1.05 - abs(u))
    assert np.isclose(complex(d_u).imag, 1.0 - (u * np.conj(i_c)).real)


def test_slack_algebraic() -> None:
    node = SlackAlgebraic(U=1.0 + 0.1j).construct_node_dynamics()
    d_u, _ = node.evaluate(1.0 + 0.1j, 5.0 + 0j, jnp.zeros(0), 0.0)
    chex.assert_trees_all_close(d_u, jnp.asarray(0j))


def test_swing_eq() -> None:
    parameters = SwingEq(H=5.0, P=1.0, D=0.1, Omega=50.0)
    node = parameters.construct_node_dynamics()
    assert isinstance(node, OrdinaryNodeDynamics)
    assert node.internal_symbols == ("omega",)

    u, i_c, omega = 1.0 + 0.1j, 0.5 - 0.2j, 0.02
    d_u, d_internals = node.evaluate(u, i_c, jnp.array([omega]), 0.0)
    p = (u * np.conj(i_c)).real
    chex.assert_trees_all_close(d_u, jnp.asarray(1j * omega * u))
    chex.assert_trees_all_close(d_internals, jnp.array([(1.0 - 0.1 * omega - p) * 50.0 * 2 * math.pi / 5.0]))


def test_swing_eq_lvs() -> None:
    node = SwingEqLVS(H=5.0, P=1.0, D=0.1, Omega=50.0, Gamma=2.0, V=1.0).construct_node_dynamics()
    u, i_c, omega = 1.2 + 0.0j, 0.0j, 0.0
    d_u, _ = node.evaluate(u, i_c, jnp.array([omega]), 0.0)
    chex.assert_trees_all_close(d_u, jnp.asarray(-2.0 * 0.2 + 0j))


def test_fourth_eq_steady_rotor_frame() -> None:
    node = FourthEq(**FOURTH_EQ_PARAMETERS).construct_node_dynamics()
    assert node.internal_symbols == ("theta", "omega")

    # no current, rotor aligned with the voltage: e_c = j u, only the field voltage drives e_q
    u = 1.0 + 0j
    d_u, d_internals = node.evaluate(u, 0j, jnp.array([0.0, 0.0]), 0.0)
    omega_h = 50.0 * 2 * math.pi / 5.0
    de_q = (-1.0 + 1.1) / 7.0
    chex.assert_trees_all_close(d_internals, jnp.array([0.0, 0.5 * omega_h]))
    chex.assert_trees_all_close(d_u, jnp.asarray(de_q + 0j))


def test_vsi_minimal() -> None:
    node = VSIMinimal(**VSI_PARAMETERS).construct_node_dynamics()
    u, i_c, omega = 1.0 + 0j, 0.5 - 0.1j, 0.01
    d_u, d_internals = node.evaluate(u, i_c, jnp.array([omega]), 0.0)
    p, q = 0.5, 0.1
    dv = (-1.0 + 1.0 - 0.4 * (q - 0.1)) / 0.2
    chex.assert_trees_all_close(d_u, jnp.asarray(dv + 1j * omega))
    chex.assert_trees_all_close(d_internals, jnp.array([(-omega - 0.3 * (p - 0.8)) / 0.5]))


def test_vsi_voltage_pt1() -> None:
    node = VSIVoltagePT1(tau_v=0.05, **VSI_PARAMETERS).construct_node_dynamics()
    assert node.internal_symbols == ("omega", "q_m")
    u, i_c = 1.0 + 0j, 0.5 - 0.3j
    omega, q_m = 0.0, 0.1
    d_u, d_internals = node.evaluate(u, i_c, jnp.array([omega, q_m]), 0.0)
    dv = (-1.0 + 1.0 - 0.4 * (q_m - 0.1)) / 0.05
    chex.assert_trees_all_close(d_u, jnp.asarray(dv + 0j))
    chex.assert_trees_all_close(d_internals, jnp.array([-0.3 * (0.5 - 0.8) / 0.5, (0.3 - q_m) / 0.2]))


@pytest.mark.parametrize(
    "node_type, parameters",
    [
        (SwingEq, {"H": 0.0, "P": 1.0, "D": 0.1, "Omega": 50.0}),
        (SwingEq, {"H": 5.0, "P": 1.0, "D": -0.1, "Omega": 50.0}),
        (SwingEq, {"H": 5.0, "P": 1.0, "D": 0.1}),
        (SwingEq, {"H": 5.0, "P": 1.0, "D": 0.1, "Omega": 50.0, "unknown": 1.0}),
        (SwingEq, {"H": "heavy", "P": 1.0, "D": 0.1, "Omega": 50.0}),
        (FourthEq, {**FOURTH_EQ_PARAMETERS, "T_d_dash": 0.0}),
        (VSIMinimal, {**VSI_PARAMETERS, "K_P": -1.0}),
        (VSIVoltagePT1, {**VSI_PARAMETERS, "tau_v": 0.0}),
    ],
)
def test_invalid_parameters(node_type: type, parameters: dict) -> None:
    with pytest.raises(NodeDynamicsError):
        node_type(**parameters)


def test_parameters_are_frozen() -> None:
    parameters = SwingEq(H=5.0, P=1.0, D=0.1, Omega=50.0)
    with pytest.raises(ValidationError):
        parameters.H = 3.0
    assert parameters == SwingEq(H=5.0, P=1.0, D=0.1, Omega=50.0)


def test_construct_is_deterministic() -> None:
    parameters = SwingEq(H=5.0, P=1.0, D=0.1, Omega=50.0)
    first = parameters.construct_node_dynamics()
    second = parameters.construct_node_dynamics()
    inputs = (1.0 + 0.1j, 0.5 - 0.2j, jnp.array([0.01]), 0.0)
    chex.assert_trees_all_equal(first.evaluate(*inputs), second.evaluate(*inputs))


def test_internal_symbols_of() -> None:
    assert internal_symbols_of(FourthEq) == ("theta", "omega")
    assert internal_symbols_of(VSIVoltagePT1(tau_v=0.05, **VSI_PARAMETERS)) == ("omega", "q_m")
    assert internal_symbols_of(PQAlgebraic(S=1.0).construct_node_dynamics()) == ()
    with pytest.raises(NodeDynamicsError):
        internal_symbols_of("SwingEq")


class WrongArity(NodeParameters):
    internal_symbols: ClassVar[tuple[str, ...]] = ("x",)

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        return u, jnp.array([internals[0], internals[1]])


class ImplicitDecay(NodeParameters):
    internal_symbols: ClassVar[tuple[str, ...]] = ("x",)
    dynamics_kind: ClassVar[DynamicsKind] = DynamicsKind.ALGEBRAIC
    internal_masses: ClassVar[tuple[bool, ...]] = (True,)

    rate: float

    def residual(self, u, i_c, internals, t, du, d_internals):  # noqa: ANN001, ANN201
        return du - i_c, d_internals + self.rate * internals


def test_custom_node_type_arity_is_checked() -> None:
    with pytest.raises(NodeDynamicsError):
        WrongArity().construct_node_dynamics()


def test_custom_algebraic_node_type() -> None:
    node = ImplicitDecay(rate=2.0).construct_node_dynamics()
    assert isinstance(node, AlgebraicNodeDynamics)
    assert node.flat_flags().tolist() == [True, True, True]
    res_u, res_internals = node.evaluate(1.0 + 0j, 0.5 + 0j, jnp.array([1.0]), 0.0, 0.5 + 0j, jnp.array([-2.0]))
    chex.assert_trees_all_close(res_u, jnp.asarray(0j))
    chex.assert_trees_all_close(res_internals, jnp.array([0.0]))
