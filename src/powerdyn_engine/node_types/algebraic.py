# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Node types that fix the voltage or the power of a node by an algebraic constraint.

All of them have no internal variables and a voltage mass of False, i.e. the voltage equation is
a constraint 0 = f(u, i_c).
"""

import jax.numpy as jnp
from beartype.typing import ClassVar
from powerdyn_engine.dynamics.types import DynamicsKind
from powerdyn_engine.node_types.base import NodeParameters


class PQAlgebraic(NodeParameters):
    """A load (or generator) with fixed complex power, 0 = S - u conj(i_c)."""

    dynamics_kind: ClassVar[DynamicsKind] = DynamicsKind.ORDINARY_WITH_MASS
    voltage_mass: ClassVar[bool] = False

    S: complex
    """The complex power P + jQ drawn from the grid"""

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        s = u * jnp.conj(i_c)
        return self.S - s, jnp.zeros(0)


class PVAlgebraic(NodeParameters):
    """A PV bus, fixes the active power and the voltage magnitude.

    The real part of the constraint is 0 = V - |u|, the imaginary part 0 = P - Re(u conj(i_c)).
    """

    dynamics_kind: ClassVar[DynamicsKind] = DynamicsKind.ORDINARY_WITH_MASS
    voltage_mass: ClassVar[bool] = False

    P: float
    """The active power output"""

    V: float
    """The voltage magnitude"""

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        p = jnp.real(u * jnp.conj(i_c))
        return (self.V - jnp.abs(u)) + 1j * (self.P - p), jnp.zeros(0)


class SlackAlgebraic(NodeParameters):
    """A slack bus with a fixed complex voltage, 0 = U - u."""

    dynamics_kind: ClassVar[DynamicsKind] = DynamicsKind.ORDINARY_WITH_MASS
    voltage_mass: ClassVar[bool] = False

    U: complex
    """The complex voltage"""

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        return self.U - u, jnp.zeros(0)
