# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Voltage source inverters with frequency and voltage droop control."""

import jax.numpy as jnp
from beartype.typing import ClassVar
from powerdyn_engine.node_types.base import NodeParameters
from pydantic import model_validator


class VSIMinimal(NodeParameters):
    """A minimal voltage source inverter with droop control on the measured powers.

        domega/dt = (-omega - K_P (p - P)) / tau_P
        tau_Q dv/dt = -v + V_r - K_Q (q - Q)
        du/dt = dv/dt u / v + j omega u
    """

    internal_symbols: ClassVar[tuple[str, ...]] = ("omega",)

    tau_P: float
    """The time constant of the active power measurement"""

    tau_Q: float
    """The time constant of the reactive power measurement"""

    K_P: float
    """The frequency droop gain"""

    K_Q: float
    """The voltage droop gain"""

    V_r: float
    """The reference voltage magnitude"""

    P: float
    """The active power setpoint"""

    Q: float
    """The reactive power setpoint"""

    @model_validator(mode="after")
    def check_positive(self) -> "VSIMinimal":
        """Check that the time constants and the gains are positive"""
        for name in self._positive_parameters():
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        return self

    @classmethod
    def _positive_parameters(cls) -> tuple[str, ...]:
        return ("tau_P", "tau_Q", "K_P", "K_Q")

    def _frequency(self, omega, p):  # noqa: ANN001, ANN202
        return (-omega - self.K_P * (p - self.P)) / self.tau_P

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        omega = internals[0]
        s = u * jnp.conj(i_c)
        v = jnp.abs(u)
        dv = (-v + self.V_r - self.K_Q * (jnp.imag(s) - self.Q)) / self.tau_Q
        du = dv * u / v + u * 1j * omega
        return du, jnp.array([self._frequency(omega, jnp.real(s))])


class VSIVoltagePT1(VSIMinimal):
    """A voltage source inverter with a first order lag on the measured reactive power.

        domega/dt = (-omega - K_P (p - P)) / tau_P
        tau_Q dq_m/dt = -q_m + q
        tau_v dv/dt = -v + V_r - K_Q (q_m - Q)
        du/dt = dv/dt u / v + j omega u
    """

    internal_symbols: ClassVar[tuple[str, ...]] = ("omega", "q_m")

    tau_v: float
    """The time constant of the voltage control"""

    @classmethod
    def _positive_parameters(cls) -> tuple[str, ...]:
        return ("tau_v", "tau_P", "tau_Q", "K_P", "K_Q")

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        omega = internals[0]
        q_m = internals[1]
        s = u * jnp.conj(i_c)
        v = jnp.abs(u)
        dq_m = (jnp.imag(s) - q_m) / self.tau_Q
        dv = (-v + self.V_r - self.K_Q * (q_m - self.Q)) / self.tau_v
        du = dv * u / v + u * 1j * omega
        return du, jnp.array([self._frequency(omega, jnp.real(s)), dq_m])
