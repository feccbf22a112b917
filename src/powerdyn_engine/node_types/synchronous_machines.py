# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Synchronous machine models.

omega is always the frequency of the rotor relative to the rated grid frequency Omega, i.e. the
real rotor frequency is Omega + omega. The swing equations use Omega_H = 2 pi Omega / H.
"""

import math

import jax.numpy as jnp
from beartype.typing import ClassVar
from powerdyn_engine.node_types.base import NodeParameters
from pydantic import model_validator


class SwingEq(NodeParameters):
    """A second order synchronous machine (swing equation).

        du/dt = j omega u
        domega/dt = (P - D omega - Re(u conj(i_c))) Omega_H
    """

    internal_symbols: ClassVar[tuple[str, ...]] = ("omega",)

    H: float
    """The inertia"""

    P: float
    """The active power output"""

    D: float
    """The damping coefficient"""

    Omega: float
    """The rated frequency of the grid"""

    @model_validator(mode="after")
    def check_positive(self) -> "SwingEq":
        """Check that inertia, damping and rated frequency are positive"""
        for name in ("H", "D", "Omega"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        return self

    @property
    def omega_h(self) -> float:
        """The frequency scaled inertia 2 pi Omega / H"""
        return self.Omega * 2 * math.pi / self.H

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        omega = internals[0]
        p = jnp.real(u * jnp.conj(i_c))
        du = u * 1j * omega
        domega = (self.P - self.D * omega - p) * self.omega_h
        return du, jnp.array([domega])


class SwingEqLVS(SwingEq):
    """The swing equation with an additional term that stabilizes the voltage magnitude at V.

        du/dt = j omega u - Gamma (|u| - V) u / |u|
    """

    Gamma: float
    """The voltage stability factor"""

    V: float
    """The reference voltage magnitude"""

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        du, d_internals = super().rhs(u, i_c, internals, t)
        v = jnp.abs(u)
        return du - self.Gamma * (v - self.V) * u / v, d_internals


class FourthEq(NodeParameters):
    """A fourth order synchronous machine with frequency, angle and transient voltage dynamics.

    theta is the angle of the rotor relative to the voltage angle. The voltage and the current are
    transformed into the rotor frame with e_c = e_d + j e_q = j u e^(-j theta) and
    i_c = i_d + j i_q = j i e^(-j theta), then

        dtheta/dt = omega
        domega/dt = (P - D omega - p - (X_q' - X_d') i_d i_q) Omega_H
        de_q/dt = (-e_q - (X_d - X_d') i_d + E_f) / T_d'
        de_d/dt = (-e_d + (X_q - X_q') i_q) / T_q'
        du/dt = -j (de_d/dt + j de_q/dt) e^(j theta) + j omega u
    """

    internal_symbols: ClassVar[tuple[str, ...]] = ("theta", "omega")

    H: float
    """The inertia"""

    P: float
    """The active power output"""

    D: float
    """The damping coefficient"""

    Omega: float
    """The rated frequency of the grid"""

    E_f: float
    """The field voltage"""

    T_d_dash: float
    """The d-axis transient time constant"""

    T_q_dash: float
    """The q-axis transient time constant"""

    X_q_dash: float
    """The q-axis transient reactance"""

    X_d_dash: float
    """The d-axis transient reactance"""

    X_d: float
    """The d-axis synchronous reactance"""

    X_q: float
    """The q-axis synchronous reactance"""

    @model_validator(mode="after")
    def check_positive(self) -> "FourthEq":
        """Check that inertia, damping, rated frequency and the time constants are positive"""
        for name in ("H", "D", "Omega", "T_d_dash", "T_q_dash"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        return self

    def rhs(self, u, i_c, internals, t):  # noqa: ANN001, ANN201
        theta = internals[0]
        omega = internals[1]
        omega_h = self.Omega * 2 * math.pi / self.H

        rotation = jnp.exp(-1j * theta)
        current_rotor = 1j * i_c * rotation
        voltage_rotor = 1j * u * rotation
        p = jnp.real(u * jnp.conj(i_c))
        e_d = jnp.real(voltage_rotor)
        e_q = jnp.imag(voltage_rotor)
        i_d = jnp.real(current_rotor)
        i_q = jnp.imag(current_rotor)

        dtheta = omega
        domega = (self.P - self.D * omega - p - (self.X_q_dash - self.X_d_dash) * i_d * i_q) * omega_h
        de_q = (-e_q - (self.X_d - self.X_d_dash) * i_d + self.E_f) / self.T_d_dash
        de_d = (-e_d + (self.X_q - self.X_q_dash) * i_q) / self.T_q_dash
        du = -1j * (de_d + 1j * de_q) * jnp.exp(1j * theta) + u * 1j * omega
        return du, jnp.array([dtheta, domega])
