# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""The base class of all node types.

A node type is a frozen pydantic model that holds the parameters of a node and knows its equations.
Subclasses declare their parameters as fields, the names of their internal variables and their
formulation as class variables and implement either rhs (explicit formulations) or residual
(algebraic formulation). construct_node_dynamics turns the parameters into the NodeDynamics
descriptor consumed by the network.

Example:

    class Droop(NodeParameters):
        internal_symbols: ClassVar[tuple[str, ...]] = ("omega",)
        K: float

        def rhs(self, u, i_c, internals, t):
            omega = internals[0]
            p = jnp.real(u * jnp.conj(i_c))
            return u * 1j * omega, jnp.array([-omega - self.K * p])
"""

from beartype.typing import Any, ClassVar, Optional, Type, Union
from jaxtyping import ArrayLike, Complex, Float
from powerdyn_engine.dynamics.node_dynamics import (
    AlgebraicNodeDynamics,
    AnyNodeDynamics,
    NodeDynamics,
    OrdinaryNodeDynamics,
    OrdinaryNodeDynamicsWithMass,
)
from powerdyn_engine.dynamics.types import DynamicsKind, Scalar
from powerdyn_engine.errors import NodeDynamicsError
from pydantic import BaseModel, ConfigDict, ValidationError


class NodeParameters(BaseModel):
    """The parameters and equations of a node type."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    internal_symbols: ClassVar[tuple[str, ...]] = ()
    """The names of the internal variables, their number is n_int"""

    dynamics_kind: ClassVar[DynamicsKind] = DynamicsKind.ORDINARY
    """The formulation of the node type"""

    voltage_mass: ClassVar[bool] = True
    """The mass (or differential flag for the algebraic formulation) of the voltage equation"""

    internal_masses: ClassVar[Optional[tuple[bool, ...]]] = None
    """The masses of the internal equations, None means all True"""

    def __init__(self, **data: Any) -> None:
        """Validate the parameters

        Raises
        ------
        NodeDynamicsError
            If a parameter is missing, unknown or invalid
        """
        try:
            super().__init__(**data)
        except ValidationError as err:
            raise NodeDynamicsError(f"Invalid parameters for {type(self).__name__}: {err}") from err

    def rhs(
        self,
        u: Complex[ArrayLike, " "],
        i_c: Complex[ArrayLike, " "],
        internals: Float[ArrayLike, " n_int"],
        t: Float[ArrayLike, " "],
    ) -> tuple[Scalar, Any]:
        """Compute (du, d_internals), must be overridden by explicit node types"""
        raise NotImplementedError(f"{type(self).__name__} does not implement rhs")

    def residual(
        self,
        u: Complex[ArrayLike, " "],
        i_c: Complex[ArrayLike, " "],
        internals: Float[ArrayLike, " n_int"],
        t: Float[ArrayLike, " "],
        du: Complex[ArrayLike, " "],
        d_internals: Float[ArrayLike, " n_int"],
    ) -> tuple[Scalar, Any]:
        """Compute (res_u, res_internals), must be overridden by algebraic node types"""
        raise NotImplementedError(f"{type(self).__name__} does not implement residual")

    @classmethod
    def n_int(cls) -> int:
        """The number of internal variables of the node type"""
        return len(cls.internal_symbols)

    @classmethod
    def _internal_flags(cls) -> tuple[bool, ...]:
        if cls.internal_masses is None:
            return (True,) * cls.n_int()
        return tuple(cls.internal_masses)

    def construct_node_dynamics(self) -> AnyNodeDynamics:
        """Build the dynamics descriptor of this node.

        The same parameters always give equivalent dynamics. The evaluation function is traced
        once here against the declared internal variables.

        Returns
        -------
        AnyNodeDynamics
            The node dynamics in the formulation of the node type

        Raises
        ------
        NodeDynamicsError
            If the equations don't match the declared internal variables
        """
        if self.dynamics_kind == DynamicsKind.ORDINARY:
            return OrdinaryNodeDynamics(
                rhs=self.rhs,
                n_int=self.n_int(),
                internal_symbols=self.internal_symbols,
            )
        if self.dynamics_kind == DynamicsKind.ORDINARY_WITH_MASS:
            return OrdinaryNodeDynamicsWithMass(
                rhs=self.rhs,
                n_int=self.n_int(),
                voltage_mass=self.voltage_mass,
                internal_masses=self._internal_flags(),
                internal_symbols=self.internal_symbols,
            )
        return AlgebraicNodeDynamics(
            residual=self.residual,
            n_int=self.n_int(),
            voltage_differential=self.voltage_mass,
            internal_differentials=self._internal_flags(),
            internal_symbols=self.internal_symbols,
        )


def internal_symbols_of(node: Union[NodeParameters, Type[NodeParameters], NodeDynamics]) -> tuple[str, ...]:
    """Get the names of the internal variables of a node type, node parameters or node dynamics"""
    if isinstance(node, NodeDynamics):
        return node.internal_symbols
    if isinstance(node, NodeParameters) or (isinstance(node, type) and issubclass(node, NodeParameters)):
        return tuple(node.internal_symbols)
    raise NodeDynamicsError(f"Can not determine the internal symbols of {node!r}")
