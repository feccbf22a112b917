# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""The dynamics descriptors of a single node.

Each node a has the complex voltage u_a and n = n_int real internal variables y_1 ... y_n. There
are three formulations:

- OrdinaryNodeDynamics:          du/dt = f_u(u, i_c, y, t),      dy_k/dt = f_k(u, i_c, y, t)
- OrdinaryNodeDynamicsWithMass:  m_u du/dt = f_u(u, i_c, y, t),  m_k dy_k/dt = f_k(u, i_c, y, t)
                                 with binary masses, i.e. a semi-explicit DAE
- AlgebraicNodeDynamics:         0 = g(u, i_c, y, t, du, dy), a fully implicit DAE

The formulations form a promotion lattice Ordinary < OrdinaryWithMass < Algebraic. Lowering a node
into a more general formulation is lossless and is done once when a network is assembled, never
during an evaluation.
"""

from dataclasses import dataclass, field
from types import MappingProxyType

import jax.numpy as jnp
import logbook
import numpy as np
from beartype.typing import ClassVar, Iterable, Mapping, Optional, Sequence, Union
from jax.experimental import checkify
from jaxtyping import Array, ArrayLike, Bool, Complex, Float
from powerdyn_engine.dynamics.types import RESERVED_SYMBOLS, DynamicsKind, NodeResidual, NodeRHS
from powerdyn_engine.errors import NodeDynamicsError

logger = logbook.Logger(__name__)


def _complex_output(value: ArrayLike) -> Complex[Array, " "]:
    return jnp.asarray(value, dtype=jnp.result_type(complex))


def _internal_output(value: Union[ArrayLike, Sequence]) -> Float[Array, " n_int"]:
    return jnp.asarray(value, dtype=jnp.result_type(float))


def _check_metadata(n_int: int, internal_symbols: tuple[str, ...], owner: str) -> None:
    """Check the arity metadata of a node that doesn't require evaluating it

    Raises
    ------
    NodeDynamicsError
        If n_int is negative or the internal symbols don't match n_int or are invalid names
    """
    if isinstance(n_int, bool) or not isinstance(n_int, (int, np.integer)) or n_int < 0:
        raise NodeDynamicsError(f"{owner}: n_int must be a non-negative integer, got {n_int!r}")
    if len(internal_symbols) not in (0, n_int):
        raise NodeDynamicsError(
            f"{owner}: got {len(internal_symbols)} internal symbols {internal_symbols} for n_int={n_int}"
        )
    if len(set(internal_symbols)) != len(internal_symbols):
        raise NodeDynamicsError(f"{owner}: internal symbols {internal_symbols} are not unique")
    for symbol in internal_symbols:
        if not isinstance(symbol, str) or not symbol.isidentifier():
            raise NodeDynamicsError(f"{owner}: internal symbol {symbol!r} is not a valid name")
        if symbol in RESERVED_SYMBOLS:
            raise NodeDynamicsError(f"{owner}: internal symbol {symbol!r} clashes with a reserved state symbol")


def _check_flags(flags: Sequence[bool], n_int: int, name: str, owner: str) -> tuple[bool, ...]:
    flags = tuple(bool(flag) for flag in flags)
    if len(flags) != n_int:
        raise NodeDynamicsError(f"{owner}: {name} has {len(flags)} entries but n_int={n_int}")
    return flags


def _check_arity(function: Union[NodeRHS, NodeResidual], n_int: int, owner: str, implicit: bool) -> None:
    """Trace a node function once on jax inputs to check that it matches n_int.

    The function is run under checkify with index checks, so reading an internal variable beyond
    n_int is reported instead of being clamped by jax.

    Raises
    ------
    NodeDynamicsError
        If the function fails on the test inputs or returns outputs of the wrong shape
    """
    args = [_complex_output(1.0), _complex_output(0.0), jnp.zeros(n_int), jnp.asarray(0.0)]
    if implicit:
        args += [_complex_output(0.0), jnp.zeros(n_int)]

    def outputs(*args: ArrayLike) -> tuple[Complex[Array, " "], Float[Array, " n_int"]]:
        d_u, d_internals = function(*args)
        return _complex_output(d_u), _internal_output(d_internals)

    try:
        error, (d_u, d_internals) = checkify.checkify(outputs, errors=checkify.index_checks)(*args)
        error.throw()
    except (IndexError, ValueError, TypeError, AttributeError, checkify.JaxRuntimeError) as err:
        raise NodeDynamicsError(f"{owner}: evaluation function is inconsistent with n_int={n_int}: {err}") from err

    if d_u.shape != ():
        raise NodeDynamicsError(f"{owner}: the voltage output must be a complex scalar, got shape {d_u.shape}")
    if d_internals.shape != (n_int,):
        raise NodeDynamicsError(
            f"{owner}: the internal output must have shape ({n_int},), got shape {d_internals.shape}"
        )


class NodeDynamics:
    """Shared metadata and helpers of all node dynamics formulations."""

    kind: ClassVar[DynamicsKind]
    n_int: int
    internal_symbols: tuple[str, ...]
    symbol_index: Mapping[str, int]

    @property
    def n_state(self) -> int:
        """The number of reals this node occupies in the flat state vector"""
        return 2 + self.n_int

    def flat_flags(self) -> Bool[np.ndarray, " n_state"]:
        """Get the mass/differential flags of this node as they appear in the flat state vector.

        The voltage flag is duplicated onto the real and the imaginary part of the voltage.

        Returns
        -------
        Bool[np.ndarray, " n_state"]
            The flags, all True for an OrdinaryNodeDynamics
        """
        return np.ones(self.n_state, dtype=bool)

    def internal_index(self, symbol: str) -> Optional[int]:
        """Get the 0-based position of the internal variable named symbol, None if unknown"""
        return self.symbol_index.get(symbol)

    def _init_symbol_index(self) -> None:
        index = MappingProxyType({symbol: k for k, symbol in enumerate(self.internal_symbols)})
        object.__setattr__(self, "symbol_index", index)

    def __repr__(self) -> str:
        """Print the formulation and the internal symbols, e.g. OrdinaryNodeDynamics[omega](n_int=1)"""
        return f"{type(self).__name__}[{', '.join(self.internal_symbols)}](n_int={self.n_int})"


@dataclass(frozen=True, eq=False, repr=False)
class OrdinaryNodeDynamics(NodeDynamics):
    """The dynamics of a node that is described via ODEs."""

    rhs: NodeRHS
    """rhs(u, i_c, internals, t) -> (du, d_internals)"""

    n_int: int
    """The number of internal variables"""

    internal_symbols: tuple[str, ...] = ()
    """The names of the internal variables, either empty or of length n_int"""

    symbol_index: Mapping[str, int] = field(init=False, repr=False)
    """Read-only mapping from internal symbol to 0-based internal position, built once"""

    kind: ClassVar[DynamicsKind] = DynamicsKind.ORDINARY

    def __post_init__(self) -> None:
        """Check the arity metadata against the evaluation function"""
        object.__setattr__(self, "internal_symbols", tuple(self.internal_symbols))
        _check_metadata(self.n_int, self.internal_symbols, type(self).__name__)
        _check_arity(self.rhs, self.n_int, type(self).__name__, implicit=False)
        self._init_symbol_index()

    def evaluate(
        self,
        u: Complex[ArrayLike, " "],
        i_c: Complex[ArrayLike, " "],
        internals: Float[ArrayLike, " n_int"],
        t: Float[ArrayLike, " "],
    ) -> tuple[Complex[Array, " "], Float[Array, " n_int"]]:
        """Compute du/dt and the derivatives of the internal variables"""
        d_u, d_internals = self.rhs(u, i_c, internals, t)
        return _complex_output(d_u), _internal_output(d_internals)


@dataclass(frozen=True, eq=False, repr=False)
class OrdinaryNodeDynamicsWithMass(NodeDynamics):
    """The dynamics of a node that is described via ODEs with binary masses.

    A component with mass False is an algebraic constraint 0 = f on the state, so this formulation
    implements semi-explicit differential algebraic equations.
    """

    rhs: NodeRHS
    """rhs(u, i_c, internals, t) -> (f_u, f_internals)"""

    n_int: int
    """The number of internal variables"""

    voltage_mass: bool
    """The mass of the voltage equation"""

    internal_masses: tuple[bool, ...]
    """The masses of the internal equations, one per internal variable"""

    internal_symbols: tuple[str, ...] = ()
    """The names of the internal variables, either empty or of length n_int"""

    symbol_index: Mapping[str, int] = field(init=False, repr=False)
    """Read-only mapping from internal symbol to 0-based internal position, built once"""

    kind: ClassVar[DynamicsKind] = DynamicsKind.ORDINARY_WITH_MASS

    def __post_init__(self) -> None:
        """Check the arity metadata against the evaluation function"""
        owner = type(self).__name__
        object.__setattr__(self, "internal_symbols", tuple(self.internal_symbols))
        _check_metadata(self.n_int, self.internal_symbols, owner)
        object.__setattr__(self, "voltage_mass", bool(self.voltage_mass))
        object.__setattr__(
            self, "internal_masses", _check_flags(self.internal_masses, self.n_int, "internal_masses", owner)
        )
        _check_arity(self.rhs, self.n_int, owner, implicit=False)
        self._init_symbol_index()

    def flat_flags(self) -> Bool[np.ndarray, " n_state"]:
        """Get the masses as they appear in the flat state vector."""
        return np.array((self.voltage_mass, self.voltage_mass) + self.internal_masses, dtype=bool)

    def evaluate(
        self,
        u: Complex[ArrayLike, " "],
        i_c: Complex[ArrayLike, " "],
        internals: Float[ArrayLike, " n_int"],
        t: Float[ArrayLike, " "],
    ) -> tuple[Complex[Array, " "], Float[Array, " n_int"]]:
        """Compute the right hand sides, derivatives for mass True and constraints for mass False"""
        d_u, d_internals = self.rhs(u, i_c, internals, t)
        return _complex_output(d_u), _internal_output(d_internals)


@dataclass(frozen=True, eq=False, repr=False)
class AlgebraicNodeDynamics(NodeDynamics):
    """The dynamics of a node that is described as a fully implicit DAE in residual form."""

    residual: NodeResidual
    """residual(u, i_c, internals, t, du, d_internals) -> (res_u, res_internals)"""

    n_int: int
    """The number of internal variables"""

    voltage_differential: bool
    """Whether the voltage is a differential variable (True) or only algebraically constrained"""

    internal_differentials: tuple[bool, ...]
    """Whether each internal variable is a differential variable"""

    internal_symbols: tuple[str, ...] = ()
    """The names of the internal variables, either empty or of length n_int"""

    symbol_index: Mapping[str, int] = field(init=False, repr=False)
    """Read-only mapping from internal symbol to 0-based internal position, built once"""

    kind: ClassVar[DynamicsKind] = DynamicsKind.ALGEBRAIC

    def __post_init__(self) -> None:
        """Check the arity metadata against the residual function"""
        owner = type(self).__name__
        object.__setattr__(self, "internal_symbols", tuple(self.internal_symbols))
        _check_metadata(self.n_int, self.internal_symbols, owner)
        object.__setattr__(self, "voltage_differential", bool(self.voltage_differential))
        object.__setattr__(
            self,
            "internal_differentials",
            _check_flags(self.internal_differentials, self.n_int, "internal_differentials", owner),
        )
        _check_arity(self.residual, self.n_int, owner, implicit=True)
        self._init_symbol_index()

    def flat_flags(self) -> Bool[np.ndarray, " n_state"]:
        """Get the differential flags as they appear in the flat state vector."""
        return np.array(
            (self.voltage_differential, self.voltage_differential) + self.internal_differentials,
            dtype=bool,
        )

    def evaluate(
        self,
        u: Complex[ArrayLike, " "],
        i_c: Complex[ArrayLike, " "],
        internals: Float[ArrayLike, " n_int"],
        t: Float[ArrayLike, " "],
        du: Complex[ArrayLike, " "],
        d_internals: Float[ArrayLike, " n_int"],
    ) -> tuple[Complex[Array, " "], Float[Array, " n_int"]]:
        """Compute the residuals, zero for a consistent (state, derivative) pair"""
        res_u, res_internals = self.residual(u, i_c, internals, t, du, d_internals)
        return _complex_output(res_u), _internal_output(res_internals)


AnyNodeDynamics = Union[OrdinaryNodeDynamics, OrdinaryNodeDynamicsWithMass, AlgebraicNodeDynamics]


def to_ordinary_with_mass(node: OrdinaryNodeDynamics) -> OrdinaryNodeDynamicsWithMass:
    """Lower an ODE node into the mass formulation with all masses set to True (lossless).

    Parameters
    ----------
    node : OrdinaryNodeDynamics
        The node to convert

    Returns
    -------
    OrdinaryNodeDynamicsWithMass
        The same dynamics with unit masses
    """
    return OrdinaryNodeDynamicsWithMass(
        rhs=node.rhs,
        n_int=node.n_int,
        voltage_mass=True,
        internal_masses=(True,) * node.n_int,
        internal_symbols=node.internal_symbols,
    )


def to_algebraic(node: OrdinaryNodeDynamicsWithMass) -> AlgebraicNodeDynamics:
    """Lower a node with masses into residual form.

    For a component with mass True the equation m dx/dt = f(x) becomes 0 = dx - f(x), for a
    component with mass False the constraint 0 = f(x) is used as is. This is the only place where
    the semantics of the formulation change.

    Parameters
    ----------
    node : OrdinaryNodeDynamicsWithMass
        The node to convert

    Returns
    -------
    AlgebraicNodeDynamics
        The residual formulation with the masses as differential flags
    """
    rhs = node.rhs
    voltage_mass = node.voltage_mass
    internal_masses = np.array(node.internal_masses, dtype=bool)

    def residual(
        u: Complex[ArrayLike, " "],
        i_c: Complex[ArrayLike, " "],
        internals: Float[ArrayLike, " n_int"],
        t: Float[ArrayLike, " "],
        du: Complex[ArrayLike, " "],
        d_internals: Float[ArrayLike, " n_int"],
    ) -> tuple[Complex[Array, " "], Float[Array, " n_int"]]:
        f_u, f_internals = rhs(u, i_c, internals, t)
        f_u = _complex_output(f_u)
        f_internals = _internal_output(f_internals)
        res_u = du - f_u if voltage_mass else f_u
        res_internals = jnp.where(internal_masses, _internal_output(d_internals) - f_internals, f_internals)
        return res_u, res_internals

    return AlgebraicNodeDynamics(
        residual=residual,
        n_int=node.n_int,
        voltage_differential=voltage_mass,
        internal_differentials=node.internal_masses,
        internal_symbols=node.internal_symbols,
    )


def promote(node: AnyNodeDynamics, kind: DynamicsKind) -> AnyNodeDynamics:
    """Convert a node into the given, equal or more general, formulation.

    Ordinary -> Algebraic composes through OrdinaryWithMass.

    Parameters
    ----------
    node : AnyNodeDynamics
        The node to convert
    kind : DynamicsKind
        The target formulation

    Returns
    -------
    AnyNodeDynamics
        The node in the target formulation, the node itself if it already has that kind

    Raises
    ------
    NodeDynamicsError
        If the target formulation is less general than the one of the node
    """
    if node.kind > kind:
        raise NodeDynamicsError(f"Can not convert {node!r} from {node.kind.name} down to {kind.name}")
    if node.kind == kind:
        return node
    if node.kind == DynamicsKind.ORDINARY:
        logger.debug(f"Promoting {node!r} to {DynamicsKind.ORDINARY_WITH_MASS.name}")
        return promote(to_ordinary_with_mass(node), kind)
    logger.debug(f"Promoting {node!r} to {DynamicsKind.ALGEBRAIC.name}")
    return to_algebraic(node)


def common_kind(nodes: Iterable[AnyNodeDynamics]) -> DynamicsKind:
    """Get the most general formulation among the nodes

    Raises
    ------
    NodeDynamicsError
        If there are no nodes
    """
    kinds = [node.kind for node in nodes]
    if not kinds:
        raise NodeDynamicsError("Can not determine the formulation of an empty list of nodes")
    return max(kinds)
