# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Holds enums, protocols and constants used throughout the dynamics package.

This is in one central file to simplify import management
"""

from enum import IntEnum

from beartype.typing import Final, Protocol, Union
from jaxtyping import Array, ArrayLike, Complex, Float, Shaped

Scalar = Union[float, complex, Shaped[Array, " "]]


class DynamicsKind(IntEnum):
    """The mathematical formulation of a node or of a whole grid.

    The kinds are ordered by generality, a node can always be lowered into a more general kind
    without changing its solutions (Ordinary < OrdinaryWithMass < Algebraic), similar to numeric
    type promotion.
    """

    ORDINARY = 0
    """Pure ODE, every state component is dynamic"""

    ORDINARY_WITH_MASS = 1
    """ODE with a binary diagonal mass matrix, i.e. a semi-explicit DAE"""

    ALGEBRAIC = 2
    """Fully implicit DAE in residual form"""


class NodeRHS(Protocol):
    """The explicit evaluation function of a node.

    Computes du/dt and the derivatives of the internal variables from the complex voltage, the
    complex nodal current, the internal variables and the time. For components with a false mass
    the returned value is interpreted as the right hand side of an algebraic constraint 0 = f.
    """

    def __call__(
        self,
        u: Complex[ArrayLike, " "],
        i_c: Complex[ArrayLike, " "],
        internals: Float[ArrayLike, " n_int"],
        t: Float[ArrayLike, " "],
    ) -> tuple[Scalar, Union[Float[Array, " n_int"], tuple, list]]:
        """Evaluate the node"""


class NodeResidual(Protocol):
    """The implicit evaluation function of a node, 0 = g(u, i_c, internals, t, du, d_internals)."""

    def __call__(
        self,
        u: Complex[ArrayLike, " "],
        i_c: Complex[ArrayLike, " "],
        internals: Float[ArrayLike, " n_int"],
        t: Float[ArrayLike, " "],
        du: Complex[ArrayLike, " "],
        d_internals: Float[ArrayLike, " n_int"],
    ) -> tuple[Scalar, Union[Float[Array, " n_int"], tuple, list]]:
        """Evaluate the residual of the node"""


VOLTAGE_SYMBOLS: Final[tuple[str, ...]] = ("u", "u_r", "u_i")
"""Symbols of a State that address the voltage directly and can be set"""

DERIVED_SYMBOLS: Final[tuple[str, ...]] = ("v", "phi", "i", "iabs", "delta", "s", "p", "q")
"""Symbols of a State that are recomputed from the voltages and the laplacian on every access"""

INTERNAL_INDEX_SYMBOL: Final[str] = "int"
"""Symbol to address an internal variable by its 1-based position"""

RESERVED_SYMBOLS: Final[frozenset[str]] = frozenset(VOLTAGE_SYMBOLS + DERIVED_SYMBOLS + (INTERNAL_INDEX_SYMBOL,))
"""Symbols that can not be used as names of internal variables"""
