# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Ready-made node types: algebraic buses, synchronous machines and voltage source inverters."""

from .algebraic import (
    PQAlgebraic,
    PVAlgebraic,
    SlackAlgebraic,
)
from .base import NodeParameters, internal_symbols_of
from .inverters import (
    VSIMinimal,
    VSIVoltagePT1,
)
from .synchronous_machines import (
    FourthEq,
    SwingEq,
    SwingEqLVS,
)

__all__ = [
    "FourthEq",
    "NodeParameters",
    "PQAlgebraic",
    "PVAlgebraic",
    "SlackAlgebraic",
    "SwingEq",
    "SwingEqLVS",
    "VSIMinimal",
    "VSIVoltagePT1",
    "internal_symbols_of",
]
