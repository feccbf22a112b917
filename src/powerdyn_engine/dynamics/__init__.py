# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Node dynamics, network coupling and the whole-grid dynamics handed to an integrator."""

from .coupling import (
    AdmittanceLaplacian,
    admittance_laplacian,
    admittance_laplacian_from_branches,
    nodal_currents,
)
from .grid_dynamics import (
    AlgebraicGridDynamics,
    AnyGridDynamics,
    GridDynamics,
    OrdinaryGridDynamics,
    OrdinaryGridDynamicsWithMass,
    build_grid_dynamics,
)
from .layout import NetworkLayout, build_layout
from .network_rhs import NetworkRHS
from .node_dynamics import (
    AlgebraicNodeDynamics,
    AnyNodeDynamics,
    NodeDynamics,
    OrdinaryNodeDynamics,
    OrdinaryNodeDynamicsWithMass,
    common_kind,
    promote,
    to_algebraic,
    to_ordinary_with_mass,
)
from .types import DynamicsKind

__all__ = [
    "AdmittanceLaplacian",
    "AlgebraicGridDynamics",
    "AlgebraicNodeDynamics",
    "AnyGridDynamics",
    "AnyNodeDynamics",
    "DynamicsKind",
    "GridDynamics",
    "NetworkLayout",
    "NetworkRHS",
    "NodeDynamics",
    "OrdinaryGridDynamics",
    "OrdinaryGridDynamicsWithMass",
    "OrdinaryNodeDynamics",
    "OrdinaryNodeDynamicsWithMass",
    "admittance_laplacian",
    "admittance_laplacian_from_branches",
    "build_grid_dynamics",
    "build_layout",
    "common_kind",
    "nodal_currents",
    "promote",
    "to_algebraic",
    "to_ordinary_with_mass",
]
