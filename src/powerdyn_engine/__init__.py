# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Turns node dynamics and an admittance laplacian into a system function for an integrator."""

from .config import EngineConfig, default_config, read_config_from_file, save_config
from .dynamics import (
    AdmittanceLaplacian,
    AlgebraicGridDynamics,
    AlgebraicNodeDynamics,
    DynamicsKind,
    NetworkRHS,
    OrdinaryGridDynamics,
    OrdinaryGridDynamicsWithMass,
    OrdinaryNodeDynamics,
    OrdinaryNodeDynamicsWithMass,
    admittance_laplacian,
    admittance_laplacian_from_branches,
    build_grid_dynamics,
)
from .errors import (
    GridDynamicsError,
    GridSolutionError,
    NodeDynamicsError,
    NodeEvaluationError,
    PowerDynamicsError,
    StateError,
)
from .states import GridSolution, State

__all__ = [
    "AdmittanceLaplacian",
    "AlgebraicGridDynamics",
    "AlgebraicNodeDynamics",
    "DynamicsKind",
    "EngineConfig",
    "GridDynamicsError",
    "GridSolution",
    "GridSolutionError",
    "NetworkRHS",
    "NodeDynamicsError",
    "NodeEvaluationError",
    "OrdinaryGridDynamics",
    "OrdinaryGridDynamicsWithMass",
    "OrdinaryNodeDynamics",
    "OrdinaryNodeDynamicsWithMass",
    "PowerDynamicsError",
    "State",
    "admittance_laplacian",
    "admittance_laplacian_from_branches",
    "build_grid_dynamics",
    "default_config",
    "read_config_from_file",
    "save_config",
]
