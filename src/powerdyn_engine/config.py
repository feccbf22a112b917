# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""A utility class for loading engine config values from a file.

The config only influences how a network is assembled and checked, never the mathematical model
itself. It is fixed once a NetworkRHS has been built.
"""

import json
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class EngineConfig:
    """Holds the settings for assembling and evaluating the network dynamics."""

    laplacian_tolerance: float = 1e-10
    """Absolute tolerance for the row/column sums and the symmetry check of the admittance
    laplacian"""

    check_symmetry: bool = True
    """Whether the admittance laplacian has to be symmetric, i.e. y_ab = y_ba"""

    check_finite: bool = True
    """Whether the host-side evaluation wrappers check the output for nan/inf values and raise a
    NodeEvaluationError naming the first failing node. The pure jax functions are never checked."""

    jit: bool = True
    """Whether to jit-compile the whole network evaluation. Disabling this is only useful for
    debugging node functions with print statements or breakpoints."""

    sparse_coupling: bool = False
    """Whether the nodal currents are computed with a sparse (BCOO) laplacian. Pays off for large
    networks with few branches per node."""


def default_config() -> EngineConfig:
    """Get the default engine config

    Returns
    -------
    EngineConfig
        A default config
    """
    return EngineConfig()


def read_config_from_file(filename: str) -> EngineConfig:
    """Read the engine config from a json file.

    Uses default values for everything that's not provided

    Parameters
    ----------
    filename
        The json file to read from

    Returns
    -------
    EngineConfig
        The populated config dataclass.
    """
    with open(filename, "r", encoding="utf-8") as file:
        data = json.load(file)

    defaults = default_config()
    return EngineConfig(
        laplacian_tolerance=float(data.get("laplacian_tolerance", defaults.laplacian_tolerance)),
        check_symmetry=bool(data.get("check_symmetry", defaults.check_symmetry)),
        check_finite=bool(data.get("check_finite", defaults.check_finite)),
        jit=bool(data.get("jit", defaults.jit)),
        sparse_coupling=bool(data.get("sparse_coupling", defaults.sparse_coupling)),
    )


def save_config(config: EngineConfig, filename: str) -> None:
    """Save the config to a json file

    Parameters
    ----------
    config
        The config to save
    filename
        The json file to save the config to
    """
    with open(filename, "w", encoding="utf-8") as file:
        json.dump(asdict(config), file)
