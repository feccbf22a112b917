# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

import jax
import numpy as np
import pytest
from powerdyn_engine.dynamics.grid_dynamics import AnyGridDynamics
from powerdyn_engine.example_grids import layout_grid, swing_grid, swing_ode_grid, two_node_grid

jax.config.update("jax_enable_x64", True)
## Set up loggers
# JAX
jax.config.update("jax_logging_level", "WARNING")


@pytest.fixture
def two_node() -> AnyGridDynamics:
    return two_node_grid()


@pytest.fixture
def three_node_layout() -> AnyGridDynamics:
    return layout_grid()


@pytest.fixture
def swing() -> AnyGridDynamics:
    return swing_grid()


@pytest.fixture
def swing_ode() -> AnyGridDynamics:
    return swing_ode_grid()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(0)
