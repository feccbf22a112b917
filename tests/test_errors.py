# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

import pytest
from powerdyn_engine.errors import (
    GridDynamicsError,
    GridSolutionError,
    NodeDynamicsError,
    NodeEvaluationError,
    PowerDynamicsError,
    StateError,
)


@pytest.mark.parametrize(
    "error_class", [GridDynamicsError, GridSolutionError, NodeDynamicsError, NodeEvaluationError, StateError]
)
def test_hierarchy(error_class: type) -> None:
    assert issubclass(error_class, PowerDynamicsError)


def test_state_error_is_index_error() -> None:
    with pytest.raises(IndexError):
        raise StateError("out of range")


def test_node_evaluation_error() -> None:
    err = NodeEvaluationError(3, "division by zero", time=0.5)
    assert err.node == 3
    assert err.time == 0.5
    assert str(err) == "Evaluation of node 3 failed at t=0.5: division by zero"

    err = NodeEvaluationError(1, "boom")
    assert err.time is None
    assert str(err) == "Evaluation of node 1 failed: boom"
