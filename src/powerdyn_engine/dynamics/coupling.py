# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Contains the admittance laplacian that couples the nodes of the grid.

The admittance laplacian uses the convention

    LY_ab = sum_c y_ac   if a == b
    LY_ab = -y_ab        otherwise

with y_ab = y_ba and no self admittance (y_aa = 0), hence every row and every column sums to zero.
The nodal complex current is i_c_a = sum_b LY_ab u_b and the complex power s_a = u_a conj(i_c_a).
"""

import jax.numpy as jnp
import numpy as np
from beartype.typing import Optional, Union
from jax.experimental import sparse as jsparse
from jax_dataclasses import Static, pytree_dataclass
from jaxtyping import Array, ArrayLike, Complex, Int, Num
from powerdyn_engine.errors import GridDynamicsError
from scipy.sparse import csc_matrix, spmatrix


@pytree_dataclass
class AdmittanceLaplacian:
    """Holds the admittance laplacian of the grid.

    Only construct this through admittance_laplacian or admittance_laplacian_from_branches, which
    validate the structure. As a pytree it can be passed through jax transformations, e.g. to vmap
    a network evaluation over different laplacians.
    """

    matrix: Union[Complex[Array, " n_node n_node"], jsparse.BCOO]
    """The laplacian, dense or as a sparse BCOO matrix"""

    n_nodes: Static[int]
    """The number of nodes N"""

    @property
    def dense(self) -> Complex[Array, " n_node n_node"]:
        """The laplacian as a dense matrix"""
        if isinstance(self.matrix, jsparse.BCOO):
            return self.matrix.todense()
        return self.matrix


def validate_admittance_laplacian(
    matrix: Num[np.ndarray, " n_node n_node"],
    tolerance: float = 1e-10,
    check_symmetry: bool = True,
) -> None:
    """Validate that a matrix is an admittance laplacian.

    Parameters
    ----------
    matrix : Num[np.ndarray, " n_node n_node"]
        The candidate laplacian
    tolerance : float
        The absolute tolerance for row/column sums and symmetry
    check_symmetry : bool
        Whether to require LY_ab == LY_ba

    Raises
    ------
    GridDynamicsError
        If the matrix is not square, contains nan/inf values, has rows or columns that don't sum to
        zero or is not symmetric
    """
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise GridDynamicsError(f"The admittance laplacian must be a square matrix, got shape {matrix.shape}")
    if matrix.shape[0] == 0:
        raise GridDynamicsError("The admittance laplacian must have at least one node")
    if not np.all(np.isfinite(matrix)):
        raise GridDynamicsError("The admittance laplacian contains nan or inf values")

    bad_rows = np.flatnonzero(np.abs(matrix.sum(axis=1)) > tolerance)
    if bad_rows.size > 0:
        raise GridDynamicsError(
            f"Rows {(bad_rows + 1).tolist()} of the admittance laplacian don't sum to zero, "
            "self admittance is not allowed"
        )
    bad_columns = np.flatnonzero(np.abs(matrix.sum(axis=0)) > tolerance)
    if bad_columns.size > 0:
        raise GridDynamicsError(
            f"Columns {(bad_columns + 1).tolist()} of the admittance laplacian don't sum to zero, "
            "self admittance is not allowed"
        )
    if check_symmetry and not np.allclose(matrix, matrix.T, rtol=0.0, atol=tolerance):
        raise GridDynamicsError("The admittance laplacian is not symmetric, expected y_ab = y_ba")


def admittance_laplacian(
    matrix: Union[Num[ArrayLike, " n_node n_node"], AdmittanceLaplacian],
    tolerance: float = 1e-10,
    check_symmetry: bool = True,
    sparse: bool = False,
) -> AdmittanceLaplacian:
    """Create a validated admittance laplacian from a dense matrix

    Parameters
    ----------
    matrix : Union[Num[ArrayLike, " n_node n_node"], AdmittanceLaplacian]
        The laplacian as a (real or complex) matrix, or an existing AdmittanceLaplacian which is
        validated again
    tolerance : float
        The absolute tolerance for the row/column sums and the symmetry
    check_symmetry : bool
        Whether to require LY_ab == LY_ba
    sparse : bool
        Whether to store the laplacian as a sparse BCOO matrix

    Returns
    -------
    AdmittanceLaplacian
        The laplacian as a complex jax array

    Raises
    ------
    GridDynamicsError
        If the matrix is not an admittance laplacian
    """
    if isinstance(matrix, AdmittanceLaplacian):
        matrix = matrix.dense
    host_matrix = np.asarray(matrix).astype(complex)
    validate_admittance_laplacian(host_matrix, tolerance=tolerance, check_symmetry=check_symmetry)

    device_matrix = jnp.asarray(host_matrix, dtype=jnp.result_type(complex))
    if sparse:
        device_matrix = jsparse.BCOO.fromdense(device_matrix)
    return AdmittanceLaplacian(matrix=device_matrix, n_nodes=int(host_matrix.shape[0]))


def nodal_currents(
    laplacian: AdmittanceLaplacian,
    u: Complex[Array, " n_node"],
) -> Complex[Array, " n_node"]:
    """Compute the nodal current injections i_c = LY @ u

    This is evaluated on every right hand side evaluation and is never cached, as u changes in
    every step.

    Parameters
    ----------
    laplacian : AdmittanceLaplacian
        The admittance laplacian
    u : Complex[Array, " n_node"]
        The complex voltages of all nodes

    Returns
    -------
    Complex[Array, " n_node"]
        The complex nodal currents
    """
    return laplacian.matrix @ u


def get_connectivity_matrix(
    from_node: Int[np.ndarray, " n_branch"],
    to_node: Int[np.ndarray, " n_branch"],
    number_of_nodes: int,
) -> spmatrix:
    """Get the directed connectivity matrix (n_branch x n_node) of the grid.

    Row k has a 1 at the from node and a -1 at the to node of branch k.

    Parameters
    ----------
    from_node : Int[np.ndarray, " n_branch"]
        The 0-based from node of every branch
    to_node : Int[np.ndarray, " n_branch"]
        The 0-based to node of every branch
    number_of_nodes : int
        The number of nodes in the grid

    Returns
    -------
    spmatrix [Shape[" n_branch, n_node"], int]
        The connectivity matrix of the grid in sparse format
    """
    number_of_branches = int(from_node.shape[0])
    data = np.r_[np.ones(number_of_branches), -np.ones(number_of_branches)]
    row_indices = np.r_[range(number_of_branches), range(number_of_branches)]
    column_indices = np.r_[from_node, to_node]
    return csc_matrix(
        (data, (row_indices, column_indices)),
        shape=(number_of_branches, number_of_nodes),
        dtype=int,
    )


def admittance_laplacian_from_branches(
    from_node: Int[ArrayLike, " n_branch"],
    to_node: Int[ArrayLike, " n_branch"],
    admittances: Num[ArrayLike, " n_branch"],
    number_of_nodes: Optional[int] = None,
    sparse: bool = False,
) -> AdmittanceLaplacian:
    """Build the admittance laplacian LY = C^T diag(y) C from a list of branches.

    Parallel branches add up. Node numbers are 0-based positions in the node list.

    Parameters
    ----------
    from_node : Int[ArrayLike, " n_branch"]
        The from node of every branch
    to_node : Int[ArrayLike, " n_branch"]
        The to node of every branch
    admittances : Num[ArrayLike, " n_branch"]
        The complex admittance y_ab of every branch
    number_of_nodes : Optional[int]
        The number of nodes, if not given the highest node number + 1. Pass this if there are
        nodes without any branch.
    sparse : bool
        Whether to store the laplacian as a sparse BCOO matrix

    Returns
    -------
    AdmittanceLaplacian
        The validated laplacian

    Raises
    ------
    GridDynamicsError
        If the branch arrays don't match, a branch connects a node to itself or a node number is
        out of range
    """
    from_node = np.asarray(from_node, dtype=int)
    to_node = np.asarray(to_node, dtype=int)
    admittances = np.asarray(admittances).astype(complex)
    if not from_node.shape == to_node.shape == admittances.shape or from_node.ndim != 1:
        raise GridDynamicsError(
            f"Branch arrays must be 1-dimensional and of equal length, got {from_node.shape}, "
            f"{to_node.shape} and {admittances.shape}"
        )
    if np.any(from_node == to_node):
        loops = np.flatnonzero(from_node == to_node).tolist()
        raise GridDynamicsError(f"Branches {loops} connect a node to itself, self admittance is not allowed")
    if number_of_nodes is None:
        number_of_nodes = int(np.max(np.concatenate([from_node, to_node]))) + 1 if from_node.size > 0 else 0
    if from_node.size > 0 and (
        min(from_node.min(), to_node.min()) < 0 or max(from_node.max(), to_node.max()) >= number_of_nodes
    ):
        raise GridDynamicsError(f"Branch node numbers must lie within [0, {number_of_nodes - 1}]")

    connectivity_matrix = get_connectivity_matrix(from_node, to_node, number_of_nodes)
    branch_node_admittance = csc_matrix(connectivity_matrix.multiply(admittances[:, np.newaxis]))
    node_node_admittance = connectivity_matrix.T @ branch_node_admittance

    return admittance_laplacian(np.asarray(node_node_admittance.toarray()), sparse=sparse)
