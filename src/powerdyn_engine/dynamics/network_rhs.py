# Copyright 2026 50Hertz Transmission GmbH and Elia Transmission Belgium
#
# This Source Code Form is subject to the terms of the Mozilla Public License, v. 2.0.
# If a copy of the MPL was not distributed with this file,
# you can obtain one at https://mozilla.org/MPL/2.0/.
# Mozilla Public License, version 2.0

"""Assembles the dynamics of all nodes and the admittance laplacian into one system function.

Per evaluation the flat state vector is split with the precomputed layout, the nodal currents are
computed once for the whole network, every node is evaluated in index order with read-only access
to its own current and the results are scattered back into an output of the same layout.

The node loop is unrolled while tracing and the whole evaluation is compiled by jax.jit once per
network, so repeated calls by an integrator don't go through python per node.
"""

from functools import partial

import jax
import jax.numpy as jnp
import logbook
import numpy as np
from beartype.typing import Callable, Optional, Sequence, Union
from jaxtyping import Array, ArrayLike, Float
from powerdyn_engine.config import EngineConfig, default_config
from powerdyn_engine.dynamics.coupling import AdmittanceLaplacian, admittance_laplacian, nodal_currents
from powerdyn_engine.dynamics.layout import NetworkLayout, build_layout
from powerdyn_engine.dynamics.node_dynamics import AnyNodeDynamics, NodeDynamics, common_kind, promote
from powerdyn_engine.dynamics.types import DynamicsKind
from powerdyn_engine.errors import GridDynamicsError, NodeDynamicsError, NodeEvaluationError

logger = logbook.Logger(__name__)


class NetworkRHS:
    """Represents the full dynamics of the power grid.

    The nodes are promoted once, at construction, to the most general formulation among them.
    For the Ordinary and OrdinaryWithMass formulations the network is called as f(x, t) and
    returns the right hand side, for the Algebraic formulation as residual(dx, x, t).
    """

    def __init__(
        self,
        nodes: Sequence[AnyNodeDynamics],
        laplacian: Union[AdmittanceLaplacian, ArrayLike],
        config: Optional[EngineConfig] = None,
    ) -> None:
        """Assemble the network

        Parameters
        ----------
        nodes : Sequence[AnyNodeDynamics]
            The dynamics of every node, in node order
        laplacian : Union[AdmittanceLaplacian, ArrayLike]
            The admittance laplacian, validated again here
        config : Optional[EngineConfig]
            The engine config, by default default_config()

        Raises
        ------
        GridDynamicsError
            If there are no nodes, an entry is not a node dynamics, the laplacian is invalid or its
            size doesn't match the number of nodes
        """
        self._config = config if config is not None else default_config()
        nodes = tuple(nodes)
        if len(nodes) == 0:
            raise GridDynamicsError("A network needs at least one node")
        for position, node in enumerate(nodes):
            if not isinstance(node, NodeDynamics):
                raise GridDynamicsError(f"Node {position + 1} is not a node dynamics but {type(node).__name__}")

        self._laplacian = admittance_laplacian(
            laplacian,
            tolerance=self._config.laplacian_tolerance,
            check_symmetry=self._config.check_symmetry,
            sparse=self._config.sparse_coupling,
        )
        if self._laplacian.n_nodes != len(nodes):
            raise GridDynamicsError(
                f"The admittance laplacian has {self._laplacian.n_nodes} nodes "
                f"but {len(nodes)} node dynamics were given"
            )

        self._kind = common_kind(nodes)
        try:
            self._nodes = tuple(promote(node, self._kind) for node in nodes)
        except NodeDynamicsError as err:
            raise GridDynamicsError(f"Could not promote the nodes to {self._kind.name}: {err}") from err
        self._layout = build_layout([node.n_int for node in self._nodes])

        pure_function = self._residual if self._kind == DynamicsKind.ALGEBRAIC else self._rhs
        self._pure_function = pure_function
        self._compiled = jax.jit(pure_function) if self._config.jit else pure_function
        self._compiled_batch: Optional[Callable] = None

        logger.debug(
            f"Assembled {self._kind.name} network with {self.n_nodes} nodes and system size {self.system_size}"
        )

    @property
    def nodes(self) -> tuple[AnyNodeDynamics, ...]:
        """The (promoted) node dynamics, in node order"""
        return self._nodes

    @property
    def kind(self) -> DynamicsKind:
        """The formulation of the network"""
        return self._kind

    @property
    def laplacian(self) -> AdmittanceLaplacian:
        """The admittance laplacian"""
        return self._laplacian

    @property
    def layout(self) -> NetworkLayout:
        """The offset table of the flat state vector"""
        return self._layout

    @property
    def config(self) -> EngineConfig:
        """The engine config the network was built with"""
        return self._config

    @property
    def n_nodes(self) -> int:
        """The number of nodes"""
        return len(self._nodes)

    @property
    def system_size(self) -> int:
        """The length of the flat state vector"""
        return self._layout.system_size

    @property
    def is_implicit(self) -> bool:
        """Whether the network is evaluated in residual form"""
        return self._kind == DynamicsKind.ALGEBRAIC

    def _voltages(self, x: Float[Array, " n_state"]) -> jax.Array:
        layout = self._layout
        return jax.lax.complex(x[layout.voltage_real_index], x[layout.voltage_imag_index])

    def _assemble(
        self,
        d_u: Sequence[jax.Array],
        d_internals: Sequence[jax.Array],
        dtype: jnp.dtype,
    ) -> Float[Array, " n_state"]:
        layout = self._layout
        d_u = jnp.stack(d_u)
        out = jnp.zeros(layout.system_size, dtype=dtype)
        out = out.at[layout.voltage_real_index].set(jnp.real(d_u).astype(dtype))
        out = out.at[layout.voltage_imag_index].set(jnp.imag(d_u).astype(dtype))
        if layout.internal_index.size > 0:
            out = out.at[layout.internal_index].set(jnp.concatenate(d_internals).astype(dtype))
        return out

    def _rhs(
        self,
        x: Float[Array, " n_state"],
        t: Float[ArrayLike, " "],
        laplacian: AdmittanceLaplacian,
    ) -> Float[Array, " n_state"]:
        """Evaluate the explicit right hand side of the whole network"""
        u = self._voltages(x)
        i_c = nodal_currents(laplacian, u)

        d_u, d_internals = [], []
        for position, node in enumerate(self._nodes):
            internals = x[self._layout.internal_slice(position)]
            try:
                node_d_u, node_d_internals = node.evaluate(u[position], i_c[position], internals, t)
            except Exception as err:
                raise NodeEvaluationError(position + 1, f"{type(err).__name__}: {err}") from err
            d_u.append(node_d_u)
            d_internals.append(node_d_internals)
        return self._assemble(d_u, d_internals, x.dtype)

    def _residual(
        self,
        dx: Float[Array, " n_state"],
        x: Float[Array, " n_state"],
        t: Float[ArrayLike, " "],
        laplacian: AdmittanceLaplacian,
    ) -> Float[Array, " n_state"]:
        """Evaluate the residual of the whole network"""
        u = self._voltages(x)
        du = self._voltages(dx)
        i_c = nodal_currents(laplacian, u)

        res_u, res_internals = [], []
        for position, node in enumerate(self._nodes):
            internal_slice = self._layout.internal_slice(position)
            try:
                node_res_u, node_res_internals = node.evaluate(
                    u[position], i_c[position], x[internal_slice], t, du[position], dx[internal_slice]
                )
            except Exception as err:
                raise NodeEvaluationError(position + 1, f"{type(err).__name__}: {err}") from err
            res_u.append(node_res_u)
            res_internals.append(node_res_internals)
        return self._assemble(res_u, res_internals, x.dtype)

    def _check_state(self, x: ArrayLike, name: str, batched: bool = False) -> Float[Array, " ... n_state"]:
        """Convert a state to a jax float array and check its length

        Raises
        ------
        GridDynamicsError
            If the state doesn't have the length of the flat state vector
        """
        x = jnp.asarray(x, dtype=jnp.result_type(float))
        expected_shape = (x.shape[0] if x.ndim > 0 else -1, self.system_size) if batched else (self.system_size,)
        if x.shape != expected_shape:
            expected = f"(n_batch, {self.system_size})" if batched else f"({self.system_size},)"
            raise GridDynamicsError(f"Expected the {name} to have shape {expected}, got {x.shape}")
        return x

    def _check_output(self, out: np.ndarray, t: Union[float, np.ndarray]) -> np.ndarray:
        """Raise a NodeEvaluationError for the first node with a non-finite output component"""
        if not self._config.check_finite:
            return out
        bad = ~np.isfinite(out)
        if np.any(bad):
            offset = int(np.flatnonzero(bad.reshape(-1, self.system_size).any(axis=0))[0])
            node = self._layout.node_of_offset(offset)
            time = float(t) if np.ndim(t) == 0 else None
            raise NodeEvaluationError(node, f"non-finite output in state component {offset}", time=time)
        return out

    def _require_kind(self, implicit: bool) -> None:
        if implicit != self.is_implicit:
            expected = "residual(dx, x, t)" if self.is_implicit else "f(x, t)"
            raise GridDynamicsError(f"A {self._kind.name} network has to be evaluated as {expected}")

    def __call__(self, x: ArrayLike, t: float = 0.0) -> Float[np.ndarray, " n_state"]:
        """Evaluate the explicit right hand side f(x, t)

        Parameters
        ----------
        x : ArrayLike
            The flat state vector, it is not retained
        t : float
            The time

        Returns
        -------
        Float[np.ndarray, " n_state"]
            A new array with the derivatives (mass True) or constraint values (mass False)

        Raises
        ------
        GridDynamicsError
            If the network is algebraic or the state has the wrong length
        NodeEvaluationError
            If a node fails or produces non-finite values
        """
        self._require_kind(implicit=False)
        x = self._check_state(x, "state")
        out = np.array(self._compiled(x, t, self._laplacian))
        return self._check_output(out, t)

    def residual(self, dx: ArrayLike, x: ArrayLike, t: float = 0.0) -> Float[np.ndarray, " n_state"]:
        """Evaluate the residual g(dx, x, t) of an algebraic network

        Parameters
        ----------
        dx : ArrayLike
            The time derivative of the flat state vector
        x : ArrayLike
            The flat state vector
        t : float
            The time

        Returns
        -------
        Float[np.ndarray, " n_state"]
            A new array with the residuals, zero for a consistent pair (dx, x)

        Raises
        ------
        GridDynamicsError
            If the network is not algebraic or a vector has the wrong length
        NodeEvaluationError
            If a node fails or produces non-finite values
        """
        self._require_kind(implicit=True)
        dx = self._check_state(dx, "state derivative")
        x = self._check_state(x, "state")
        out = np.array(self._compiled(dx, x, t, self._laplacian))
        return self._check_output(out, t)

    def batched(
        self, xs: ArrayLike, t: float = 0.0, dxs: Optional[ArrayLike] = None
    ) -> Float[np.ndarray, " n_batch n_state"]:
        """Evaluate many states at once, e.g. for parameter sweeps or ensembles of trajectories

        Parameters
        ----------
        xs : ArrayLike
            The states, shape (n_batch, system_size)
        t : float
            The time, shared by all states
        dxs : Optional[ArrayLike]
            The state derivatives, required for an algebraic network

        Returns
        -------
        Float[np.ndarray, " n_batch n_state"]
            The right hand sides (or residuals) of all states

        Raises
        ------
        GridDynamicsError
            If the shapes don't match or dxs is missing/superfluous for the formulation
        """
        xs = self._check_state(xs, "states", batched=True)
        if self._compiled_batch is None:
            if self.is_implicit:
                batch_function = jax.vmap(self._pure_function, in_axes=(0, 0, None, None))
            else:
                batch_function = jax.vmap(self._pure_function, in_axes=(0, None, None))
            self._compiled_batch = jax.jit(batch_function) if self._config.jit else batch_function

        if self.is_implicit:
            if dxs is None:
                raise GridDynamicsError("An algebraic network needs the state derivatives dxs")
            dxs = self._check_state(dxs, "state derivatives", batched=True)
            if dxs.shape != xs.shape:
                raise GridDynamicsError(f"dxs has shape {dxs.shape} but xs has shape {xs.shape}")
            out = np.array(self._compiled_batch(dxs, xs, t, self._laplacian))
        else:
            if dxs is not None:
                raise GridDynamicsError(f"A {self._kind.name} network does not take state derivatives")
            out = np.array(self._compiled_batch(xs, t, self._laplacian))
        return self._check_output(out, t)

    def jacobian(self, x: ArrayLike, t: float = 0.0) -> Float[np.ndarray, " n_state n_state"]:
        """Compute the jacobian df/dx of the explicit right hand side by forward differentiation

        Raises
        ------
        GridDynamicsError
            If the network is algebraic
        """
        self._require_kind(implicit=False)
        x = self._check_state(x, "state")
        return np.array(jax.jacfwd(self._pure_function, argnums=0)(x, t, self._laplacian))

    def residual_jacobian(
        self, dx: ArrayLike, x: ArrayLike, t: float = 0.0, gamma: float = 1.0
    ) -> Float[np.ndarray, " n_state n_state"]:
        """Compute the iteration matrix dg/dx + gamma * dg/d(dx) of an algebraic network

        Implicit DAE integrators need this matrix for their newton iterations, gamma is the
        coefficient of the integration formula.

        Raises
        ------
        GridDynamicsError
            If the network is not algebraic
        """
        self._require_kind(implicit=True)
        dx = self._check_state(dx, "state derivative")
        x = self._check_state(x, "state")
        jac_dx, jac_x = jax.jacfwd(self._pure_function, argnums=(0, 1))(dx, x, t, self._laplacian)
        return np.array(jac_x + gamma * jac_dx)

    @property
    def jax_function(self) -> Callable:
        """The pure, jittable evaluation function for jax based integrators.

        f(x, t) for the explicit formulations and g(dx, x, t) for the algebraic formulation. The
        output is not checked for non-finite values.
        """
        return partial(self._compiled, laplacian=self._laplacian)
