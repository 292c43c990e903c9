# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import logging
import warnings
import numpy as np
import dualannealing.common.typing as tp
from dualannealing.common import errors
from .buffers import BufferPool
from .buffers import thread_local_pool
from .objective import ObjectiveAdapter
from .localsearch import LocalSearchStatus
from .chain import Chain
from .chain import LocalSearchCallable


logger = logging.getLogger(__name__)
_ChainCallBack = tp.Callable[[Chain], None]


class Params(tp.NamedTuple):
    """Parameters of the annealing

    q_V: shape of the visiting distribution, in (1, 3). Heavier tails when closer to 3.
    q_A: shape of the acceptance distribution. The lower, the rarer the acceptance of uphill moves.
    t_0: initial visiting temperature
    num_iterations: maximum number of iterations of the chain
    patience: number of consecutive iterations without improvement of the best point
        before stopping early
    """

    q_V: float = 2.62
    q_A: float = -5.0
    t_0: float = 5230.0
    num_iterations: int = 1000
    patience: int = 20


class Result(tp.NamedTuple):
    """Summary of an optimization run

    func: value of the best point
    num_iterations: number of iterations of the chain
    num_function_evaluations: number of evaluations of the objective (local searches included)
    acceptance_ratio: ratio of accepted moves, NaN if no iteration was performed
    x: coordinates of the best point
    status: status of the last local search, None if local search was disabled
    """

    func: float
    num_iterations: int
    num_function_evaluations: int
    acceptance_ratio: float
    x: np.ndarray
    status: tp.Optional[LocalSearchStatus] = None


def minimize(
    objective: tp.Any,
    x: np.ndarray,
    params: tp.Optional[Params] = None,
    local_search: tp.Optional[LocalSearchCallable] = None,
    random_state: tp.RandomLike = None,
    pool: tp.Optional[BufferPool] = None,
    callbacks: tp.Sequence[_ChainCallBack] = (),
) -> Result:
    """Minimizes the objective with generalized simulated annealing

    Parameters
    ----------
    objective: Any
        object providing at least :code:`value(x)` and :code:`wrap(coordinate)` methods,
        and :code:`value_and_gradient(x, grad)` if local search is used (see ObjectiveAdapter)
    x: np.ndarray
        1d array with the initial point. It is updated in place with the best point found.
    params: Params
        parameters of the annealing (defaults to Params())
    local_search: callable
        gradient-based local search (eg: LocalSearch()), or None for pure annealing.
        It is run at the start, and each time the annealing improves the best point.
    random_state: np.random.Generator, int or None
        generator, or seed for creating one
    pool: BufferPool
        pool providing the buffers of the run, reserved until the run ends.
        Defaults to the pool of the calling thread, or to a new pool if it is already
        reserved (eg: minimize called from within an objective or a callback).
    callbacks: sequence of callables
        functions called with the chain after each iteration. They can raise
        :code:`errors.EarlyStopping` to stop the run.

    Returns
    -------
    Result
        summary of the run

    Raises
    ------
    MissingCapabilityError
        if the objective does not provide the required methods
    AllocationError
        if the buffers cannot be allocated, in which case x is left untouched
    """
    if params is None:
        params = Params()
    assert isinstance(x, np.ndarray) and x.ndim == 1, "x must be a 1d array (updated in place)"
    assert params.num_iterations >= 0 and params.patience >= 0, f"Invalid parameters {params}"
    adapter = ObjectiveAdapter(objective, require_gradient=local_search is not None)
    if not isinstance(random_state, np.random.Generator):
        random_state = np.random.default_rng(random_state)
    if pool is None:
        pool = thread_local_pool()
        if pool.in_use:
            logger.debug("Thread-local pool is in use by another run, using a new pool")
            pool = BufferPool()
    with pool.reserved():
        pool.resize(x.size)
        workspace = pool.workspace()
        workspace.current.x[:] = x
        chain = Chain(adapter, workspace, params, random_state)
        return _anneal(chain, x, local_search, callbacks)


def _anneal(
    chain: Chain,
    x: np.ndarray,
    local_search: tp.Optional[LocalSearchCallable],
    callbacks: tp.Sequence[_ChainCallBack],
) -> Result:
    workspace = chain.workspace
    params = chain.params
    logger.debug("Starting annealing in dimension %s from value %s", x.size, workspace.current.func)
    status: tp.Optional[LocalSearchStatus] = None
    if local_search is not None:
        status = chain.local_search(local_search)
    stopped = status is not None and status.is_hard_failure
    patience = params.patience
    while not stopped and chain.iteration < params.num_iterations and patience > 0:
        best = workspace.best.func
        chain.advance()
        if workspace.best.func < best:
            patience = params.patience
            if local_search is not None:
                status = chain.local_search(local_search)
                stopped = status.is_hard_failure
        else:
            patience -= 1
        try:
            for callback in callbacks:
                callback(chain)
        except errors.EarlyStopping as e:
            logger.debug("Stopping early at iteration %s: %s", chain.iteration, e)
            break
    if stopped:
        warnings.warn(
            f"Local search failed at iteration {chain.iteration}, returning the best point found so far",
            errors.LocalSearchFailureWarning,
        )
    x[:] = workspace.best.x
    logger.debug(
        "Finished annealing after %s iterations with value %s", chain.iteration, workspace.best.func
    )
    return Result(
        func=workspace.best.func,
        num_iterations=chain.iteration,
        num_function_evaluations=chain.num_function_evaluations,
        acceptance_ratio=chain.acceptance_ratio,
        x=workspace.best.x.copy(),
        status=status,
    )
