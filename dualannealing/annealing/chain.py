# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Markov chain of generalized simulated annealing.
"""

import math
import logging
import numpy as np
import dualannealing.common.typing as tp
from .buffers import Workspace
from .objective import ObjectiveAdapter
from .tsallis import TsallisSampler
from .localsearch import LocalSearchStatus

if tp.TYPE_CHECKING:
    from .base import Params


logger = logging.getLogger(__name__)
LocalSearchCallable = tp.Callable[[tp.ValueAndGradient, np.ndarray], tp.Tuple[LocalSearchStatus, float]]


def temperature(iteration: int, q_V: float, t_0: float) -> float:
    """Visiting temperature t_V at given iteration (t_V = t_0 at iteration 0)"""
    num = t_0 * (2.0 ** (q_V - 1.0) - 1.0)
    den = (2.0 + iteration) ** (q_V - 1.0) - 1.0
    return num / den


def acceptance_probability(dE: float, q_A: float, t_A: float) -> float:
    """Generalized Metropolis criterion: probability of accepting
    a move changing the energy by dE at acceptance temperature t_A.
    """
    if dE < 0:
        return 1.0
    if q_A == 1.0:  # Boltzmann limit
        return math.exp(-dE / t_A)
    factor = 1.0 + (q_A - 1.0) * dE / t_A
    if factor <= 0.0:
        return 0.0
    return factor ** (1.0 / (1.0 - q_A))  # type: ignore


class Chain:
    """Annealing chain, performing one sweep of the space for each call to advance.

    Parameters
    ----------
    objective: Any
        objective to minimize (see ObjectiveAdapter for the expected methods)
    workspace: Workspace
        storage for the points of the chain. Only workspace.current.x needs to be initialized,
        the chain then owns the content of the workspace until it is discarded.
    params: Params
        parameters of the annealing
    random_state: np.random.Generator
        source of randomness, used by this chain only during the run
    """

    def __init__(
        self, objective: tp.Any, workspace: Workspace, params: "Params", random_state: np.random.Generator
    ) -> None:
        assert 1.0 < params.q_V < 3.0, "`q_V` must be in (1, 3)"
        assert params.t_0 > 0, "`t_0` must be positive"
        if not isinstance(objective, ObjectiveAdapter):
            objective = ObjectiveAdapter(objective)
        self._objective = objective
        self._workspace = workspace
        self._params = params
        self._rng = random_state
        self._sampler = TsallisSampler(params.q_V, params.t_0)
        self.iteration = 0
        self.num_accepted = 0
        workspace.current.func = self._objective.value(workspace.current.x)
        workspace.best.assign(workspace.current)
        workspace.proposed.x.fill(0)
        workspace.proposed.func = float("nan")

    @property
    def workspace(self) -> Workspace:
        return self._workspace

    @property
    def params(self) -> "Params":
        return self._params

    @property
    def dimension(self) -> int:
        return self._workspace.dimension

    @property
    def num_function_evaluations(self) -> int:
        return self._objective.num_evaluations

    @property
    def acceptance_ratio(self) -> float:
        """Ratio of accepted moves among the 2 * dimension trials of each iteration"""
        num_trials = 2 * self.iteration * self.dimension
        return self.num_accepted / num_trials if num_trials else float("nan")

    def temperatures(self) -> tp.Tuple[float, float]:
        """Visiting and acceptance temperatures of the current iteration"""
        t_V = temperature(self.iteration, self._params.q_V, self._params.t_0)
        return t_V, t_V / (self.iteration + 1)

    def _accept(self, dE: float, t_A: float) -> bool:
        # downhill moves and impossible moves do not consume any random number
        if dE < 0:
            return True
        probability = acceptance_probability(dE, self._params.q_A, t_A)
        return probability > 0 and bool(self._rng.random() <= probability)

    def _update_best(self) -> None:
        ws = self._workspace
        if ws.current.func < ws.best.func:
            ws.best.assign(ws.current)
            logger.debug("Updating best: func=%s", ws.best.func)

    def advance(self) -> None:
        """Performs one iteration: dimension moves of the full point,
        followed by a sweep over the coordinates, one at a time.
        """
        ws = self._workspace
        dim = ws.dimension
        t_V, t_A = self.temperatures()
        self._sampler.set_param(self._params.q_V, t_V)
        for _ in range(dim):
            visit = self._sampler.draw_many(self._rng)
            ws.proposed.x[:] = self._objective.wrap_array(ws.current.x + visit(dim))
            ws.proposed.func = self._objective.value(ws.proposed.x)
            if self._accept(ws.proposed.func - ws.current.func, t_A):
                ws.swap()
                self.num_accepted += 1
                self._update_best()
        for j in range(dim):
            coordinate = self._objective.wrap(ws.current.x[j] + self._sampler.draw_scalar(self._rng))
            func = self._objective.value_from_diff((ws.current.x, ws.current.func), (j, coordinate))
            if self._accept(func - ws.current.func, t_A):
                ws.current.x[j] = coordinate
                ws.current.func = func
                self.num_accepted += 1
                self._update_best()
        self.iteration += 1

    def local_search(self, search: LocalSearchCallable) -> LocalSearchStatus:
        """Refines the current point with a gradient-based local search.
        The refined point becomes the current one if the search succeeded, or if it failed
        softly without worsening the objective. Otherwise the current point is left untouched.
        """
        ws = self._workspace
        ws.proposed.assign(ws.current)
        status, value = search(self._objective.value_and_gradient, ws.proposed.x)
        if status.is_hard_failure:
            logger.debug("Local search failed with status %s", status.name)
            return status
        ws.proposed.func = value
        if status is LocalSearchStatus.SUCCESS or value <= ws.current.func:
            ws.swap()
            self._update_best()
        return status
