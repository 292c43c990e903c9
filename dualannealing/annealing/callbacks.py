# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import time
import logging
import numpy as np
import dualannealing.common.typing as tp
from dualannealing.common import errors
from .chain import Chain

global_logger = logging.getLogger(__name__)


class ProgressLogger:
    """Logger to provide as callback to minimize, for logging
    the best point regularly.

    Parameters
    ----------
    logger:
        given logger that callback will use to log
    log_level:
        log level that logger will write to
    log_interval_iterations: int
        max number of iterations before performing another log
    log_interval_seconds:
        max number of seconds before performing another log
    """

    def __init__(
        self,
        *,
        logger: logging.Logger = global_logger,
        log_level: int = logging.INFO,
        log_interval_iterations: int = 1,
        log_interval_seconds: float = 60.0,
    ) -> None:
        assert log_interval_iterations > 0
        assert log_interval_seconds > 0
        self._logger = logger
        self._log_level = log_level
        self._log_interval_iterations = int(log_interval_iterations)
        self._log_interval_seconds = log_interval_seconds
        self._next_iteration = self._log_interval_iterations
        self._next_time = time.time() + log_interval_seconds

    def __call__(self, chain: Chain) -> None:
        if time.time() >= self._next_time or chain.iteration >= self._next_iteration:
            self._next_time = time.time() + self._log_interval_seconds
            self._next_iteration = chain.iteration + self._log_interval_iterations
            best = chain.workspace.best
            self._logger.log(
                self._log_level,
                "After %s iterations (%s evaluations), best value is %s (acceptance ratio %.3f)",
                chain.iteration,
                chain.num_function_evaluations,
                best.func,
                chain.acceptance_ratio,
            )


class EarlyStopping:
    """Callback for stopping minimize before the iterations or the patience
    are exhausted.

    Parameters
    ----------
    stopping_criterion: func(chain) -> bool
        function that takes the chain as input and returns True
        if the minimization must be stopped

    Example
    -------
    Stopping as soon as the best value is below 12:

    >>> early_stopping = EarlyStopping(lambda chain: chain.workspace.best.func < 12)
    >>> minimize(objective, x, callbacks=[early_stopping])
    """

    def __init__(self, stopping_criterion: tp.Callable[[Chain], bool]) -> None:
        self.stopping_criterion = stopping_criterion

    def __call__(self, chain: Chain) -> None:
        if self.stopping_criterion(chain):
            raise errors.EarlyStopping("Early stopping criterion is reached")

    @classmethod
    def timer(cls, max_duration: float) -> "EarlyStopping":
        """Early stop when max_duration seconds has been reached (from the first iteration)"""
        return cls(_DurationCriterion(max_duration))

    @classmethod
    def target_value(cls, target: float) -> "EarlyStopping":
        """Early stop when the best value is lower or equal to target"""
        return cls(lambda chain: chain.workspace.best.func <= target)


class _DurationCriterion:
    def __init__(self, max_duration: float) -> None:
        self._start = float("inf")
        self._max_duration = max_duration

    def __call__(self, chain: Chain) -> bool:
        if np.isinf(self._start):
            self._start = time.time()
        return time.time() > self._start + self._max_duration
