# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from enum import Enum
import logging
import numpy as np
from scipy import optimize as scipyoptimize
import dualannealing.common.typing as tp
from dualannealing.common import errors


logger = logging.getLogger(__name__)


class LocalSearchStatus(Enum):
    """Outcome of a local search.
    Soft failures may still have improved the point, hard failures stop the optimization.
    """

    SUCCESS = 0
    # soft failures
    MAXIMUM_ITERATIONS = 1
    LINE_SEARCH_FAILED = 2
    # hard failure
    INVALID_VALUE = 3

    @property
    def is_soft_failure(self) -> bool:
        return self in (LocalSearchStatus.MAXIMUM_ITERATIONS, LocalSearchStatus.LINE_SEARCH_FAILED)

    @property
    def is_hard_failure(self) -> bool:
        return self is LocalSearchStatus.INVALID_VALUE


# status codes shared by the supported scipy minimizers
_SCIPY_STATUSES = {
    0: LocalSearchStatus.SUCCESS,
    1: LocalSearchStatus.MAXIMUM_ITERATIONS,
    2: LocalSearchStatus.LINE_SEARCH_FAILED,
}
_METHODS = ("L-BFGS-B", "BFGS", "CG")


class LocalSearch:
    """Gradient-based refinement of a point, using scipy.optimize.minimize

    Parameters
    ----------
    method: str
        a gradient-based scipy method among "L-BFGS-B", "BFGS" and "CG"
    **options: Any
        options of the scipy method (eg: maxiter, gtol)

    Usage
    -----
    :code:`status, value = search(value_and_gradient, x)` refines the float32 array :code:`x` in place,
    where :code:`value_and_gradient(x, grad)` returns the value at :code:`x` and fills :code:`grad`.
    :code:`x` is left untouched in case of hard failure.
    """

    def __init__(self, method: str = "L-BFGS-B", **options: tp.Any) -> None:
        if method not in _METHODS:
            raise errors.DualAnnealingValueError(
                f"Unsupported local search method {method!r}, choose among {_METHODS}"
            )
        self.method = method
        self.options = options

    def __call__(
        self, value_and_gradient: tp.ValueAndGradient, x: np.ndarray
    ) -> tp.Tuple[LocalSearchStatus, float]:
        point = np.array(x, dtype=np.float32, copy=True)
        grad = np.zeros_like(point)

        def func(y: np.ndarray) -> tp.Tuple[float, np.ndarray]:
            point[:] = y
            value = value_and_gradient(point, grad)
            return value, grad.astype(np.float64)

        res = scipyoptimize.minimize(
            func, x.astype(np.float64), jac=True, method=self.method, options=self.options
        )
        status = _SCIPY_STATUSES.get(res.status, LocalSearchStatus.INVALID_VALUE)
        if not np.isfinite(res.fun) or not np.all(np.isfinite(res.x)):
            status = LocalSearchStatus.INVALID_VALUE
        if status.is_hard_failure:
            logger.debug("Local search failed: %s", res.message)
            return status, float(res.fun)
        # value at the float32 point actually stored
        point[:] = res.x
        value = value_and_gradient(point, grad)
        if not np.isfinite(value):
            return LocalSearchStatus.INVALID_VALUE, float(value)
        x[:] = point
        logger.debug("Local search finished with status %s and value %s", status.name, value)
        return status, float(value)
