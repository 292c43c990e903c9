# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import logging
import numpy as np
import dualannealing.common.typing as tp
from dualannealing.common import errors


logger = logging.getLogger(__name__)


def _require(objective: tp.Any, name: str) -> tp.Callable[..., tp.Any]:
    method = getattr(objective, name, None)
    if not callable(method):
        raise errors.MissingCapabilityError(f"Objective {objective!r} is missing '{name}' method.")
    return method  # type: ignore


class ObjectiveAdapter:
    """Calls the capabilities of a user objective, falling back to
    default implementations for the optional ones.

    The objective is duck-typed:

    - :code:`value(x) -> float` is required.
    - :code:`wrap(coordinate) -> coordinate` is required, it folds a coordinate back into the domain.
    - :code:`value_from_diff((x, value), (index, coordinate)) -> float` is optional, it computes
      the value after changing a single coordinate. Defaults to changing the coordinate in place,
      evaluating, and restoring the coordinate.
    - :code:`value_and_gradient(x, grad) -> float` is only required by the local search.
      It must fill grad in place.

    Parameters
    ----------
    objective: Any
        the user objective
    require_gradient: bool
        whether to fail early if value_and_gradient is missing

    Raises
    ------
    MissingCapabilityError
        if a required method is missing
    """

    def __init__(self, objective: tp.Any, require_gradient: bool = False) -> None:
        self.objective = objective
        self._value = _require(objective, "value")
        self._wrap = _require(objective, "wrap")
        self._value_from_diff = objective.value_from_diff if isinstance(objective, tp.DiffObjective) else None
        self._value_and_gradient: tp.Optional[tp.ValueAndGradient] = None
        if isinstance(objective, tp.GradientObjective):
            self._value_and_gradient = objective.value_and_gradient
        elif require_gradient:
            _require(objective, "value_and_gradient")
        self._vectorized_wrap: tp.Optional[bool] = None  # unknown until first call
        self.num_evaluations = 0

    @property
    def has_value_from_diff(self) -> bool:
        return self._value_from_diff is not None

    @property
    def has_gradient(self) -> bool:
        return self._value_and_gradient is not None

    def value(self, x: np.ndarray) -> float:
        self.num_evaluations += 1
        return float(self._value(x))

    def value_from_diff(self, current: tp.CurrentPoint, diff: tp.CoordinateDiff) -> float:
        if self._value_from_diff is not None:
            self.num_evaluations += 1
            return float(self._value_from_diff(current, diff))
        x = current[0]
        index, coordinate = diff
        previous = x[index]
        x[index] = coordinate
        try:
            return self.value(x)
        finally:
            x[index] = previous

    def value_and_gradient(self, x: np.ndarray, grad: np.ndarray) -> float:
        if self._value_and_gradient is None:
            _require(self.objective, "value_and_gradient")
        self.num_evaluations += 1
        return float(self._value_and_gradient(x, grad))  # type: ignore

    def wrap(self, coordinate: float) -> np.float32:
        return np.float32(self._wrap(coordinate))

    def wrap_array(self, x: np.ndarray) -> np.ndarray:
        """Applies wrap to all coordinates.
        The whole array is provided to wrap at once if it supports it,
        otherwise coordinates are wrapped one at a time.
        """
        if self._vectorized_wrap is not False:
            try:
                wrapped = self._wrap(x)
            except (TypeError, ValueError) as e:
                if self._vectorized_wrap:
                    raise
                wrapped = e
            if isinstance(wrapped, np.ndarray) and wrapped.shape == x.shape:
                self._vectorized_wrap = True
                return wrapped.astype(np.float32, copy=False)
            logger.debug(
                "Wrap of %r does not support arrays (got %r), wrapping coordinates one at a time",
                self.objective,
                wrapped,
            )
            self._vectorized_wrap = False
        return np.array([self._wrap(c) for c in x], dtype=np.float32)
