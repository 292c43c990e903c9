# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Classical test objectives, exposing the methods expected by the annealing engine.
"""

import math
import numpy as np
import dualannealing.common.typing as tp
from dualannealing.common.decorators import Registry


registry: Registry[tp.Type[tp.Any]] = Registry()


class PeriodicWrap:
    """Folds coordinates into [lower, upper) periodically.
    Works on scalars as well as arrays.
    """

    def __init__(self, lower: float, upper: float) -> None:
        assert lower < upper, f"Invalid interval [{lower}, {upper})"
        self.lower = lower
        self.upper = upper

    def __call__(self, x: tp.Coordinate) -> tp.Coordinate:
        length = self.upper - self.lower
        return self.lower + np.fmod(np.fmod(x - self.lower, length) + length, length)  # type: ignore

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.lower}, {self.upper})"


class _BoxObjective:
    def __init__(self, lower: float, upper: float) -> None:
        self.wrap = PeriodicWrap(lower, upper)

    @property
    def lower(self) -> float:
        return self.wrap.lower

    @property
    def upper(self) -> float:
        return self.wrap.upper

    def __call__(self, x: tp.ArrayLike) -> float:
        return self.value(np.asarray(x, dtype=np.float32))

    def value(self, x: np.ndarray) -> float:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.lower}, {self.upper})"


@registry.register_with_info(minimum=0.0)
class Rastrigin(_BoxObjective):
    """Highly multimodal function, with a regular grid of local minima.
    Its global minimum is 0, at 0. The value after a change of a single coordinate
    is computed incrementally.
    """

    A = 10.0

    def __init__(self, lower: float = -5.12, upper: float = 5.12) -> None:
        super().__init__(lower, upper)

    def _terms(self, x: tp.Any) -> tp.Any:
        x = np.asarray(x, dtype=np.float64)
        return x ** 2 - self.A * np.cos(2.0 * np.pi * x)

    def value(self, x: np.ndarray) -> float:
        return float(self.A * x.size + np.sum(self._terms(x)))

    def value_from_diff(self, current: tp.CurrentPoint, diff: tp.CoordinateDiff) -> float:
        x, value = current
        index, coordinate = diff
        return float(value - self._terms(x[index]) + self._terms(coordinate))

    def value_and_gradient(self, x: np.ndarray, grad: np.ndarray) -> float:
        x64 = x.astype(np.float64)
        grad[:] = 2.0 * x64 + 2.0 * np.pi * self.A * np.sin(2.0 * np.pi * x64)
        return self.value(x)


@registry.register_with_info(minimum=0.0)
class Sphere(_BoxObjective):
    """The most classical continuous optimization testbed."""

    def __init__(self, lower: float = -10.0, upper: float = 10.0) -> None:
        super().__init__(lower, upper)

    def value(self, x: np.ndarray) -> float:
        x64 = x.astype(np.float64)
        return float(x64.dot(x64))

    def value_and_gradient(self, x: np.ndarray, grad: np.ndarray) -> float:
        grad[:] = 2.0 * x.astype(np.float64)
        return self.value(x)


@registry.register_with_info(minimum=0.0)
class Ackley(_BoxObjective):
    """Nearly flat outer region with many local minima, and a deep hole at 0."""

    def __init__(self, lower: float = -32.768, upper: float = 32.768) -> None:
        super().__init__(lower, upper)

    def value(self, x: np.ndarray) -> float:
        x64 = x.astype(np.float64)
        dim = x64.size
        part1 = -0.2 * np.sqrt(x64.dot(x64) / dim)
        part2 = np.sum(np.cos(2.0 * np.pi * x64)) / dim
        return float(20.0 + math.e - 20.0 * np.exp(part1) - np.exp(part2))

    def value_and_gradient(self, x: np.ndarray, grad: np.ndarray) -> float:
        x64 = x.astype(np.float64)
        dim = x64.size
        radius = np.sqrt(x64.dot(x64) / dim)
        cosine_term = np.exp(np.sum(np.cos(2.0 * np.pi * x64)) / dim)
        grad[:] = 2.0 * np.pi / dim * cosine_term * np.sin(2.0 * np.pi * x64)
        if radius > 0:
            grad[:] += 4.0 * np.exp(-0.2 * radius) * x64 / (dim * radius)
        return self.value(x)


class FunctionObjective(_BoxObjective):
    """Objective built from a plain function of the coordinates and box bounds
    (coordinates are wrapped periodically into the box)

    Parameters
    ----------
    func: callable
        function of a float32 array returning a float
    lower: float
        lower bound of all coordinates
    upper: float
        upper bound of all coordinates
    gradient: callable
        optional function of a float32 array returning the gradient of func,
        which enables local search
    """

    def __init__(
        self,
        func: tp.Callable[[np.ndarray], float],
        lower: float,
        upper: float,
        gradient: tp.Optional[tp.Callable[[np.ndarray], tp.ArrayLike]] = None,
    ) -> None:
        super().__init__(lower, upper)
        self._func = func
        self._gradient = gradient
        if gradient is not None:
            self.value_and_gradient = self._value_and_gradient

    def value(self, x: np.ndarray) -> float:
        return float(self._func(x))

    def _value_and_gradient(self, x: np.ndarray, grad: np.ndarray) -> float:
        assert self._gradient is not None
        grad[:] = self._gradient(x)
        return self.value(x)

    def __repr__(self) -> str:
        name = getattr(self._func, "__name__", repr(self._func))
        return f"{self.__class__.__name__}({name}, {self.lower}, {self.upper})"
