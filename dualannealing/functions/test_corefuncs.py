# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
from scipy import optimize
import dualannealing.common.typing as tp
from dualannealing.common import testing
from . import corefuncs


@testing.parametrized(**{name: (name,) for name in corefuncs.registry})
def test_known_minimum(name: str) -> None:
    func = corefuncs.registry[name]()
    info = corefuncs.registry.get_info(name)
    np.testing.assert_almost_equal(func(np.zeros(4)), info["minimum"])
    assert func([1.0, 2.0, 0.5, -0.25]) > info["minimum"]


@testing.parametrized(
    rastrigin=(corefuncs.Rastrigin(), [2.3, -1.7, 0.4]),
    sphere=(corefuncs.Sphere(), [2.3, -1.7, 0.4]),
    ackley=(corefuncs.Ackley(), [2.3, -1.7, 0.4]),
    ackley_close=(corefuncs.Ackley(), [0.01, -0.02, 0.03]),
)
def test_gradients(func: tp.Any, x: tp.List[float]) -> None:
    def gradient(y: np.ndarray) -> np.ndarray:
        grad = np.zeros_like(y)
        func.value_and_gradient(y, grad)
        return grad

    error = optimize.check_grad(func.value, gradient, np.array(x))
    assert error < 1e-3, f"Gradient error is {error}"
    grad = np.zeros(3, dtype=np.float32)
    value = func.value_and_gradient(np.array(x, dtype=np.float32), grad)
    np.testing.assert_equal(value, func(x))


def test_rastrigin_value_from_diff() -> None:
    func = corefuncs.Rastrigin()
    x = np.array([2.3, -1.7, 0.4], dtype=np.float32)
    value = func.value(x)
    np.testing.assert_almost_equal(value, func.value(x.astype(np.float64)))
    output = func.value_from_diff((x, value), (1, np.float32(0.5)))
    np.testing.assert_array_equal(x, np.array([2.3, -1.7, 0.4], dtype=np.float32))  # not modified
    x[1] = 0.5
    np.testing.assert_almost_equal(output, func.value(x), decimal=10)


@testing.parametrized(
    inside=(0.25, 0.25),
    above=(1.5, -0.5),
    below=(-3.5, 0.5),
    upper=(1.0, -1.0),
    lower=(-1.0, -1.0),
)
def test_periodic_wrap(value: float, expected: float) -> None:
    wrap = corefuncs.PeriodicWrap(-1.0, 1.0)
    np.testing.assert_almost_equal(wrap(value), expected)
    output = wrap(np.array([value, value], dtype=np.float32))
    assert output.dtype == np.float32
    np.testing.assert_almost_equal(output, [expected, expected])


def test_periodic_wrap_interval() -> None:
    np.testing.assert_raises(AssertionError, corefuncs.PeriodicWrap, 1.0, 1.0)
    assert repr(corefuncs.PeriodicWrap(-1.0, 2.0)) == "PeriodicWrap(-1.0, 2.0)"


def test_function_objective() -> None:
    def square(x: np.ndarray) -> float:
        return float(np.sum(x ** 2))

    func = corefuncs.FunctionObjective(square, -2.0, 2.0)
    assert not hasattr(func, "value_and_gradient")
    np.testing.assert_almost_equal(func([1.0, 0.5]), 1.25)
    np.testing.assert_almost_equal(func.wrap(3.0), -1.0)
    assert repr(func) == "FunctionObjective(square, -2.0, 2.0)"
    func = corefuncs.FunctionObjective(square, -2.0, 2.0, gradient=lambda x: 2 * x)
    grad = np.zeros(2, dtype=np.float32)
    value = func.value_and_gradient(np.array([1.0, 0.5], dtype=np.float32), grad)
    np.testing.assert_almost_equal(value, 1.25)
    np.testing.assert_array_equal(grad, [2.0, 1.0])


def test_bounds() -> None:
    func = corefuncs.Rastrigin()
    np.testing.assert_equal((func.lower, func.upper), (-5.12, 5.12))
    assert repr(corefuncs.Sphere(-1.0, 1.0)) == "Sphere(-1.0, 1.0)"
