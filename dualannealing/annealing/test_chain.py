# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import math
import numpy as np
import dualannealing.common.typing as tp
from dualannealing.common import testing
from dualannealing.functions import corefuncs
from . import chain as chainlib
from .buffers import BufferPool
from .base import Params
from .localsearch import LocalSearchStatus


def _make_chain(
    x: tp.ArrayLike, seed: int = 12, objective: tp.Any = None, **kwargs: tp.Any
) -> chainlib.Chain:
    x = np.asarray(x, dtype=np.float32)
    workspace = BufferPool(x.size).workspace()
    workspace.current.x[:] = x
    objective = corefuncs.Rastrigin() if objective is None else objective
    return chainlib.Chain(objective, workspace, Params(**kwargs), np.random.default_rng(seed))


@testing.parametrized(
    downhill=(-1.0, -5.0, 1.0, 1.0),
    flat=(0.0, -5.0, 1.0, 1.0),
    cut=(10.0, -5.0, 1.0, 0.0),
    boltzmann=(2.0, 1.0, 4.0, math.exp(-0.5)),
    generalized=(1.0, 0.5, 1.0, 0.25),
)
def test_acceptance_probability(dE: float, q_A: float, t_A: float, expected: float) -> None:
    np.testing.assert_almost_equal(chainlib.acceptance_probability(dE, q_A, t_A), expected)


def test_temperature() -> None:
    np.testing.assert_almost_equal(chainlib.temperature(0, 2.62, 5230.0), 5230.0)
    temperatures = [chainlib.temperature(k, 2.62, 5230.0) for k in range(100)]
    assert all(t1 > t2 > 0 for t1, t2 in zip(temperatures, temperatures[1:]))
    # Cauchy schedule for q_V = 2
    np.testing.assert_almost_equal(chainlib.temperature(3, 2.0, 1.0), 1 / 4)


def test_chain_initialization() -> None:
    chain = _make_chain([1.0, 2.0, 0.5])
    ws = chain.workspace
    np.testing.assert_almost_equal(ws.current.func, 1 + 4 + 20.25)
    np.testing.assert_equal(ws.best.func, ws.current.func)
    np.testing.assert_array_equal(ws.best.x, ws.current.x)
    np.testing.assert_array_equal(ws.proposed.x, 0)
    assert np.isnan(ws.proposed.func)
    np.testing.assert_equal(chain.iteration, 0)
    np.testing.assert_equal(chain.num_function_evaluations, 1)
    assert np.isnan(chain.acceptance_ratio)
    np.testing.assert_equal(chain.dimension, 3)
    t_V, t_A = chain.temperatures()
    np.testing.assert_equal(t_A, t_V)


def test_chain_preconditions() -> None:
    np.testing.assert_raises(AssertionError, _make_chain, [1.0], q_V=3.0)
    np.testing.assert_raises(AssertionError, _make_chain, [1.0], t_0=0.0)


@testing.parametrized(**{f"seed_{seed}": (seed,) for seed in [0, 1, 12, 2019]})
def test_advance_keeps_best(seed: int) -> None:
    chain = _make_chain([4.0, -3.0, 2.5, 1.0], seed=seed)
    ws = chain.workspace
    start = ws.best.func
    previous = start
    for k in range(20):
        chain.advance()
        np.testing.assert_equal(chain.iteration, k + 1)
        assert ws.best.func <= ws.current.func
        assert ws.best.func <= previous
        previous = ws.best.func
        np.testing.assert_almost_equal(ws.best.func, corefuncs.Rastrigin().value(ws.best.x), decimal=3)
        assert np.all(np.abs(ws.current.x) <= 5.12 + 1e-5)
    assert 0 <= chain.acceptance_ratio <= 1
    # one evaluation per move, plus the initial one
    np.testing.assert_equal(chain.num_function_evaluations, 1 + 20 * 2 * 4)
    assert ws.best.func < start


def test_advance_is_deterministic() -> None:
    chains = [_make_chain([4.0, -3.0, 2.5], seed=42) for _ in range(2)]
    for chain in chains:
        for _ in range(10):
            chain.advance()
    for name in ["current", "best"]:
        points = [getattr(c.workspace, name) for c in chains]
        testing.assert_bitwise_equal(points[0].x, points[1].x)
        np.testing.assert_equal(points[0].func, points[1].func)


def _fake_search(status: LocalSearchStatus, coordinates: tp.ArrayLike) -> chainlib.LocalSearchCallable:
    def search(value_and_gradient: tp.ValueAndGradient, x: np.ndarray) -> tp.Tuple[LocalSearchStatus, float]:
        if status.is_hard_failure:
            return status, float("nan")
        x[:] = coordinates
        return status, value_and_gradient(x, np.zeros_like(x))

    return search


def test_local_search_success() -> None:
    chain = _make_chain([1.0, 2.0])
    ws = chain.workspace
    status = chain.local_search(_fake_search(LocalSearchStatus.SUCCESS, [0.0, 1.0]))
    assert status is LocalSearchStatus.SUCCESS
    np.testing.assert_array_equal(ws.current.x, [0, 1])
    np.testing.assert_almost_equal(ws.current.func, 1.0)
    np.testing.assert_array_equal(ws.best.x, [0, 1])
    np.testing.assert_almost_equal(ws.best.func, 1.0)


@testing.parametrized(
    worse=([1.5, 2.0], False),
    better=([0.0, 2.0], True),
)
def test_local_search_soft_failure(coordinates: tp.List[float], committed: bool) -> None:
    chain = _make_chain([1.0, 2.0])
    ws = chain.workspace
    status = chain.local_search(_fake_search(LocalSearchStatus.MAXIMUM_ITERATIONS, coordinates))
    assert status.is_soft_failure
    np.testing.assert_array_equal(ws.current.x, coordinates if committed else [1, 2])
    assert ws.best.func <= ws.current.func


def test_local_search_hard_failure() -> None:
    chain = _make_chain([1.0, 2.0])
    ws = chain.workspace
    func = ws.current.func
    status = chain.local_search(_fake_search(LocalSearchStatus.INVALID_VALUE, [0.0, 0.0]))
    assert status.is_hard_failure
    np.testing.assert_array_equal(ws.current.x, [1, 2])
    np.testing.assert_equal(ws.current.func, func)
    np.testing.assert_equal(ws.best.func, func)


class _ZeroRandom:
    """Generator whose uniform draws are always 0"""

    def __init__(self) -> None:
        self.num_draws = 0

    def random(self) -> float:
        self.num_draws += 1
        return 0.0


def test_accept_null_probability() -> None:
    chain = _make_chain([1.0, 2.0], q_A=-5.0)
    rng = _ZeroRandom()
    chain._rng = rng  # type: ignore
    _, t_A = chain.temperatures()
    assert not chain._accept(10 * t_A, t_A)  # factor <= 0
    np.testing.assert_equal(rng.num_draws, 0)
    assert chain._accept(0.0, t_A)  # probability 1
    np.testing.assert_equal(rng.num_draws, 1)
    assert chain._accept(-1.0, t_A)  # downhill
    np.testing.assert_equal(rng.num_draws, 1)
