# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Tsallis visiting distribution of generalized simulated annealing.

The sampling procedure and the closed-form density follow
Thomas Schanze, "An exact D-dimensional Tsallis random number generator
for generalized simulated annealing", 2006.
"""

import math
import numpy as np
from scipy import special
import dualannealing.common.typing as tp


# visits are clipped to this magnitude (a vanishing Gamma variate would yield an infinite step)
TAIL_LIMIT = 1.0e8


class SamplerParam(tp.NamedTuple):
    """Parameters of the visiting distribution

    q_V: visiting distribution shape parameter
    t_V: visiting temperature
    s: precomputed scale factor, derived from q_V and t_V
    """

    q_V: float
    t_V: float
    s: float


def get_s(q_V: float, t_V: float) -> float:
    return math.sqrt(2.0 * (q_V - 1.0)) / t_V ** (1.0 / (3.0 - q_V))


def get_shape(q_V: float) -> float:
    """Shape of the Gamma distribution used to draw the visiting scale"""
    return (3.0 - q_V) / (2.0 * (q_V - 1.0))


def make_param(q_V: float, t_V: float) -> SamplerParam:
    assert 1.0 < q_V < 3.0, "`q_V` must be in (1, 3)"
    assert t_V > 0, "`t_V` must be positive"
    return SamplerParam(float(q_V), float(t_V), get_s(q_V, t_V))


def _visit(normal: tp.Any, scale: tp.Any) -> tp.Any:
    with np.errstate(divide="ignore", invalid="ignore"):
        visit = np.divide(normal, scale)
    visit = np.nan_to_num(visit, nan=0.0, posinf=TAIL_LIMIT, neginf=-TAIL_LIMIT)
    return np.clip(visit, -TAIL_LIMIT, TAIL_LIMIT).astype(np.float32)


class TsallisSampler:
    """Visiting distribution parameterized by (q_V, t_V).

    Parameters
    ----------
    q_V: float
        shape parameter, in the open interval (1, 3). Heavier tails for q_V close to 3.
    t_V: float
        visiting temperature, strictly positive

    Note
    ----
    Random variates are drawn from a numpy.random.Generator provided at each call,
    the sampler itself holds no random state.
    """

    def __init__(self, q_V: float, t_V: float) -> None:
        self._param = make_param(q_V, t_V)
        self._shape = get_shape(self._param.q_V)

    @property
    def param(self) -> SamplerParam:
        return self._param

    @property
    def shape(self) -> float:
        return self._shape

    def set_param(self, q_V: float, t_V: float) -> None:
        """Updates the parameters. The Gamma shape only depends on q_V
        and is recomputed only if q_V changed.
        """
        param = make_param(q_V, t_V)
        if param.q_V != self._param.q_V:
            self._shape = get_shape(param.q_V)
        self._param = param

    def _scale(self, rng: np.random.Generator, size: tp.Optional[int] = None) -> tp.Any:
        u = rng.standard_gamma(self._shape, size)
        return self._param.s * np.sqrt(u)

    def draw_scalar(self, rng: np.random.Generator) -> np.float32:
        """Draws a visit along a single axis"""
        y = self._scale(rng)
        return _visit(rng.standard_normal(), y)  # type: ignore

    def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
        """Draws size independent visits (each one with its own scale),
        equivalent to size calls to draw_scalar.
        """
        y = self._scale(rng, size)
        return _visit(rng.standard_normal(size), y)  # type: ignore

    def draw_many(self, rng: np.random.Generator) -> tp.Callable[..., tp.Any]:
        """Draws the scale once and returns a generator of N(0, 1/y) variates
        sharing this scale, to be used for perturbing all coordinates of a point at once.

        Returns
        -------
        callable
            draw(size=None) returns a float32 visit, or an array of size visits
        """
        y = self._scale(rng)

        def draw(size: tp.Optional[int] = None) -> tp.Any:
            return _visit(rng.standard_normal(size), y)

        return draw

    def exact_log_density(self, dimension: int) -> tp.Callable[[tp.ArrayLike], tp.Any]:
        """Logarithm of the D-dimensional visiting density (Schanze 2006, eq. 2)
        For dimension 1, the returned function is evaluated elementwise. Otherwise
        the last axis of its input holds the coordinates.
        """
        assert dimension > 0
        q_V, t_V, _ = self._param
        exponent = 1.0 / (q_V - 1.0) + (dimension - 1.0) / 2.0
        log_norm = (
            0.5 * dimension * math.log((q_V - 1.0) / math.pi)
            + special.gammaln(exponent)
            - special.gammaln(1.0 / (q_V - 1.0) - 0.5)
            - dimension / (3.0 - q_V) * math.log(t_V)
        )
        width = t_V ** (2.0 / (3.0 - q_V))

        def log_density(x: tp.ArrayLike) -> tp.Any:
            x = np.asarray(x, dtype=np.float64)
            r2 = x ** 2 if dimension == 1 else np.sum(x ** 2, axis=-1)
            return log_norm - exponent * np.log1p((q_V - 1.0) * r2 / width)

        return log_density

    def exact_density(self, dimension: int) -> tp.Callable[[tp.ArrayLike], tp.Any]:
        """Closed-form D-dimensional visiting density, for validation only
        """
        log_density = self.exact_log_density(dimension)
        return lambda x: np.exp(log_density(x))


def histogram_log_density(
    samples: np.ndarray, bins: int = 400, low: float = -100.0, high: float = 100.0
) -> tp.Tuple[np.ndarray, np.ndarray]:
    """Empirical log-density of 1-dimensional samples, for comparison with
    the exact density of the sampler.

    Parameters
    ----------
    samples: np.ndarray
        drawn samples (samples outside [low, high] are counted in the normalization only)
    bins: int
        number of bins in [low, high]
    low: float
        lower bound of the histogram
    high: float
        upper bound of the histogram

    Returns
    -------
    np.ndarray
        centers of the bins
    np.ndarray
        log of the estimated density in each bin (-inf for empty bins)
    """
    samples = np.asarray(samples)
    assert samples.size, "No sample provided"
    counts, edges = np.histogram(samples, bins=bins, range=(low, high))
    width = (high - low) / bins
    with np.errstate(divide="ignore"):
        log_density = np.log(counts / (samples.size * width))
    return 0.5 * (edges[1:] + edges[:-1]), log_density
