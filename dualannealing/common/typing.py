# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Definitions of some convenient types.
"""
# pylint: disable=unused-import
# structures
from typing import Any as Any
from typing import Type as Type
from typing import TypeVar as TypeVar
from typing import Optional as Optional
from typing import Union as Union

# containers
from typing import Dict as Dict
from typing import Tuple as Tuple
from typing import List as List
from typing import Sequence as Sequence
from typing import NamedTuple as NamedTuple
from typing import MutableMapping as MutableMapping

# iterables
from typing import Iterator as Iterator
from typing import Iterable as Iterable

# others
from typing import Callable as Callable
from typing import Hashable as Hashable
from typing import TYPE_CHECKING as TYPE_CHECKING
from typing_extensions import Protocol
from typing_extensions import runtime_checkable

#
import numpy as _np


ArrayLike = Union[Tuple[float, ...], List[float], _np.ndarray]
Coordinate = Union[float, _np.float32, _np.ndarray]
# (coordinates, value at these coordinates)
CurrentPoint = Tuple[_np.ndarray, float]
# (index of the modified coordinate, new coordinate value)
CoordinateDiff = Tuple[int, float]
RandomLike = Union[None, int, _np.random.Generator]


# %% Protocol definitions for objective typing
# pylint: disable=pointless-statement, unused-argument


@runtime_checkable
class Objective(Protocol):
    """Minimal capability set consumed by the annealing chain"""

    def value(self, x: _np.ndarray) -> float:
        ...

    def wrap(self, x: Coordinate) -> Coordinate:
        ...


@runtime_checkable
class DiffObjective(Objective, Protocol):
    def value_from_diff(self, current: CurrentPoint, diff: CoordinateDiff) -> float:
        ...


@runtime_checkable
class GradientObjective(Objective, Protocol):
    def value_and_gradient(self, x: _np.ndarray, grad: _np.ndarray) -> float:
        ...


ValueAndGradient = Callable[[_np.ndarray, _np.ndarray], float]
