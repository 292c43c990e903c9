# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .common import typing as typing
from .common import errors as errors
from .annealing import minimize as minimize
from .annealing import Params as Params
from .annealing import Result as Result
from .annealing import LocalSearch as LocalSearch
from .annealing import BufferPool as BufferPool
from .annealing import callbacks as callbacks
from . import functions as functions


__all__ = [
    "minimize",
    "Params",
    "Result",
    "LocalSearch",
    "BufferPool",
    "callbacks",
    "functions",
    "errors",
    "typing",
]


__version__ = "0.1.0"
