# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .base import minimize
from .base import Params
from .base import Result
from .buffers import BufferPool
from .buffers import thread_local_pool
from .chain import Chain
from .localsearch import LocalSearch
from .localsearch import LocalSearchStatus
from .tsallis import TsallisSampler
from . import callbacks
