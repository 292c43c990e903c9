# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .corefuncs import PeriodicWrap as PeriodicWrap
from .corefuncs import FunctionObjective as FunctionObjective
from .corefuncs import Rastrigin as Rastrigin
from .corefuncs import Sphere as Sphere
from .corefuncs import Ackley as Ackley
from .corefuncs import registry as registry
