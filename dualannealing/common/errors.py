# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

# base classes


class DualAnnealingError(Exception):
    """Base class for error raised by dualannealing"""


class DualAnnealingWarning(Warning):
    pass


# errors
# pylint: disable=too-many-ancestors


class EarlyStopping(StopIteration, DualAnnealingError):
    """Stops the annealing loop if raised from a callback"""


class DualAnnealingValueError(ValueError, DualAnnealingError):
    """Invalid value provided to dualannealing"""


class MissingCapabilityError(TypeError, DualAnnealingError):
    """The objective does not provide a method which is required by the engine"""


class AllocationError(MemoryError, DualAnnealingError):
    """The buffers backing a workspace could not be allocated.
    The optimization is aborted before any state is modified.
    """


# warnings


class DualAnnealingRuntimeWarning(RuntimeWarning, DualAnnealingWarning):
    """Runtime warning raised by dualannealing"""


class LocalSearchFailureWarning(DualAnnealingRuntimeWarning):
    """Local search failed irrecoverably, the run was stopped early"""
