# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Storage of the three states of the annealing chain (current, proposed, best).

All coordinates live in a single float32 allocation owned by a BufferPool, split
into three equally-sized regions each starting on its own cache line.
Points and Workspaces are only views on this allocation: they are invalidated
as soon as the pool reallocates.
"""

import sys
import logging
import threading
import contextlib
import numpy as np
import dualannealing.common.typing as tp
from dualannealing.common import errors


logger = logging.getLogger(__name__)
CACHE_LINE_SIZE = 64  # in bytes
_ITEMSIZE = np.dtype(np.float32).itemsize


def align_up(value: int, alignment: int = CACHE_LINE_SIZE // _ITEMSIZE) -> int:
    """Rounds value up to the next multiple of alignment (a power of 2)"""
    assert alignment > 0 and not alignment & (alignment - 1), "Invalid alignment"
    return (value + alignment - 1) & ~(alignment - 1)


def _allocate(capacity: int) -> np.ndarray:
    """Allocates a float32 array of given capacity, starting on a cache line"""
    nbytes = capacity * _ITEMSIZE + CACHE_LINE_SIZE
    if nbytes > sys.maxsize:
        raise errors.AllocationError(f"Integer overflow when allocating {capacity} float32 values")
    try:
        raw = np.empty(nbytes, dtype=np.uint8)
    except (MemoryError, ValueError) as e:
        raise errors.AllocationError(f"Failed to allocate {nbytes} bytes: {e}") from e
    offset = -raw.ctypes.data % CACHE_LINE_SIZE
    return raw[offset : offset + capacity * _ITEMSIZE].view(np.float32)


class Point:
    """Coordinates x and the objective value func at x (NaN if not evaluated)"""

    __slots__ = ("func", "x")

    def __init__(self, x: np.ndarray, func: float = float("nan")) -> None:
        assert x.dtype == np.float32 and x.ndim == 1, f"Expected 1d float32 array, got {x.dtype} {x.shape}"
        self.x = x
        self.func = func

    @property
    def dimension(self) -> int:
        return self.x.size

    def assign(self, other: "Point") -> None:
        """Copies the value and the coordinates of other into this point"""
        assert self is not other, "self-assignment"
        assert self.x.shape == other.x.shape, "incompatible dimensions"
        self.func = other.func
        np.copyto(self.x, other.x)

    def __repr__(self) -> str:
        return f"Point(func={self.func}, x={self.x})"


class Workspace:
    """The three points of the annealing chain.
    best.func <= current.func holds after every step of the chain.
    """

    def __init__(self, current: Point, proposed: Point, best: Point) -> None:
        assert current.dimension == proposed.dimension == best.dimension, "incompatible dimensions"
        self.current = current
        self.proposed = proposed
        self.best = best

    @property
    def dimension(self) -> int:
        return self.current.dimension

    def swap(self) -> None:
        """Exchanges current and proposed points (the views, not their data)"""
        self.current, self.proposed = self.proposed, self.current

    def __repr__(self) -> str:
        return f"Workspace(current={self.current}, proposed={self.proposed}, best={self.best})"


class BufferPool:
    """Owner of the allocation backing a Workspace.

    Parameters
    ----------
    size: int
        initial number of coordinates of each point

    Note
    ----
    - the capacity never decreases, resizing to a smaller size reuses the allocation.
    - the content is zeroed after each resize.
    - a pool must not be shared between threads, and serves one optimization at a time
      (see reserved).
    """

    num_buffers = 3

    def __init__(self, size: int = 0) -> None:
        self._data = np.zeros(0, dtype=np.float32)
        self._capacity = 0
        self._buffer_size = 0
        self.in_use = False
        if size:
            self.resize(size)

    @property
    def capacity(self) -> int:
        """Number of float32 elements in the allocation (all buffers included)"""
        return self._capacity

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def buffer_capacity(self) -> int:
        """Distance between the starts of two consecutive buffers, in float32 elements"""
        return align_up(self._buffer_size)

    def resize(self, size: int) -> None:
        """Makes room for points of dimension size, reallocating only if the
        current capacity is not sufficient.

        Raises
        ------
        AllocationError
            if the allocation fails, in which case the pool is left unchanged
        """
        assert size >= 0, f"Invalid size {size}"
        required_capacity = align_up(size) * self.num_buffers
        if required_capacity > self._capacity:
            self._data = _allocate(required_capacity)
            self._capacity = required_capacity
            logger.debug("Allocated buffers with capacity %s for size %s", required_capacity, size)
        self._buffer_size = size
        self._data.fill(0)

    def buffer(self, index: int) -> np.ndarray:
        assert 0 <= index < self.num_buffers, "index out of bounds"
        start = index * self.buffer_capacity
        return self._data[start : start + self._buffer_size]

    def workspace(self) -> Workspace:
        return Workspace(*(Point(self.buffer(k)) for k in range(self.num_buffers)))

    @contextlib.contextmanager
    def reserved(self) -> tp.Iterator["BufferPool"]:
        """Marks the pool as in use for the duration of the context"""
        assert not self.in_use, "The pool is already used by a running optimization"
        self.in_use = True
        try:
            yield self
        finally:
            self.in_use = False


_thread_data = threading.local()


def thread_local_pool() -> BufferPool:
    """Returns the pool confined to the calling thread, which can be reused
    by successive optimizations run from this thread.
    It is in use (see BufferPool.reserved) while such an optimization is running.
    """
    pool: tp.Optional[BufferPool] = getattr(_thread_data, "pool", None)
    if pool is None:
        pool = BufferPool()
        _thread_data.pool = pool
    return pool


def thread_local_workspace(size: int) -> tp.Optional[Workspace]:
    """Workspace of dimension size from the pool of the calling thread (or from
    a new pool if it is in use), or None if the buffers could not be allocated
    """
    pool = thread_local_pool()
    if pool.in_use:
        pool = BufferPool()
    try:
        pool.resize(size)
    except errors.AllocationError as e:
        logger.warning("Could not acquire a workspace of size %s: %s", size, e)
        return None
    return pool.workspace()
