from __future__ import annotations
"""
obsqc.core.comm

Purpose
- Collective-communication layer used by the QC summary: every participant
  owns a disjoint partition of the same observation dataset and the report
  sums per-partition tallies into global counts.

Key Behaviors
- ``allreduce_sum`` is a blocking barrier. Every participant must call it the
  same number of times, with vectors of the same length, in the same order.
  There is no timeout; a missing participant blocks the others.
- Counts travel as int64 vectors so one collective carries all tallies of a
  variable.

Implementations
- ``SerialCommunicator``: one process, the reduction is the identity.
- ``MPICommunicator``: wraps an mpi4py communicator (``COMM_WORLD`` by default).
- ``ThreadGroup``/``ThreadCommunicator``: N in-process participants driven by
  threads and a ``threading.Barrier``; lets multi-partition runs be exercised
  without an MPI launcher.
"""

import threading
from typing import Any, List, Optional, Protocol, Tuple

import numpy as np
from loguru import logger


class Communicator(Protocol):
    """Interface the QC layer depends on."""

    @property
    def rank(self) -> int: ...

    @property
    def size(self) -> int: ...

    def allreduce_sum(self, values) -> np.ndarray: ...

    def abort(self, code: int = 1) -> None: ...


def _as_counts(values) -> np.ndarray:
    return np.ascontiguousarray(np.asarray(values, dtype=np.int64).ravel())


class SerialCommunicator:
    """Single participant; reductions return a copy of the input."""

    rank = 0
    size = 1

    def allreduce_sum(self, values) -> np.ndarray:
        return _as_counts(values).copy()

    def abort(self, code: int = 1) -> None:
        raise SystemExit(code)

    def __repr__(self) -> str:
        return "SerialCommunicator()"


class MPICommunicator:
    """mpi4py-backed communicator (buffer-based ``Allreduce`` with ``MPI.SUM``)."""

    def __init__(self, comm: Any = None):
        from mpi4py import MPI

        self._mpi = MPI
        self._comm = comm if comm is not None else MPI.COMM_WORLD

    @property
    def rank(self) -> int:
        return int(self._comm.Get_rank())

    @property
    def size(self) -> int:
        return int(self._comm.Get_size())

    def allreduce_sum(self, values) -> np.ndarray:
        send = _as_counts(values)
        recv = np.empty_like(send)
        self._comm.Allreduce(send, recv, op=self._mpi.SUM)
        return recv

    def abort(self, code: int = 1) -> None:
        logger.error("Aborting MPI job from rank {} (code={})", self.rank, code)
        self._comm.Abort(code)

    def __repr__(self) -> str:
        return f"MPICommunicator(rank={self.rank}, size={self.size})"


class ThreadGroup:
    """Shared state for ``size`` thread-driven participants.

    Each participant obtains its handle via ``communicator(rank)`` and must
    run in its own thread; a reduction waits until all ``size`` handles have
    contributed.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"ThreadGroup size must be >= 1, got {size}")
        self.size = int(size)
        self._barrier = threading.Barrier(self.size)
        self._slots: List[Optional[np.ndarray]] = [None] * self.size
        self._aborted: Optional[Tuple[int, int]] = None

    def communicator(self, rank: int) -> "ThreadCommunicator":
        if not 0 <= rank < self.size:
            raise ValueError(f"rank {rank} outside group of size {self.size}")
        return ThreadCommunicator(self, rank)

    def _reduce(self, rank: int, values: np.ndarray) -> np.ndarray:
        self._slots[rank] = values
        try:
            self._barrier.wait()
            try:
                total = np.sum(np.stack(self._slots), axis=0)
            finally:
                # second phase: nobody overwrites a slot before everyone has read
                self._barrier.wait()
        except threading.BrokenBarrierError:
            if self._aborted is None:
                raise
            src, code = self._aborted
            raise threading.BrokenBarrierError(f"thread group aborted by rank {src} (code={code})") from None
        return total

    def _abort(self, rank: int, code: int) -> None:
        self._aborted = (rank, code)
        self._barrier.abort()


class ThreadCommunicator:
    """Participant handle within a ``ThreadGroup``."""

    def __init__(self, group: ThreadGroup, rank: int):
        self._group = group
        self._rank = int(rank)

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def size(self) -> int:
        return self._group.size

    def allreduce_sum(self, values) -> np.ndarray:
        return self._group._reduce(self._rank, _as_counts(values))

    def abort(self, code: int = 1) -> None:
        logger.error("Aborting thread group from rank {} (code={})", self._rank, code)
        self._group._abort(self._rank, code)

    def __repr__(self) -> str:
        return f"ThreadCommunicator(rank={self._rank}, size={self.size})"
