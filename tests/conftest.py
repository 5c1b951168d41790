"""Pytest configuration and fixtures."""

from __future__ import annotations

import concurrent.futures as cf

import numpy as np
import pytest
from loguru import logger

from obsqc.core.comm import ThreadGroup
from obsqc.obs.space import ObsDataVector, ObsSpace


@pytest.fixture
def make_partition():
    """Factory fixture: (obsspace, flags, obserr) for one partition."""

    def _make(
        values,
        errors,
        flags=None,
        variables=None,
        obstype: str = "radiosonde",
        comm=None,
    ) -> tuple[ObsSpace, ObsDataVector, ObsDataVector]:
        vals = np.atleast_2d(np.asarray(values, dtype=np.float32))
        if variables is None:
            variables = [f"var{i}" for i in range(vals.shape[0])]
        obsspace = ObsSpace.from_arrays(obstype, variables, vals, comm=comm)
        obserr = obsspace.make_obs_errors(np.atleast_2d(errors))
        if flags is None:
            qc = obsspace.make_flags(0)
        else:
            qc = ObsDataVector(variables, np.atleast_2d(np.asarray(flags, dtype=np.int32)), obstype)
        return obsspace, qc, obserr

    return _make


@pytest.fixture
def log_lines():
    """Messages logged at INFO and above while the test runs."""
    lines: list[str] = []
    handler_id = logger.add(lambda msg: lines.append(msg.record["message"]), level="INFO", format="{message}")
    yield lines
    logger.remove(handler_id)


@pytest.fixture
def run_group():
    """Run ``fn(comm)`` once per rank of a ThreadGroup; return results by rank."""

    def _run(size: int, fn):
        group = ThreadGroup(size)
        with cf.ThreadPoolExecutor(max_workers=size) as ex:
            futs = [ex.submit(fn, group.communicator(r)) for r in range(size)]
            return [f.result(timeout=30) for f in futs]

    return _run
