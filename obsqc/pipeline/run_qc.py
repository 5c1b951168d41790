"""obsqc.pipeline.run_qc

Run the QC flag manager over an observation table.

Steps (per partition)
1) Read this rank's block of the observation table
2) Build the configured filters by name (marks missing data)
3) If an H(x) table is configured, apply ``post_filter`` with its flat vector
4) Write this rank's flags; rank 0 writes the summary CSV if configured
5) Close the filters (final, collective report)

Parallel modes
- default: one process, one partition
- ``--mpi``: one partition per MPI rank (mpi4py, launched with mpiexec)
- ``--partitions N``: N partitions in one process, one thread each; useful to
  check that a table reports the same totals however it is split

Logging
- Uses loguru with a green timestamp format defined in constants.LOGURU_FORMAT.
"""

from __future__ import annotations

import argparse
import concurrent.futures as cf
import sys
import threading
from pathlib import Path
from typing import List, Optional

from loguru import logger

from obsqc.core.comm import Communicator, MPICommunicator, SerialCommunicator, ThreadGroup
from obsqc.core.config import RunConfig, load_run_config
from obsqc.core.constants import FILTER_NAME, LOGURU_FORMAT
from obsqc.core.errors import QCContractError
from obsqc.io.obs_table import read_hofx, read_obs_partition, write_flags
from obsqc.io.paths import find_run_yaml, partition_path
from obsqc.methods.qc.manager import make_filter
from obsqc.methods.qc.summary import QCSummary


def run_partition(cfg: RunConfig, comm: Communicator) -> Optional[QCSummary]:
    """Run every configured filter over the partition of ``comm.rank``.

    Returns the final summary of the last filter (global counts, every rank).
    """
    part = read_obs_partition(cfg.obs_path, cfg.obstype, cfg.variables, comm=comm)
    filters = [
        make_filter(fcfg[FILTER_NAME], part.obsspace, fcfg, part.flags, part.obserr)
        for fcfg in cfg.filters
    ]

    if cfg.hofx_path is not None:
        hofx = read_hofx(cfg.hofx_path, cfg.variables, part.rows)
        for flt in filters:
            flt.post_filter(hofx)

    out = write_flags(part.flags, partition_path(cfg.flags_path, comm.rank, comm.size), part.rows)
    logger.info("[rank {}] Wrote flags: {}", comm.rank, out)

    summary = None
    for flt in filters:
        summary = flt.close()

    if summary is not None and cfg.summary_path is not None and comm.rank == 0:
        cfg.summary_path.parent.mkdir(parents=True, exist_ok=True)
        summary.to_frame().to_csv(cfg.summary_path, index=False)
        logger.info("Wrote QC summary: {}", cfg.summary_path)
    return summary


def _run_group_member(cfg: RunConfig, comm: Communicator) -> Optional[QCSummary]:
    try:
        return run_partition(cfg, comm)
    except threading.BrokenBarrierError:
        raise
    except Exception:
        # release the partitions waiting in a reduction
        comm.abort(1)
        raise


def run_threaded(cfg: RunConfig, partitions: int) -> Optional[QCSummary]:
    """Split the table into ``partitions`` blocks and run them concurrently.

    If a partition fails, the group is aborted and that partition's error is
    re-raised (not the broken-barrier errors of the others).
    """
    group = ThreadGroup(partitions)
    with cf.ThreadPoolExecutor(max_workers=partitions) as ex:
        futs = [ex.submit(_run_group_member, cfg, group.communicator(r)) for r in range(partitions)]
        cf.wait(futs)

    errors = [f.exception() for f in futs if f.exception() is not None]
    if errors:
        root = [e for e in errors if not isinstance(e, threading.BrokenBarrierError)]
        raise (root or errors)[0]
    return futs[0].result()


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="obsqc-run", description="Initialize, update and summarize observation QC flags")
    p.add_argument("--config", required=True, type=Path, help="run.yml (or a directory containing it)")
    p.add_argument("--log-level", default=None, choices=("TRACE", "DEBUG", "INFO", "WARNING", "ERROR"))
    mode = p.add_mutually_exclusive_group()
    mode.add_argument("--mpi", action="store_true", help="One partition per MPI rank (requires mpi4py)")
    mode.add_argument("--partitions", type=int, default=1, help="Number of in-process partitions (default: 1)")
    return p.parse_args(argv)


def cli_main(argv: List[str] | None = None) -> int:
    """CLI entry: configure logger, run QC and map failures to exit codes."""
    args = parse_args(argv)

    logger.remove()
    logger.add(sys.stdout, level=(args.log_level or "INFO"), colorize=True, enqueue=True, format=LOGURU_FORMAT)

    try:
        cfg = load_run_config(find_run_yaml(args.config))
    except Exception as e:
        logger.error(f"Could not load run configuration: {e}")
        return 1

    if args.log_level is None and cfg.log_level != "INFO":
        logger.remove()
        logger.add(sys.stdout, level=cfg.log_level, colorize=True, enqueue=True, format=LOGURU_FORMAT)

    comm: Communicator = SerialCommunicator()
    try:
        if args.mpi:
            comm = MPICommunicator()
            run_partition(cfg, comm)
        elif args.partitions > 1:
            run_threaded(cfg, args.partitions)
        else:
            run_partition(cfg, comm)
    except Exception as e:
        if isinstance(e, QCContractError):
            logger.error(f"QC contract violated: {e}")
        else:
            logger.exception(e)
        # other ranks may be waiting in a reduction
        if comm.size > 1:
            comm.abort(1)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli_main())
