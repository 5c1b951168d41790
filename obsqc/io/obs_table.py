"""obsqc.io.obs_table

Observation tables on disk and their partition-local in-memory form.

Table layout (CSV, one row per location)
- ``<var>@ObsValue`` and ``<var>@ObsError`` for every observed variable (required)
- ``<var>@PreQC`` initial flag (optional, default 0 = pass)
- H(x) tables carry ``<var>@HofX``; rows align with the observation table.

Empty cells are read as missing and replaced by the dtype sentinel, so the
QC layer only ever compares against sentinels.

Partitioning splits rows into ``size`` contiguous, disjoint blocks
(``numpy.array_split``); rank ``r`` keeps block ``r``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd
from loguru import logger

from obsqc.core.comm import Communicator, SerialCommunicator
from obsqc.core.constants import (
    GROUP_EFFECTIVE_QC,
    GROUP_HOFX,
    GROUP_OBS_ERROR,
    GROUP_OBS_VALUE,
    GROUP_PRE_QC,
    GROUP_SEP,
)
from obsqc.obs.space import ObsDataVector, ObsSpace
from obsqc.util.missing import fill_missing


def column(variable: str, group: str) -> str:
    return f"{variable}{GROUP_SEP}{group}"


@dataclass
class ObsPartition:
    """Everything a QC run needs for one partition."""

    obsspace: ObsSpace
    flags: ObsDataVector
    obserr: ObsDataVector
    rows: np.ndarray  # row positions of this partition in the full table


def partition_rows(nrows: int, rank: int, size: int) -> np.ndarray:
    """Row positions owned by ``rank`` out of ``size`` contiguous blocks."""
    if not 0 <= rank < size:
        raise ValueError(f"rank {rank} outside communicator of size {size}")
    return np.array_split(np.arange(int(nrows)), size)[rank]


def _require_columns(df: pd.DataFrame, cols: Sequence[str], source: str) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns in {source}: {missing}")


def _group_matrix(df: pd.DataFrame, variables: Sequence[str], group: str, dtype) -> np.ndarray:
    cols = [column(v, group) for v in variables]
    if not cols:
        return np.empty((0, len(df)), dtype=dtype)
    return fill_missing(df[cols].to_numpy(dtype=float).T, dtype=dtype)


def partition_from_frame(
    df: pd.DataFrame,
    obstype: str,
    variables: Sequence[str],
    comm: Communicator | None = None,
    source: str = "<frame>",
) -> ObsPartition:
    """Build the partition of ``comm.rank`` from a full observation table."""
    comm = comm or SerialCommunicator()
    variables = list(variables)
    _require_columns(
        df,
        [column(v, g) for v in variables for g in (GROUP_OBS_VALUE, GROUP_OBS_ERROR)],
        source,
    )

    rows = partition_rows(len(df), comm.rank, comm.size)
    part = df.iloc[rows]

    values = ObsDataVector(variables, _group_matrix(part, variables, GROUP_OBS_VALUE, np.float32), obstype)
    obserr = ObsDataVector(variables, _group_matrix(part, variables, GROUP_OBS_ERROR, np.float32), obstype)
    if all(column(v, GROUP_PRE_QC) in part.columns for v in variables):
        flags = ObsDataVector(variables, _group_matrix(part, variables, GROUP_PRE_QC, np.int32), obstype)
    else:
        flags = ObsDataVector.full(variables, len(part), 0, np.int32, obstype)

    obsspace = ObsSpace(obstype=obstype, variables=variables, obs_values=values, comm=comm)
    logger.debug(
        "{}: rank {}/{} holds {} of {} location(s) from {}",
        obstype, comm.rank, comm.size, len(rows), len(df), source,
    )
    return ObsPartition(obsspace=obsspace, flags=flags, obserr=obserr, rows=rows)


def read_obs_partition(
    csv_path: Path | str,
    obstype: str,
    variables: Sequence[str],
    comm: Communicator | None = None,
) -> ObsPartition:
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"Observation table not found: {csv_path}")
    df = pd.read_csv(csv_path)
    return partition_from_frame(df, obstype, variables, comm=comm, source=str(csv_path))


def hofx_from_frame(df: pd.DataFrame, variables: Sequence[str], rows: np.ndarray, source: str = "<frame>") -> np.ndarray:
    """Flat, location-major H(x) vector for the given rows.

    Entry ``nvars * jloc + jvar`` holds variable ``jvar`` at local location ``jloc``.
    """
    cols = [column(v, GROUP_HOFX) for v in variables]
    _require_columns(df, cols, source)
    part = df.iloc[rows]
    # rows are locations, columns variables: C-order ravel is location-major
    return fill_missing(part[cols].to_numpy(dtype=float), dtype=np.float64).ravel()


def read_hofx(csv_path: Path | str, variables: Sequence[str], rows: np.ndarray) -> np.ndarray:
    csv_path = Path(csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"H(x) table not found: {csv_path}")
    return hofx_from_frame(pd.read_csv(csv_path), variables, rows, source=str(csv_path))


def flags_to_frame(flags: ObsDataVector, rows: np.ndarray | None = None) -> pd.DataFrame:
    """One row per location with ``<var>@EffectiveQC`` columns."""
    data = {column(v, GROUP_EFFECTIVE_QC): flags.data[jv] for jv, v in enumerate(flags.variables)}
    index = pd.Index(rows if rows is not None else np.arange(flags.nlocs), name="location")
    return pd.DataFrame(data, index=index)


def write_flags(flags: ObsDataVector, out_path: Path | str, rows: np.ndarray | None = None) -> Path:
    """Write flags as CSV (atomic replace)."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = out_path.with_suffix(out_path.suffix + ".tmp")
    flags_to_frame(flags, rows).to_csv(tmp)
    tmp.replace(out_path)
    return out_path
