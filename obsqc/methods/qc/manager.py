"""obsqc.methods.qc.manager

Quality-control flag manager for one observation partition.

Lifecycle
- Construction checks dimensions and marks missing data: a cell becomes
  ``missing`` if its flag, ObsValue or ObsError holds the missing sentinel.
  Other existing codes are kept.
- ``post_filter(hofx)`` runs after H(x): cells still at ``pass`` whose H(x)
  is missing become ``Hfailed``. ``hofx`` is flat and location-major,
  ``hofx[nvars * jloc + jvar]``.
- ``report()`` tallies flags per bucket, sums the tallies over all partitions
  (one collective per variable, in variable order) and logs the summary on
  rank 0. ``close()`` (or leaving the ``with`` block) reports once more and
  ends the lifecycle.

The flag vector is the caller's: it is mutated in place and never copied.

Errors
- Dimension mismatches, absent inputs, an H(x) of the wrong length and
  bucket totals that do not match the reduced location count raise
  ``QCContractError``. Missing data never raises.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import numpy as np
from loguru import logger

from obsqc.core.constants import QC_MANAGER_FILTER
from obsqc.core.errors import QCContractError
from obsqc.methods.qc.flags import BUCKETS, QCFlag, tally_flags
from obsqc.methods.qc.summary import QCSummary, VariableQCSummary
from obsqc.obs.space import ObsDataVector, ObsSpace
from obsqc.util.missing import is_missing


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise QCContractError(message)


class QCManager:
    """Initialize, update and summarize QC flags of one partition.

    Parameters
    ----------
    obsdb : ObsSpace
        Partition metadata: observed variables, local ``nlocs``, ObsValue and communicator.
    config : mapping, optional
        Filter configuration; kept for identification only.
    flags : ObsDataVector
        Integer flag table (``nvars x nlocs``), owned by the caller, updated in place.
    obserr : ObsDataVector
        Observation error table (``nvars x nlocs``), read only.
    """

    def __init__(
        self,
        obsdb: ObsSpace,
        config: Optional[Mapping[str, Any]] = None,
        flags: Optional[ObsDataVector] = None,
        obserr: Optional[ObsDataVector] = None,
    ):
        self.config: Dict[str, Any] = dict(config or {})
        logger.trace("QCManager starting {}", self.config)

        _require(obsdb is not None, "QCManager requires an ObsSpace")
        _require(flags is not None, "QCManager requires a QC flag vector")
        _require(obserr is not None, "QCManager requires an observation error vector")

        self.obsdb = obsdb
        self.flags = flags
        self.obserr = obserr
        self.observed = list(obsdb.variables)
        self.state = "constructed"
        self._hofx_applied = 0

        nvars = len(self.observed)
        nlocs = obsdb.nlocs
        _require(flags.nvars == nvars, f"QC flags have {flags.nvars} variables, expected {nvars}")
        _require(flags.nlocs == nlocs, f"QC flags have {flags.nlocs} locations, expected {nlocs}")
        _require(obserr.nvars == nvars, f"ObsError has {obserr.nvars} variables, expected {nvars}")
        _require(obserr.nlocs == nlocs, f"ObsError has {obserr.nlocs} locations, expected {nlocs}")
        _require(
            np.issubdtype(flags.dtype, np.integer),
            f"QC flags must be an integer vector, got {flags.dtype}",
        )

        self._flag_missing_data()
        self.state = "detected"
        logger.trace("QCManager done")

    @property
    def obstype(self) -> str:
        return self.flags.obstype or self.obsdb.obstype

    def _flag_missing_data(self) -> None:
        flags = self.flags.data
        obs = self.obsdb.obs_values.data
        err = self.obserr.data
        _require(obs.shape == flags.shape, f"ObsValue shape {obs.shape} differs from QC flags {flags.shape}")

        bad = is_missing(flags) | is_missing(obs) | is_missing(err)
        flags[bad] = int(QCFlag.MISSING)
        logger.debug("{}: {} cell(s) flagged missing on rank {}", self.obstype, int(bad.sum()), self.obsdb.comm.rank)

    def post_filter(self, hofx) -> None:
        """Flag passing observations whose H(x) is missing as ``Hfailed``.

        ``hofx`` is the flat H(x) vector of this partition, location-major:
        entry ``nvars * jloc + jvar`` belongs to variable ``jvar`` at ``jloc``.
        """
        logger.trace("QCManager postFilter")
        _require(self.state != "closed", "post_filter called on a closed QCManager")

        nvars = len(self.observed)
        nlocs = self.flags.nlocs
        hx = np.asarray(hofx).ravel()
        _require(
            hx.size == nvars * nlocs,
            f"H(x) has {hx.size} values, expected nvars*nlocs = {nvars}*{nlocs}",
        )
        if self._hofx_applied:
            logger.warning("{}: post_filter applied {} time(s) already", self.obstype, self._hofx_applied)

        # [jloc, jvar] -> [jvar, jloc]
        hx_missing = is_missing(hx).reshape(nlocs, nvars).T
        flags = self.flags.data
        failed = (flags == int(QCFlag.PASS)) & hx_missing
        flags[failed] = int(QCFlag.HFAILED)

        self._hofx_applied += 1
        self.state = "marked"
        logger.debug("{}: {} cell(s) flagged H(x) failed on rank {}", self.obstype, int(failed.sum()), self.obsdb.comm.rank)
        logger.trace("QCManager postFilter done")

    def report(self, emit: bool = True) -> QCSummary:
        """Reduce per-bucket counts over all partitions and check conservation.

        Collective: every partition must call this the same number of times.
        Lines are logged on rank 0 only when ``emit`` is set; the returned
        summary holds global counts on every rank.
        """
        comm = self.obsdb.comm
        nlocs = self.flags.nlocs
        per_var = []
        for jv, var in enumerate(self.observed):
            local = tally_flags(self.flags[jv])
            vec = np.array([local[b] for b in BUCKETS] + [nlocs], dtype=np.int64)
            glob = comm.allreduce_sum(vec)
            counts = {b: int(glob[i]) for i, b in enumerate(BUCKETS)}
            summary = VariableQCSummary(variable=var, counts=counts, total=int(glob[-1]))

            if emit and comm.rank == 0:
                for line in summary.lines(self.obstype):
                    logger.info(line)

            _require(
                summary.is_conserved,
                f"QC {self.obstype} {var}: bucket counts sum to {summary.counted}, "
                f"expected {summary.total} observations",
            )
            per_var.append(summary)

        if self.state != "closed":
            self.state = "reported"
        return QCSummary(obstype=self.obstype, variables=per_var)

    def close(self) -> Optional[QCSummary]:
        """Final report; later calls do nothing and return None."""
        if self.state == "closed":
            return None
        logger.trace("QCManager closing")
        summary = self.report()
        self.state = "closed"
        logger.trace("QCManager closed")
        return summary

    def __enter__(self) -> "QCManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            # a failed partition would leave the others waiting in the reduction
            logger.error("{}: QCManager left with {}; final report skipped", self.obstype, exc_type.__name__)
            self.state = "closed"

    def __repr__(self) -> str:
        return f"QCManager(obstype={self.obstype!r}, nvars={len(self.observed)}, nlocs={self.flags.nlocs}, state={self.state})"


FILTERS = {
    QC_MANAGER_FILTER: QCManager,
}


def make_filter(name: str, obsdb: ObsSpace, config=None, flags=None, obserr=None):
    """Construct a registered filter by name."""
    try:
        cls = FILTERS[name]
    except KeyError:
        raise KeyError(f"Unknown obs filter '{name}' (known: {sorted(FILTERS)})") from None
    return cls(obsdb, config, flags, obserr)
