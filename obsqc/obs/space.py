"""obsqc.obs.space

Partition-local observation containers.

- ``ObsSpace``: metadata of the partition resident on this process
  (observation type, observed variables, local location count, communicator)
  plus the read-only ObsValue table.
- ``ObsDataVector``: a ``nvars x nlocs`` table keyed by variable name. It owns
  its numpy buffer; filters receive the vector itself and mutate it in place,
  so callers keep seeing the updates through their own reference.

Storage layout is row-per-variable: ``vec[jv][jloc]`` / ``vec.data[jv, jloc]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

import numpy as np

from obsqc.core.comm import Communicator, SerialCommunicator


class ObsDataVector:
    """Two-dimensional (variable, location) table backed by a numpy array."""

    def __init__(self, variables: Sequence[str], data: np.ndarray, obstype: str = ""):
        arr = np.asarray(data)
        if arr.ndim != 2:
            raise ValueError(f"ObsDataVector expects 2-D data, got shape {arr.shape}")
        if arr.shape[0] != len(variables):
            raise ValueError(
                f"ObsDataVector rows ({arr.shape[0]}) do not match variables ({len(variables)})"
            )
        self.variables = list(variables)
        self.data = arr
        self.obstype = str(obstype)

    @classmethod
    def full(cls, variables: Sequence[str], nlocs: int, fill, dtype, obstype: str = "") -> "ObsDataVector":
        return cls(variables, np.full((len(variables), int(nlocs)), fill, dtype=dtype), obstype)

    @property
    def nvars(self) -> int:
        return int(self.data.shape[0])

    @property
    def nlocs(self) -> int:
        return int(self.data.shape[1])

    @property
    def dtype(self) -> np.dtype:
        return self.data.dtype

    def __getitem__(self, jv: int) -> np.ndarray:
        return self.data[jv]

    def __repr__(self) -> str:
        return f"ObsDataVector(obstype={self.obstype!r}, nvars={self.nvars}, nlocs={self.nlocs}, dtype={self.dtype})"


@dataclass
class ObsSpace:
    """Metadata and ObsValue table of one observation partition.

    Attributes
    ----------
    obstype : str
        Observation type label used in reports.
    variables : list of str
        Observed (simulated) variables, in order.
    obs_values : ObsDataVector
        ObsValue table, ``nvars x nlocs``; float, missing entries hold the sentinel.
    comm : Communicator
        Communicator spanning every partition of the same dataset.
    """

    obstype: str
    variables: list[str]
    obs_values: ObsDataVector
    comm: Communicator = field(default_factory=SerialCommunicator)

    def __post_init__(self) -> None:
        self.variables = list(self.variables)
        if self.obs_values.variables != self.variables:
            raise ValueError(
                f"ObsValue variables {self.obs_values.variables} differ from observed variables {self.variables}"
            )

    @classmethod
    def from_arrays(
        cls,
        obstype: str,
        variables: Iterable[str],
        values,
        comm: Communicator | None = None,
        dtype=np.float32,
    ) -> "ObsSpace":
        names = list(variables)
        vec = ObsDataVector(names, np.asarray(values, dtype=dtype).reshape(len(names), -1), obstype)
        return cls(obstype=obstype, variables=names, obs_values=vec, comm=comm or SerialCommunicator())

    @property
    def nlocs(self) -> int:
        """Number of locations resident on this partition."""
        return self.obs_values.nlocs

    @property
    def nvars(self) -> int:
        return len(self.variables)

    def make_flags(self, initial=0) -> ObsDataVector:
        """Fresh int32 flag vector for this partition (caller owns it)."""
        return ObsDataVector.full(self.variables, self.nlocs, initial, np.int32, self.obstype)

    def make_obs_errors(self, errors) -> ObsDataVector:
        arr = np.asarray(errors, dtype=np.float32).reshape(self.nvars, self.nlocs)
        return ObsDataVector(self.variables, arr, self.obstype)
