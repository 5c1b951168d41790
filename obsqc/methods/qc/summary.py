"""obsqc.methods.qc.summary

Structured QC report: globally reduced counts per bucket and variable.

The text rendering follows the per-variable layout

    QC <obstype> <variable>: <count> <description>.
    QC <obstype> <variable>: <pass> passed out of <total> observations.

where a description line is only written for non-empty rejection buckets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from obsqc.methods.qc.flags import BUCKET_DESCRIPTIONS, BUCKETS, Bucket


@dataclass(frozen=True)
class VariableQCSummary:
    variable: str
    counts: Dict[Bucket, int]
    total: int

    @property
    def passed(self) -> int:
        return int(self.counts.get(Bucket.PASS, 0))

    @property
    def rejected(self) -> int:
        return self.counted - self.passed

    @property
    def counted(self) -> int:
        """Sum over all buckets, ``other`` included."""
        return int(sum(self.counts.get(b, 0) for b in BUCKETS))

    @property
    def is_conserved(self) -> bool:
        return self.counted == self.total

    def lines(self, obstype: str) -> List[str]:
        info = f"QC {obstype} {self.variable}: "
        out = [
            f"{info}{self.counts[b]} {desc}."
            for b, desc in BUCKET_DESCRIPTIONS.items()
            if self.counts.get(b, 0) > 0
        ]
        out.append(f"{info}{self.passed} passed out of {self.total} observations.")
        return out


@dataclass(frozen=True)
class QCSummary:
    obstype: str
    variables: List[VariableQCSummary] = field(default_factory=list)

    def __getitem__(self, variable: str) -> VariableQCSummary:
        for v in self.variables:
            if v.variable == variable:
                return v
        raise KeyError(variable)

    def lines(self) -> List[str]:
        out: List[str] = []
        for v in self.variables:
            out.extend(v.lines(self.obstype))
        return out

    def to_text(self) -> str:
        return "\n".join(self.lines())

    def to_frame(self) -> pd.DataFrame:
        """One row per variable; one column per bucket plus ``total``."""
        rows = []
        for v in self.variables:
            row = {"obstype": self.obstype, "variable": v.variable}
            row.update({b.value: int(v.counts.get(b, 0)) for b in BUCKETS})
            row["total"] = v.total
            rows.append(row)
        columns = ["obstype", "variable", *(b.value for b in BUCKETS), "total"]
        return pd.DataFrame(rows, columns=columns)
