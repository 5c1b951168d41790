"""obsqc.methods.qc.flags

QC flag vocabulary and the reporting buckets built on top of it.

Flag codes are small integers stored per (variable, location). ``pass`` (0)
is the only code meaning "use this observation". The summary groups codes
into a closed set of buckets; GNSS-RO reality-check codes 76 and 77 share one
bucket, and every code without a bucket of its own (``diffref``, ``clw``,
anything introduced upstream) falls into ``other`` so bucket counts always
add up to the number of locations.
"""

from __future__ import annotations

from enum import Enum, IntEnum

import numpy as np


class QCFlag(IntEnum):
    PASS = 0
    MISSING = 1     # missing value in ObsValue, ObsError or flag
    PREQC = 2       # rejected by pre-processing
    BOUNDS = 3      # value out of bounds
    DOMAIN = 4      # not within domain of use
    BLACK = 5       # black-listed
    HFAILED = 6     # H(x) computation failed
    THINNED = 7     # removed by thinning
    DIFFREF = 8     # metadata too far from reference
    CLW = 9         # removed due to cloud field
    FGUESS = 10     # too far from first guess


# GNSS-RO reality check codes reported as one bucket
GNSSRO_REALITY_CODES = (76, 77)


class Bucket(str, Enum):
    PASS = "pass"
    MISSING = "missing"
    PREQC = "preQC"
    BOUNDS = "bounds"
    DOMAIN = "domain"
    BLACK = "black"
    HFAILED = "Hfailed"
    THINNED = "thinned"
    FGUESS = "fguess"
    GNSS_REALITY = "gnssReality"
    OTHER = "other"


# Rejection buckets in report order, with their report text
BUCKET_DESCRIPTIONS: dict[Bucket, str] = {
    Bucket.MISSING: "missing values",
    Bucket.PREQC: "rejected by pre QC",
    Bucket.BOUNDS: "out of bounds",
    Bucket.DOMAIN: "out of domain of use",
    Bucket.BLACK: "black-listed",
    Bucket.HFAILED: "H(x) failed",
    Bucket.THINNED: "removed by thinning",
    Bucket.FGUESS: "rejected by first-guess check",
    Bucket.GNSS_REALITY: "rejected by GNSSRO reality check",
    Bucket.OTHER: "rejected by other QC checks",
}

# Every bucket; the order fixes the layout of the reduction vector
BUCKETS: tuple[Bucket, ...] = (Bucket.PASS,) + tuple(BUCKET_DESCRIPTIONS)

_CODE_BUCKETS: dict[int, Bucket] = {
    int(QCFlag.PASS): Bucket.PASS,
    int(QCFlag.MISSING): Bucket.MISSING,
    int(QCFlag.PREQC): Bucket.PREQC,
    int(QCFlag.BOUNDS): Bucket.BOUNDS,
    int(QCFlag.DOMAIN): Bucket.DOMAIN,
    int(QCFlag.BLACK): Bucket.BLACK,
    int(QCFlag.HFAILED): Bucket.HFAILED,
    int(QCFlag.THINNED): Bucket.THINNED,
    int(QCFlag.FGUESS): Bucket.FGUESS,
}
_CODE_BUCKETS.update({code: Bucket.GNSS_REALITY for code in GNSSRO_REALITY_CODES})


def bucket_of(code: int) -> Bucket:
    """Reporting bucket of a single flag code."""
    return _CODE_BUCKETS.get(int(code), Bucket.OTHER)


def tally_flags(codes) -> dict[Bucket, int]:
    """Count flag codes per bucket (every bucket present, zeros included)."""
    arr = np.asarray(codes).ravel()
    values, counts = np.unique(arr, return_counts=True)
    out = {b: 0 for b in BUCKETS}
    for code, n in zip(values, counts):
        out[bucket_of(code)] += int(n)
    return out
