from __future__ import annotations
"""
obsqc.util.missing

Missing-value sentinels, one per numeric type.

Floating point arrays use -3.3687953e+38 cast to their own dtype, integer
arrays (QC flags) use -2147483647. Comparisons are exact: a value is missing
only if it equals the sentinel of its dtype. Integer types too narrow for the
sentinel (int8, int16, uint8, ...) have none, so nothing in them is missing.
"""

import numpy as np

FLOAT_MISSING = -3.3687953e38
INT_MISSING = -2147483647


def has_missing_value(dtype) -> bool:
    """True if ``dtype`` can represent its missing-value sentinel."""
    dt = np.dtype(dtype)
    if np.issubdtype(dt, np.floating):
        return True
    if np.issubdtype(dt, np.integer):
        info = np.iinfo(dt)
        return info.min <= INT_MISSING <= info.max
    return False


def missing_value(dtype) -> np.generic:
    """Return the missing-value sentinel for a numpy dtype."""
    dt = np.dtype(dtype)
    if not has_missing_value(dt):
        raise TypeError(f"No missing value defined for dtype {dt}")
    if np.issubdtype(dt, np.floating):
        return dt.type(FLOAT_MISSING)
    return dt.type(INT_MISSING)


def is_missing(values) -> np.ndarray:
    """Boolean mask of entries equal to the sentinel of the array's dtype."""
    arr = np.asarray(values)
    if np.issubdtype(arr.dtype, np.integer) and not has_missing_value(arr.dtype):
        return np.zeros(arr.shape, dtype=bool)
    return arr == missing_value(arr.dtype)


def fill_missing(values, dtype=np.float32) -> np.ndarray:
    """Cast to ``dtype`` and replace NaN with the sentinel (for readers)."""
    arr = np.asarray(values, dtype=float)
    nan = np.isnan(arr)
    out = np.where(nan, 0.0, arr).astype(dtype)
    out[nan] = missing_value(dtype)
    return out
