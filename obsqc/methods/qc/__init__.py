"""
QC flags: vocabulary, the per-partition flag manager and its summary.
"""

from obsqc.methods.qc.flags import BUCKETS, Bucket, QCFlag, bucket_of, tally_flags
from obsqc.methods.qc.manager import QCManager, make_filter
from obsqc.methods.qc.summary import QCSummary, VariableQCSummary

__all__ = [
    "BUCKETS",
    "Bucket",
    "QCFlag",
    "QCManager",
    "QCSummary",
    "VariableQCSummary",
    "bucket_of",
    "make_filter",
    "tally_flags",
]
