"""
Partition-local observation containers.
"""

from obsqc.obs.space import ObsDataVector, ObsSpace

__all__ = [
    "ObsDataVector",
    "ObsSpace",
]
