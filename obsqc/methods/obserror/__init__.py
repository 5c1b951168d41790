"""
Observation-error models: lifecycle contract and handle registry.
"""

from obsqc.methods.obserror.interface import ObsErrorModel, ObsErrorRegistry

__all__ = [
    "ObsErrorModel",
    "ObsErrorRegistry",
]
