"""
obsqc.core.errors

Exceptions for contract violations in the QC layer.

Data conditions (missing values, failed H(x)) are never errors; they end up
as flags. Only broken preconditions reach this module.
"""


class QCContractError(RuntimeError):
    """Fatal precondition or invariant violation (dimensions, conservation, lifecycle)."""
