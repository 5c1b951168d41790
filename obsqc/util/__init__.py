"""
Small helpers shared across obsqc (missing-value sentinels).
"""
