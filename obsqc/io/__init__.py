"""
Observation/H(x) tables on disk and path helpers.
"""
