"""
QC filters and observation-error model contracts.
"""
