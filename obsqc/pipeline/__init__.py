"""
End-to-end QC drivers.
"""
