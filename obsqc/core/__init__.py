"""
Core plumbing: constants, run configuration, communicators and errors.
"""
