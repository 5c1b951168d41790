"""obsqc: quality-control flag management for partitioned observation data."""
__version__ = "0.1.0"
