from __future__ import annotations
from pathlib import Path

from obsqc.core.constants import RANK_SUFFIX, RUN_YAML_NAMES

# ---- YAML discovery helpers -------------------------------------------------

def find_run_yaml(run_dir: str | Path) -> Path:
    """Return the run YAML of a directory, or the path itself if it is a file."""
    run_dir = Path(run_dir)
    if run_dir.is_file():
        return run_dir
    for name in RUN_YAML_NAMES:
        p = run_dir / name
        if p.is_file():
            return p
    raise FileNotFoundError(f"Could not find run.yml in {run_dir}")


def abspath_relative_to(base: str | Path, p: str | Path) -> Path:
    """Return absolute path, resolving `p` against `base` if relative."""
    base = Path(base)
    pp = Path(p)
    return pp if pp.is_absolute() else (base / pp)

# ---- Partition output helpers -----------------------------------------------

def partition_path(path: str | Path, rank: int, size: int) -> Path:
    """Per-rank output path: ``flags.csv`` -> ``flags_rank0003.csv`` when size > 1."""
    path = Path(path)
    if size <= 1:
        return path
    return path.with_name(f"{path.stem}{RANK_SUFFIX.format(rank=rank)}{path.suffix}")
