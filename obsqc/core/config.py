from __future__ import annotations
"""
obsqc.core.config

Purpose
- Read a QC run description (run.yml) and return a validated ``RunConfig``.

Key Behaviors
- YAML is read with the ruamel.yaml safe loader.
- Relative paths are resolved against the YAML's directory.
- ``obs_space.name``, ``obs_space.obsdatain`` and
  ``obs_space.simulated_variables`` are required; everything else has defaults
  (no H(x), a single ``QCmanager`` filter, flags written next to the input).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import ruamel.yaml

from obsqc.core.constants import (
    FILTER_NAME,
    HOFX,
    LOG_LEVEL,
    OBS_DATA_IN,
    OBS_FILTERS,
    OBS_SPACE_BLOCK,
    OBS_SPACE_NAME,
    OUTPUT_BLOCK,
    OUTPUT_FLAGS,
    OUTPUT_SUMMARY,
    QC_MANAGER_FILTER,
    SIMULATED_VARIABLES,
)
from obsqc.io.paths import abspath_relative_to


_yaml = ruamel.yaml.YAML(typ="safe")


def read_yaml_file(p: Path) -> dict:
    with Path(p).open("r", encoding="utf-8") as f:
        return _yaml.load(f) or {}


@dataclass
class RunConfig:
    obstype: str
    variables: List[str]
    obs_path: Path
    flags_path: Path
    hofx_path: Optional[Path] = None
    summary_path: Optional[Path] = None
    filters: List[Dict[str, Any]] = field(default_factory=lambda: [{FILTER_NAME: QC_MANAGER_FILTER}])
    log_level: str = "INFO"


def parse_run_config(cfg: Dict[str, Any], base_dir: Path, source: str = "<dict>") -> RunConfig:
    """Validate a run mapping; paths are resolved against ``base_dir``."""
    obs = cfg.get(OBS_SPACE_BLOCK)
    if not isinstance(obs, dict):
        raise ValueError(f"Missing '{OBS_SPACE_BLOCK}' section in {source}")
    missing = [k for k in (OBS_SPACE_NAME, OBS_DATA_IN, SIMULATED_VARIABLES) if not obs.get(k)]
    if missing:
        raise ValueError(
            f"Missing required key(s) in '{OBS_SPACE_BLOCK}' of {source}: {', '.join(missing)}"
        )

    variables = obs[SIMULATED_VARIABLES]
    if isinstance(variables, str):
        variables = [variables]
    variables = [str(v) for v in variables]
    if len(set(variables)) != len(variables):
        raise ValueError(f"Duplicate entries in '{OBS_SPACE_BLOCK}.{SIMULATED_VARIABLES}' of {source}")

    obs_path = abspath_relative_to(base_dir, obs[OBS_DATA_IN])

    out_cfg = cfg.get(OUTPUT_BLOCK) or {}
    if isinstance(out_cfg, str):
        out_cfg = {OUTPUT_FLAGS: out_cfg}
    flags_out = out_cfg.get(OUTPUT_FLAGS)
    flags_path = (
        abspath_relative_to(base_dir, flags_out)
        if flags_out
        else obs_path.with_name(f"{obs_path.stem}_flags.csv")
    )
    summary_out = out_cfg.get(OUTPUT_SUMMARY)

    filters = cfg.get(OBS_FILTERS)
    if filters is None:
        filters = [{FILTER_NAME: QC_MANAGER_FILTER}]
    if not isinstance(filters, list) or not all(isinstance(f, dict) and f.get(FILTER_NAME) for f in filters):
        raise ValueError(f"'{OBS_FILTERS}' in {source} must be a list of mappings with a '{FILTER_NAME}' key")

    hofx = cfg.get(HOFX)
    return RunConfig(
        obstype=str(obs[OBS_SPACE_NAME]),
        variables=variables,
        obs_path=obs_path,
        flags_path=flags_path,
        hofx_path=abspath_relative_to(base_dir, hofx) if hofx else None,
        summary_path=abspath_relative_to(base_dir, summary_out) if summary_out else None,
        filters=[dict(f) for f in filters],
        log_level=str(cfg.get(LOG_LEVEL) or "INFO").upper(),
    )


def load_run_config(run_yaml: Path | str) -> RunConfig:
    """Read and validate a run YAML file."""
    run_yaml = Path(run_yaml)
    cfg = read_yaml_file(run_yaml)
    if not isinstance(cfg, dict):
        raise ValueError(f"Run configuration {run_yaml} must be a mapping")
    return parse_run_config(cfg, run_yaml.parent, source=str(run_yaml))
