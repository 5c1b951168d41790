# Run configuration blocks and keys (run.yml)
OBS_SPACE_BLOCK = "obs_space"
OBS_SPACE_NAME = "name"
OBS_DATA_IN = "obsdatain"
SIMULATED_VARIABLES = "simulated_variables"
HOFX = "hofx"
OBS_FILTERS = "obs_filters"
FILTER_NAME = "filter"
OUTPUT_BLOCK = "output"
OUTPUT_FLAGS = "flags"
OUTPUT_SUMMARY = "summary"
LOG_LEVEL = "log_level"

# Run file names accepted by the discovery helpers
RUN_YAML_NAMES = ("run.yml", "run.yaml")

# Column groups in observation tables (<variable>@<group>)
GROUP_SEP = "@"
GROUP_OBS_VALUE = "ObsValue"
GROUP_OBS_ERROR = "ObsError"
GROUP_PRE_QC = "PreQC"
GROUP_HOFX = "HofX"
GROUP_EFFECTIVE_QC = "EffectiveQC"

# Per-rank output naming when the run spans several partitions
RANK_SUFFIX = "_rank{rank:04d}"

# Filter registered under this name builds a QCManager
QC_MANAGER_FILTER = "QCmanager"

# Logging format (green timestamp | level | message)
LOGURU_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | {message}"
