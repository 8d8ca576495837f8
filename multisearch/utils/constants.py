# multisearch/utils/constants.py

# --- Top-Level Result Directories ---
# Sequentially numbered for proper sorting with clear, self-explanatory names

CONFIG_DIR = "01_RunConfiguration"          # Run config, metadata, seeds
SEARCH_DIR = "02_HyperparameterSearch"      # Trace, audit log, best configuration
FINAL_MODEL_DIR = "03_TrainedModel"         # Best configuration retrained on all data

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
TRACE_FILE = "search_trace.parquet"
AUDIT_LOG_FILE = "search_audit.jsonl"
BEST_CONFIGURATION_FILE = "best_configuration.json"
FINAL_MODEL_FILE = "final_model.pkl"
LOG_FILE = "multisearch.log"

# --- Search Defaults ---
DEFAULT_NUM_FOLDS = 2
DEFAULT_NUM_ITERATIONS = 100
DEFAULT_SAMPLE_SIZE_PERCENT = 100.0
DEFAULT_SEED = 1
DEFAULT_MAX_ROUNDS = 5
DEFAULT_MIN_STEP = 1e-6
DEFAULT_MAX_SPACE_SIZE = 100000
