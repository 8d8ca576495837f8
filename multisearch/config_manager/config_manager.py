import json
import os
import hashlib
import sys
import logging
import jsonschema
import psutil  # Required for core-count awareness
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from multisearch.evaluation.metrics import get_metric
from multisearch.setup_generator.parameters import group_parameters, parameter_from_config
from multisearch.setup_generator.setup_generator import SetupGenerator
from multisearch.utils.exceptions import ConfigurationError
from multisearch.utils import constants


class ConfigurationManager:
    """
    Manages system configuration loading, validation, and access.
    Acts as the single source of truth and safety guard for a search run.
    """

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = "config/schema.json"):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Path to the JSON schema definition.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads config, validates schema/logic/resources,
        and propagates seeds.

        Returns:
            Dict[str, Any]: The fully validated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        # 1. Load Files
        self.config = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)

        # 2. Structural Validation (Schema)
        self._validate_schema()

        # 3. Logical Validation (Business Rules & Bounds)
        self._validate_logic()

        # 4. Resource Validation (Space size, execution slots)
        self._validate_resources()

        # 5. Internal Seed Propagation (Reproducibility)
        self._propagate_seeds()

        return self.config

    def generate_run_id(self) -> str:
        """
        Generate or retrieve a unique run identifier based on timestamp.
        Used for directory naming and metadata.
        """
        if not self.run_id:
            timestamp = datetime.now()
            # Format: YYYYMMDD_HHMMSS
            self.run_id = timestamp.strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save configuration artifacts to the run directory for full reproducibility.

        Saves:
        1. config_used.json: The exact config object in memory.
        2. config_hash.txt: SHA256 hash for versioning.
        3. run_metadata.json: Environment details (Python version, Platform, etc.).
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        # 1. Save Config
        with open(config_dir / constants.CONFIG_USED_FILE, 'w') as f:
            json.dump(self.config, f, indent=2)

        # 2. Calculate and Save Hash
        config_str = json.dumps(self.config, sort_keys=True)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()

        with open(config_dir / constants.CONFIG_HASH_FILE, 'w') as f:
            f.write(config_hash)

        # 3. Save Metadata (Environment Capture)
        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': sys.platform,
            'config_hash': config_hash,
            'working_directory': os.getcwd()
        }

        with open(config_dir / constants.RUN_METADATA_FILE, 'w') as f:
            json.dump(metadata, f, indent=2)

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    def _validate_logic(self) -> None:
        """Comprehensive logical validation."""
        # --- Data Section ---
        data = self.config.get('data', {})
        for key in ['file_path', 'target']:
            if not data.get(key):
                raise ConfigurationError(f"Data '{key}' must be specified and non-empty.")

        # --- Search Section ---
        search = self.config.get('search', {})
        if search.get('num_folds', constants.DEFAULT_NUM_FOLDS) < 1:
            raise ConfigurationError(f"num_folds must be >= 1, got {search['num_folds']}.")
        if search.get('metric'):
            get_metric(search['metric'])
        if search.get('seed', constants.DEFAULT_SEED) < 0:
            raise ConfigurationError("Search seed must be non-negative.")

        grid = search.get('grid', {})
        if grid.get('max_rounds', constants.DEFAULT_MAX_ROUNDS) < 1:
            raise ConfigurationError(f"grid.max_rounds must be >= 1, got {grid['max_rounds']}.")
        if grid.get('min_step', constants.DEFAULT_MIN_STEP) <= 0:
            raise ConfigurationError(f"grid.min_step must be > 0, got {grid['min_step']}.")
        max_evaluations = grid.get('max_evaluations')
        if max_evaluations is not None and max_evaluations <= 0:
            raise ConfigurationError(f"grid.max_evaluations must be > 0 when provided, got {max_evaluations}.")

        rnd = search.get('random', {})
        if rnd.get('num_iterations', constants.DEFAULT_NUM_ITERATIONS) < 1:
            raise ConfigurationError(f"random.num_iterations must be >= 1, got {rnd['num_iterations']}.")
        percent = rnd.get('sample_size_percent', constants.DEFAULT_SAMPLE_SIZE_PERCENT)
        if not (0 < percent <= 100):
            raise ConfigurationError(f"random.sample_size_percent must be in (0, 100], got {percent}.")

        # --- Parameters Section ---
        if not self.config.get('parameters'):
            raise ConfigurationError("At least one search parameter must be specified.")
        for i, spec in enumerate(self.config['parameters']):
            try:
                parameter_from_config(spec)
            except ConfigurationError as e:
                raise ConfigurationError(f"Parameter #{i + 1}: {e}") from e

        # Execution validation
        execution = self.config.get('execution', {})
        slots = execution.get('num_execution_slots', 1)
        if slots == 0 or slots < -1:
            raise ConfigurationError(
                f"execution.num_execution_slots must be -1 (all cores) or a positive integer, got {slots}")
        if 'n_jobs' in execution:
            n_jobs = execution['n_jobs']
            if n_jobs == 0 or n_jobs < -1:
                raise ConfigurationError(f"execution.n_jobs must be -1 (all cores) or a positive integer, got {n_jobs}")

    def _validate_resources(self) -> None:
        """
        Validate against system resources.
        Calculates the size of every search space and ensures it fits within safe limits.
        """
        resources = self.config.get('resources', {})

        # 1. Space Explosion Check
        parameters = [parameter_from_config(spec) for spec in self.config['parameters']]
        max_size = resources.get('max_space_size', constants.DEFAULT_MAX_SPACE_SIZE)
        try:
            groups = group_parameters(parameters)
            sizes = [SetupGenerator(group).space().size() for group in groups]
        except ValueError as e:
            raise ConfigurationError(f"Invalid search parameters: {str(e)}")

        for i, size in enumerate(sizes):
            if size > max_size:
                raise ConfigurationError(
                    f"Search Space Explosion Detected! Group #{i + 1} has {size} points, exceeding the "
                    f"safety limit ({max_size}). Reduce the parameter ranges or increase 'resources.max_space_size'."
                )

        # Log the space size for visibility
        logging.info(f"Search space size validated: {sizes} points (Limit: {max_size})")

        # 2. Execution slots (-1 = one per physical core)
        execution = self.config.setdefault('execution', {})
        if execution.get('num_execution_slots', 1) == -1:
            cores = psutil.cpu_count(logical=False) or psutil.cpu_count() or 1
            execution['num_execution_slots'] = cores
            logging.info(f"Using {cores} execution slot(s) (physical cores).")

    def _propagate_seeds(self) -> None:
        """
        Propagate master seed to internal components to ensure full search reproducibility.
        Uses non-overlapping offsets to avoid correlation between components.
        """
        master_seed = self.config.get('search', {}).get('seed', constants.DEFAULT_SEED)

        self.config['_internal_seeds'] = {
            'search': master_seed,
            'cv': master_seed + 1000,
            'subsample': master_seed + 2000,
        }
        logging.debug(f"Seeds propagated from master ({master_seed}): {self.config['_internal_seeds']}")
