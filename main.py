#!/usr/bin/env python
"""
MultiSearch - Main Entry Point
Runs a hyperparameter search for a scikit-learn estimator as described by a JSON configuration.
"""
import sys
import logging
import argparse
import traceback
import random
from pathlib import Path

import numpy as np

# Core Infrastructure
from multisearch.config_manager import ConfigurationManager
from multisearch.logging_config import LoggingConfigurator
from multisearch.data_manager import Dataset
from multisearch.model_factory import ModelFactory
from multisearch.search_engine import SearchEngine
from multisearch.setup_generator import parameter_from_config
from multisearch.utils.exceptions import MultiSearchException


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="MultiSearch - Hyperparameter search with grid zoom and random search",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.json",
        help="Path to the configuration JSON file"
    )

    parser.add_argument(
        "--schema",
        type=str,
        default="config/schema.json",
        help="Path to the configuration JSON schema"
    )

    parser.add_argument(
        "--run-id",
        type=str,
        default=None,
        help="Optional run identifier (defaults to timestamp if not provided)"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and data without running the search"
    )

    return parser.parse_args(argv)


def setup_global_determinism(config: dict, logger: logging.Logger):
    """
    Seed the global random generators for libraries that fall back on them.
    """
    seed = config.get('search', {}).get('seed', 1)
    logger.info(f"Setting Global Deterministic Seed: {seed}")
    random.seed(seed)
    np.random.seed(seed)


def setup_run_directory(config: dict, run_id: str, logger: logging.Logger) -> Path:
    """
    Create the run directory: '<base_results_dir>/<run_id>'.
    """
    base_results_dir = config.get('outputs', {}).get('base_results_dir', 'results')
    run_dir = (Path(base_results_dir) / run_id).absolute()
    run_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Created run directory: {run_dir}")
    return run_dir


def load_data(config: dict, logger: logging.Logger):
    """Load training (and optional test) data."""
    data_cfg = config['data']
    task = data_cfg.get('task')
    if task is None and ModelFactory.is_classifier(config['model']['name']):
        task = 'classification'

    train = Dataset.from_file(data_cfg['file_path'], data_cfg['target'], task)
    test = None
    if data_cfg.get('test_file_path'):
        test = Dataset.from_file(data_cfg['test_file_path'], data_cfg['target'], task)
    logger.info(f"Data loaded: {train}" + (f", test: {test}" if test is not None else ""))
    return train, test


def main(argv=None):
    """
    Main orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors, 130 if interrupted)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        print("\n" + "=" * 80)
        print("    MULTISEARCH HYPERPARAMETER SEARCH")
        print("=" * 80 + "\n")

        # 1. Load and validate configuration
        config_manager = ConfigurationManager(config_path=args.config, schema_path=args.schema)
        config = config_manager.load_and_validate()

        if args.verbose:
            config.setdefault('logging', {})['level'] = 'DEBUG'

        # 2. Setup logging
        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('multisearch')
        logger.info(f"Configuration loaded from: {args.config}")

        # 3. Run directory and configuration artifacts
        run_id = args.run_id or config_manager.generate_run_id()
        config_manager.run_id = run_id
        run_dir = setup_run_directory(config, run_id, logger)
        config.setdefault('outputs', {})['base_results_dir'] = str(run_dir)
        config_manager.save_artifacts(str(run_dir))

        setup_global_determinism(config, logger)

        # 4. Data, base model and parameters
        train, test = load_data(config, logger)
        model_cfg = config['model']
        base_model = ModelFactory.create(
            model_cfg['name'], model_cfg.get('params', {}), model_cfg.get('scale_features', False))
        parameters = [parameter_from_config(spec) for spec in config['parameters']]
        logger.info(f"Base model: {base_model!r}")
        for i, param in enumerate(parameters):
            logger.info(f"{i + 1}. parameter: {param!r}")

        if args.dry_run:
            logger.info("Dry run mode: validation complete. Exiting without running the search.")
            print("\n[SUCCESS] Configuration validated successfully.")
            return 0

        # 5. Search
        engine = SearchEngine(config, logger)
        engine.execute(base_model, parameters, train, test)

        logger.info("\n" + "-" * 60)
        logger.info("SEARCH COMPLETED SUCCESSFULLY")
        logger.info("\n" + engine.summary())
        logger.info("-" * 60 + "\n")

        print(f"\n[SUCCESS] Search completed. Results saved to: {run_dir}")
        return 0

    except MultiSearchException as e:
        msg = f"Search Error: {str(e)}"
        print(f"\n[ERROR] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1

    except KeyboardInterrupt:
        print("\n[INTERRUPTED] Search interrupted by user.")
        if logger:
            logger.warning("Search interrupted by user (Ctrl+C)")
        return 130

    except Exception as e:
        msg = f"Unexpected Error: {str(e)}"
        print(f"\n[CRITICAL] {msg}")
        if logger:
            logger.critical(msg, exc_info=True)
        else:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
