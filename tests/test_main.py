import json
import logging
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

import main
from multisearch.utils import constants

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "config" / "schema.json"


@pytest.fixture
def run_setup(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    rng = np.random.RandomState(1)
    x = rng.uniform(0, 1, 20)
    pd.DataFrame({'x': x, 'target': 4 * x + 0.05 * rng.randn(20)}).to_csv(tmp_path / "train.csv", index=False)

    config = {
        "data": {"file_path": str(tmp_path / "train.csv"), "target": "target"},
        "model": {"name": "Ridge"},
        "search": {"algorithm": "grid", "num_folds": 2, "seed": 1, "grid": {"max_rounds": 2}},
        "parameters": [{"type": "math", "property": "alpha", "min": -2, "max": 1, "step": 1}],
        "outputs": {"base_results_dir": str(tmp_path / "results")},
        "logging": {"level": "INFO", "log_to_console": False, "log_to_file": True},
    }
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(config))
    yield tmp_path, config_path
    logging.shutdown()
    logging.getLogger().handlers = []


def test_main_runs_search(run_setup):
    tmp_path, config_path = run_setup
    code = main.main(["--config", str(config_path), "--schema", str(SCHEMA_PATH), "--run-id", "run1"])
    assert code == 0

    run_dir = tmp_path / "results" / "run1"
    assert (run_dir / constants.CONFIG_DIR / constants.CONFIG_USED_FILE).exists()
    assert (run_dir / constants.SEARCH_DIR / constants.TRACE_FILE).exists()
    assert (run_dir / constants.SEARCH_DIR / constants.BEST_CONFIGURATION_FILE).exists()
    assert (run_dir / constants.FINAL_MODEL_DIR / constants.FINAL_MODEL_FILE).exists()
    assert (tmp_path / "logs" / constants.LOG_FILE).exists()


def test_main_dry_run(run_setup):
    tmp_path, config_path = run_setup
    code = main.main(["--config", str(config_path), "--schema", str(SCHEMA_PATH),
                      "--run-id", "dry", "--dry-run"])
    assert code == 0
    assert not (tmp_path / "results" / "dry" / constants.SEARCH_DIR).exists()


def test_main_reports_configuration_errors(run_setup):
    tmp_path, config_path = run_setup
    config = json.loads(config_path.read_text())
    config['parameters'][0]['property'] = 'alpah'
    config_path.write_text(json.dumps(config))
    code = main.main(["--config", str(config_path), "--schema", str(SCHEMA_PATH), "--run-id", "bad"])
    assert code == 1


def test_main_missing_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main.main(["--config", str(tmp_path / "none.json"), "--schema", str(SCHEMA_PATH)]) == 1
