"""
Search trace and audit log.

The trace is the ordered history of every evaluation (and cache hit) of a
search. The audit log mirrors it as one JSON line per entry on disk; appends
are protected by a file lock so several searches can share one log.
"""

import datetime
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pandas as pd

from multisearch.evaluation.performance import Performance
from multisearch.utils.cache import fingerprint
from multisearch.utils.file_io import NumpyEncoder, file_lock


@dataclass(frozen=True)
class TraceEntry:
    folds: int
    performance: Performance
    cached: bool = False
    settings: Dict[str, object] = field(default_factory=dict)
    group: int = 0


class Trace:
    """Append-only list of trace entries."""

    def __init__(self):
        self._entries: List[TraceEntry] = []

    def append(self, folds: int, performance: Performance, cached: bool = False,
               settings: Optional[Dict[str, object]] = None, group: int = 0) -> TraceEntry:
        entry = TraceEntry(int(folds), performance, cached, dict(settings or {}), group)
        self._entries.append(entry)
        return entry

    def extend(self, other: "Trace") -> None:
        self._entries.extend(other)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[TraceEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TraceEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> TraceEntry:
        return self._entries[index]

    def to_frame(self) -> pd.DataFrame:
        """One row per entry: bookkeeping columns, parameter settings, then all metrics."""
        rows = []
        for i, entry in enumerate(self._entries):
            perf = entry.performance
            row = {
                'trace_index': i,
                'group': entry.group + 1,
                'folds': entry.folds,
                'cached': entry.cached,
                'failed': perf.failed,
                'metric': perf.metric,
                'value': perf.value(),
                'point': str(perf.point),
            }
            for prop, value in entry.settings.items():
                row[f'param_{prop}'] = str(value)
            for metric_id, value in perf.metrics.items():
                row[f'metric_{metric_id}'] = value
            row['error'] = perf.error or ''
            rows.append(row)
        return pd.DataFrame(rows)


class AuditLog:
    """Append-only JSON-lines log, one line per trace entry."""

    def __init__(self, path: Path, logger: Optional[logging.Logger] = None):
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, entry: TraceEntry) -> None:
        perf = entry.performance
        record = {
            'timestamp': datetime.datetime.now().isoformat(),
            'config_hash': fingerprint(json.dumps(entry.settings, sort_keys=True, cls=NumpyEncoder))[:12],
            'group': entry.group + 1,
            'folds': entry.folds,
            'cached': entry.cached,
            'point': list(perf.point),
            'values': entry.settings,
            'metric': perf.metric,
            'value': perf.value(),
            'failed': perf.failed,
        }
        with file_lock(self.path):
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(json.dumps(record, cls=NumpyEncoder) + "\n")

    def read(self) -> List[dict]:
        if not self.path.exists():
            return []
        records = []
        with open(self.path, 'r', encoding='utf-8') as f:
            for line in f:
                if line.strip():
                    records.append(json.loads(line))
        return records
