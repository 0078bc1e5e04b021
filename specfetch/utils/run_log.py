"""
Run log utilities: an append-only JSON Lines file with one record per
manifest entry per run, so a partial failure can be audited afterwards.
"""

import json
import os
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, Iterable, List, Optional


@dataclass
class RunRecord:
    run_id: str
    name: str
    kind: str
    source: str
    status: str  # completed|failed|skipped
    outputs: List[str] = field(default_factory=list)
    started_at: float = 0.0
    finished_at: float = 0.0
    error: Optional[str] = None


class RunLog:
    def __init__(self, path: str):
        self.path = path
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)

    def append(self, rec: RunRecord) -> None:
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(asdict(rec), ensure_ascii=False) + "\n")

    def iter_records(self) -> Iterable[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    continue
