from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class FetchContext:
    """Where a fetch operation writes: final documents and intermediates."""

    output_dir: Path
    scratch_dir: Path

    def scratch(self, name: str) -> Path:
        """Per-entry working area inside the scratch directory."""
        return self.scratch_dir / name
