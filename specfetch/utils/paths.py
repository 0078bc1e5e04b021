from __future__ import annotations

from pathlib import Path

# Project root (the directory holding the specfetch package)
ROOT = Path(__file__).resolve().parents[2]

# Downloaded documents land here unless --output-dir says otherwise
DEFAULT_OUTPUT_DIR = ROOT / "specifications"

PART_SUFFIX = ".part"
