"""Centralized path constants for CongressIQ.

Every file and directory path used by the application is defined here as a
module-level constant. Source files import from this module instead of
constructing ad-hoc ``Path(...)`` literals.

Design rules:
  1. This module imports ONLY ``pathlib.Path`` -- no project imports, no
     config imports, no runtime validation.
  2. No path existence checks at import time.  Callers create directories
     as needed (``mkdir(parents=True, exist_ok=True)``).
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# -- Project Root --
# ---------------------------------------------------------------------------

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
"""Absolute path to the project root directory (one level above ``congressiq/``)."""

# ---------------------------------------------------------------------------
# -- Config Paths --
# ---------------------------------------------------------------------------

CONFIG_DIR: Path = PROJECT_ROOT / "config"
"""Directory containing application configuration files."""

APP_CONFIG_PATH: Path = CONFIG_DIR / "congressiq_config.json"
"""Tunables: resilience, ingestion, search, translation."""

# ---------------------------------------------------------------------------
# -- Output Paths --
# ---------------------------------------------------------------------------

OUTPUTS_DIR: Path = PROJECT_ROOT / "outputs"
"""Top-level output directory for run artifacts."""

LAST_INGEST_PATH: Path = OUTPUTS_DIR / "last_ingest.json"
"""Summary of the most recent bulk ingestion run."""
