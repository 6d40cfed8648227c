from __future__ import annotations

"""Centralized path utilities for the admin core.

These provide absolute `Path` objects to the directories the package reads
settings from and writes logs to, so no module hard-codes relative paths.
"""

from pathlib import Path


# The `garage_admin` package sits one level below the project root
PROJECT_ROOT = Path(__file__).resolve().parents[1]

CONFIG_DIR = PROJECT_ROOT / "config"
LOGS_DIR = PROJECT_ROOT / "logs"
SETTINGS_FILE = CONFIG_DIR / "settings.yaml"
