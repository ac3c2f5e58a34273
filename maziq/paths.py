"""Filesystem locations for maziq."""

import os
from pathlib import Path


def get_state_dir() -> Path:
    """Return the state directory: $MAZIQ_HOME or ~/.config/maziq"""
    if "MAZIQ_HOME" in os.environ:
        return Path(os.environ["MAZIQ_HOME"])
    return Path.home() / ".config" / "maziq"


def get_data_dir() -> Path:
    """Return path to bundled data directory (read-only)."""
    return Path(__file__).parent / "data"


def get_history_path() -> Path:
    """Return path to the install history log.

    Priority:
    1. MAZIQ_HISTORY_FILE environment variable (if set)
    2. <state dir>/install_history.jsonl
    """
    if "MAZIQ_HISTORY_FILE" in os.environ:
        return Path(os.environ["MAZIQ_HISTORY_FILE"])
    return get_state_dir() / "install_history.jsonl"


def get_template_dirs() -> list[Path]:
    """Return template directories in lookup order.

    MAZIQ_TEMPLATES_DIR replaces the search path entirely. Otherwise user
    templates shadow the bundled ones.
    """
    if "MAZIQ_TEMPLATES_DIR" in os.environ:
        return [Path(os.environ["MAZIQ_TEMPLATES_DIR"])]
    return [get_state_dir() / "templates", get_data_dir() / "templates"]
