"""
Path utilities for handling dev vs production (frozen) file locations.

Dev mode: Uses local workspace/ directory
Frozen mode: Uses the per-platform application data directory
"""
from __future__ import annotations

import os
import platform
import sys
from pathlib import Path

APP_DIR_NAME = "Quiz Builder"


def is_frozen() -> bool:
    """Check if running as a frozen (PyInstaller) application."""
    return getattr(sys, 'frozen', False) or hasattr(sys, '_MEIPASS')


def get_app_data_dir() -> Path:
    """
    Get the application data directory for the manifest and page cache.

    Frozen: %LOCALAPPDATA%/Quiz Builder (Windows),
            ~/Library/Application Support/Quiz Builder (macOS),
            $XDG_DATA_HOME/Quiz Builder or ~/.local/share/Quiz Builder (Linux)
    Dev: workspace/
    """
    if not is_frozen():
        return Path.cwd() / "workspace"

    system = platform.system()
    if system == "Windows":
        base = os.environ.get("LOCALAPPDATA", os.environ.get("APPDATA"))
        return Path(base) / APP_DIR_NAME if base else Path.home() / ".quiz_builder"
    if system == "Darwin":
        return Path.home() / "Library/Application Support" / APP_DIR_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    return (Path(xdg) if xdg else Path.home() / ".local/share") / APP_DIR_NAME

