"""
Settings and configuration for musubi.

Values are read from the environment once, at import time.
"""

import os
from pathlib import Path

# Data directory paths
PACKAGE_DIR = Path(__file__).parent
DATA_DIR = PACKAGE_DIR / "data"

# Database path - defaults to data/musubi.db
DEFAULT_DB_PATH = DATA_DIR / "musubi.db"

# Environment variable for custom database path
DB_PATH = Path(os.environ.get("MUSUBI_DB_PATH", DEFAULT_DB_PATH))

# Debug mode
DEBUG = os.environ.get("MUSUBI_DEBUG", "").lower() in ("1", "true", "yes")

# Sudachi dictionary edition ("small", "core" or "full") and split mode
SUDACHI_DICT = os.environ.get("MUSUBI_SUDACHI_DICT", "core")
SPLIT_MODE = os.environ.get("MUSUBI_SPLIT_MODE", "C").upper()

# Longest input the CLI accepts in one call
MAX_INPUT_LENGTH = int(os.environ.get("MUSUBI_MAX_INPUT_LENGTH", "5000"))

# How many tokens on each side the reading-override predicates may inspect
CONTEXT_WINDOW = 2
