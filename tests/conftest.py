"""
Pytest configuration to ensure paths are set up correctly for tests.

Code under src/ imports its siblings as top-level packages
(``from models.rating import ...``), so src/ goes on sys.path.
"""

import os
import sys
from pathlib import Path


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing."""
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Offline-friendly defaults: no database, no AWS credentials needed.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ.setdefault("LOG_LEVEL", "WARNING")
