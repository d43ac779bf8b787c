"""Dotenv loading for local configuration.

Files are read in this order, and values already present in the process
environment always win:
- the file named by ENV_FILE, when set
- .env
- .env.dev (only when APP_ENV is dev/development/local)

Production deployments should set real environment variables instead.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

DEV_ENVIRONMENTS = {"dev", "development", "local"}


def is_dev_environment() -> bool:
    return os.environ.get("APP_ENV", "").lower() in DEV_ENVIRONMENTS


def load_env(base_dir: Path | None = None) -> list[Path]:
    """Load dotenv files into the process environment.

    Safe to call more than once.

    Args:
        base_dir: Project root. Defaults to the directory above config/.

    Returns:
        The dotenv files that existed and were loaded.
    """
    if base_dir is None:
        base_dir = Path(__file__).resolve().parent.parent

    candidates: list[Path] = []
    explicit = os.environ.get("ENV_FILE")
    if explicit:
        candidates.append(Path(explicit))
    candidates.append(base_dir / ".env")
    if is_dev_environment():
        candidates.append(base_dir / ".env.dev")

    loaded = []
    for path in candidates:
        if path.is_file():
            load_dotenv(path, override=False)
            loaded.append(path)
    return loaded
