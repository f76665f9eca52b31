"""
Load ``.env`` files into the process environment.

The user file (``$XDG_CONFIG_HOME/platsync/.env``) is read first, then the
project's ``.env`` and ``.env.local``; later files win. A variable already
exported in the shell is never replaced, so
``PLATFORM_API_KEY=... platsync platform status`` always takes effect.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from dotenv import dotenv_values

from .loader import get_user_config_dir


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
) -> None:
    if project_dir is None:
        project_dir = Path.cwd()
    if user_env_paths is None:
        user_env_paths = [get_user_config_dir() / ".env"]

    merged: dict[str, str] = {}
    for path in [*user_env_paths, project_dir / ".env", project_dir / ".env.local"]:
        if path.is_file():
            merged.update({k: v for k, v in dotenv_values(path).items() if v is not None})

    for key, value in merged.items():
        os.environ.setdefault(key, value)
