"""Configuration loading helpers for CLI entrypoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
    example_file: Optional[Path] = None,
) -> Optional[Path]:
    """Load .env configuration with fallback to user config directory.

    Search order:
    1. .env in the current working directory
    2. ``config_env_file`` (e.g. ~/.config/doclinks/.env)

    If neither exists and a ``.env.example`` ships next to the package, it
    is copied to ``config_env_file`` as a starting point. Returns the file
    that was loaded, if any.
    """
    local_env = cwd / ".env"
    if local_env.is_file():
        load_env(local_env)
        return local_env

    if config_env_file.is_file():
        load_env(config_env_file)
        return config_env_file

    if example_file is None:
        example_file = Path(__file__).parent.parent / ".env.example"

    if example_file.is_file():
        try:
            config_dir.mkdir(parents=True, exist_ok=True)
            copy_file(example_file, config_env_file)
            logging.info(
                "Created config file at %s from .env.example.",
                config_env_file,
            )
            load_env(config_env_file)
            return config_env_file
        except OSError as exc:
            logging.debug("Could not create %s: %s", config_env_file, exc)
    return None
