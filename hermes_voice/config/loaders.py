"""
Locating and reading the YAML configuration.

Without an explicit path the first existing file wins:
1. ``$HERMES_CONFIG``
2. ``./config/hermes.yaml`` (running from a checkout)
3. ``$XDG_CONFIG_HOME/hermes-voice/hermes.yaml`` (``~/.config`` when unset)
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

CONFIG_ENV_VAR = "HERMES_CONFIG"
CONFIG_FILENAME = "hermes.yaml"


def user_config_dir() -> Path:
    base = os.getenv("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(base) / "hermes-voice"


def candidate_config_paths(path: Optional[str] = None) -> List[Path]:
    """
    Files to try, in order.

    A path given on the command line or in ``$HERMES_CONFIG`` is the only
    candidate; relative paths are taken from the working directory.
    """
    explicit = path or os.getenv(CONFIG_ENV_VAR)
    if explicit:
        return [Path(explicit).expanduser().resolve()]
    return [
        Path.cwd() / "config" / CONFIG_FILENAME,
        user_config_dir() / CONFIG_FILENAME,
    ]


def find_config_file(path: Optional[str] = None) -> Optional[Path]:
    for candidate in candidate_config_paths(path):
        if candidate.is_file():
            return candidate
    return None


def load_yaml_with_env_expansion(path) -> Dict[str, Any]:
    """
    Parse a YAML mapping after expanding ``${VAR}``/``$VAR`` references.

    Undefined variables are left as written.

    Raises:
        FileNotFoundError: the file does not exist
        yaml.YAMLError: the file is not valid YAML
        ValueError: the top level is not a mapping
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    try:
        data = yaml.safe_load(os.path.expandvars(raw))
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Error parsing {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data
