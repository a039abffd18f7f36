"""httphist core - config loading, variable resolution, errors."""

import logging
import os
import re
from pathlib import Path

import yaml
from dotenv import dotenv_values

logger = logging.getLogger(__name__)

GLOBAL_DIR = Path.home() / ".httphist"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".httphist.yaml",
    ".httphist.yml",
    "httphist.yaml",
    "httphist.yml",
]


# ── Errors ───────────────────────────────────────────────────────────────


class HttpHistError(Exception):
    """Base class for failures reported on the command line."""


class ArgumentError(HttpHistError):
    """Bad command-line input: URL, history index, misplaced flags."""


class StorageError(HttpHistError):
    """Directory creation, file read/write, or short write failures."""


class NetworkError(HttpHistError):
    """The HTTP call itself failed (connection, timeout, transport)."""


class RecordFormatError(HttpHistError):
    """A history record could not be decoded."""


# ── Config ───────────────────────────────────────────────────────────────


def resolve_path(candidates: list[Path]) -> Path | None:
    """Return the first existing path from candidates, else None."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return None


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit --config flag (hard, no fallthrough if missing)
      2. .httphist.yaml (variants) in CWD
      3. ~/.httphist/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file. Returns empty defaults if not found.

    Stores '_config_dir' in the returned dict so relative paths in the
    config (history_dir, env_file) resolve against the config file.
    """
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise StorageError(f"Error reading config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise StorageError(f"Config file {path} must contain a mapping.")
    logger.debug("Loaded config from %s", path)
    return {
        "defaults": data.get("defaults") or {},
        "_config_dir": path.resolve().parent,
    }


def load_env(env_file: str | None, base_dir: str | Path | None = None) -> dict[str, str]:
    """Load .env file and merge with os.environ.

    Values from the .env file take precedence over os.environ.
    """
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir or ".") / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value, env: dict[str, str]):
    """Resolve $VAR and ${VAR} references in a string value.

    Unknown variables are left untouched. Non-strings pass through.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, os.environ.get(var_name, m.group(0)))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def load_settings(config_file: str | None = None) -> dict:
    """Resolve, load and expand config in one go.

    Returns {"defaults": {...}, "_config_dir": ..., "env": {...}} with
    every string default already passed through resolve_value.
    """
    config_path = resolve_config_path(config_file)
    if config_file and config_path is None:
        raise ArgumentError(f"Config file not found: {config_file}")
    config = load_config(config_path)
    defaults = config["defaults"]
    env = load_env(defaults.get("env_file"), config.get("_config_dir"))
    config["defaults"] = {k: resolve_value(v, env) for k, v in defaults.items()}
    config["env"] = env
    return config


def resolve_history_dir(config: dict) -> Path:
    """Return the history directory: config history_dir or ~/.httphist/history."""
    configured = config.get("defaults", {}).get("history_dir")
    if configured:
        p = Path(configured).expanduser()
        config_dir = config.get("_config_dir")
        if not p.is_absolute() and config_dir:
            p = Path(config_dir) / p
        return p
    return GLOBAL_DIR / "history"


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if absent."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Failed to create directory {path}: {e}") from e
    return path
