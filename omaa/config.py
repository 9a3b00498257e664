"""
Config loader for OMaa.
Reads config.yaml once at startup. All other modules import from here.
${ENV_VAR} references are resolved from the environment after .env is loaded,
so secrets never have to live in the YAML itself.
"""

import logging
import os
import re
from pathlib import Path

import yaml
from dotenv import load_dotenv

load_dotenv()

_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"
_ENV_REF = re.compile(r"\$\{(\w+)\}")

_config: dict | None = None


def _resolve_env_vars(value: str) -> str:
    """Substitute ${ENV_VAR} references; unset variables become ""."""
    return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), value)


def _resolve(obj):
    """Apply _resolve_env_vars to every string inside a parsed YAML tree."""
    if isinstance(obj, dict):
        return {k: _resolve(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_resolve(v) for v in obj]
    if isinstance(obj, str):
        return _resolve_env_vars(obj)
    return obj


def _config_path(path: Path | None = None) -> Path:
    """Explicit path, then $OMAA_CONFIG, then config.yaml at the repo root."""
    if path is not None:
        return Path(path)
    override = os.environ.get("OMAA_CONFIG")
    return Path(override).expanduser() if override else _CONFIG_PATH


def load_config(path: Path | None = None) -> dict:
    """Read, resolve and cache the config. Later calls return the cached dict."""
    global _config
    if _config is not None:
        return _config

    config_path = _config_path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    raw = yaml.safe_load(config_path.read_text()) or {}
    _config = _resolve(raw)
    return _config


def get_config() -> dict:
    return _config if _config is not None else load_config()


def setup_logging(cfg: dict):
    """Configure root logging from the `logging` block of the config."""
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
