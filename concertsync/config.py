import os
import tomllib
from pathlib import Path
from typing import Any, Optional

_DEFAULT_CONFIG_PATH = Path("config.toml")
_DEFAULT_ENV_PATH = Path("secrets")

# Environment variable -> cfg["secrets"] key
_SECRET_ENV_VARS = {
    "BACHTRACK_API_KEY": "bachtrack_api_key",
    "BANDSINTOWN_APP_ID": "bandsintown_app_id",
    "EVENTBRITE_TOKEN": "eventbrite_token",
    "TICKETMASTER_API_KEY": "ticketmaster_api_key",
    "OPENAI_API_KEY": "openai_api_key",
}

DEFAULT_RETENTION_DAYS = 30
DEFAULT_WINDOW_MONTHS = 6
DEFAULT_DAILY_LIMIT = 200

CLASSICAL_ARTISTS = [
    "New York Philharmonic",
    "Vienna Philharmonic",
    "Berlin Philharmonic",
    "London Symphony Orchestra",
    "Chicago Symphony Orchestra",
    "Boston Symphony Orchestra",
    "Philadelphia Orchestra",
    "Los Angeles Philharmonic",
    "San Francisco Symphony",
    "Metropolitan Opera",
    "Royal Opera House",
]


def load(path: Path = _DEFAULT_CONFIG_PATH, env_path: Path = _DEFAULT_ENV_PATH) -> dict[str, Any]:
    """Load config from TOML (empty if the file is missing), then overlay secrets."""
    cfg: dict[str, Any] = {}
    if path.exists():
        with open(path, "rb") as f:
            cfg = tomllib.load(f)
    _load_env(env_path, cfg)
    return cfg


def _load_env(env_path: Path, cfg: dict) -> None:
    """
    Parse a .env-style file and inject known secrets into the config dict.

    Supported variable names are the keys of _SECRET_ENV_VARS, e.g.
      TICKETMASTER_API_KEY  -> cfg["secrets"]["ticketmaster_api_key"]

    Shell environment variables take precedence over file values.
    """
    _apply_env_vars(cfg)

    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key not in os.environ:
                os.environ[key] = value

    _apply_env_vars(cfg)


def _apply_env_vars(cfg: dict) -> None:
    secrets = cfg.setdefault("secrets", {})
    for env_name, secret_key in _SECRET_ENV_VARS.items():
        if v := os.environ.get(env_name):
            secrets[secret_key] = v


def get_secret(cfg: dict, key: str) -> Optional[str]:
    return cfg.get("secrets", {}).get(key) or None


def get_database_path(cfg: dict) -> Path:
    return Path(cfg.get("database", {}).get("path", "data/concerts.db"))


def get_provider_config(cfg: dict, name: str) -> dict:
    return cfg.get("providers", {}).get(name, {})


def get_enabled_providers(cfg: dict, known: list[str] | tuple[str, ...]) -> list[str]:
    """Return the known provider names not switched off with enabled = false."""
    return [name for name in known if get_provider_config(cfg, name).get("enabled", True)]


def get_sync_settings(cfg: dict) -> dict:
    sync = cfg.get("sync", {})
    return {
        "retention_days": int(sync.get("retention_days", DEFAULT_RETENTION_DAYS)),
        "window_months": int(sync.get("window_months", DEFAULT_WINDOW_MONTHS)),
        "daily_limit": int(sync.get("daily_limit", DEFAULT_DAILY_LIMIT)),
        "artists": list(sync.get("artists", CLASSICAL_ARTISTS)),
    }


def get_tagging_settings(cfg: dict) -> dict:
    tagging = cfg.get("tagging", {})
    return {
        "model": tagging.get("model", "gpt-4o-mini"),
        "max_tags": int(tagging.get("max_tags", 8)),
        "timeout": int(tagging.get("timeout", 30)),
    }
