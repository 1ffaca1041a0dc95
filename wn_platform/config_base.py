# wn_platform/config_base.py
from __future__ import annotations

import copy
import json
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Dict

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config and cache files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in container that mounts /config)
      3) Project root (one level up from this package)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Remote store (PostgREST / Supabase) ---------------------------------
    "supabase": {
        "url": "",                                      # https://<project>.supabase.co ; empty = offline (in-memory remote)
        "anon_key": "",                                 # Public anon key, sent as `apikey`
        "table": "user_media",                          # Watchlist table
        "timeout": 10.0,                                # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for 429/5xx
    },

    # --- Metadata ------------------------------------------------------------
    "tmdb": {
        "api_key": "",                                  # TMDb v3 API key
        "language": "en-US",                            # Result language
        "ttl_hours": 6,                                 # In-process response cache
    },

    # --- Runtime -------------------------------------------------------------
    "runtime": {
        "debug": False,                                 # Verbose DEBUG lines
        "log_level": "info",                            # silent | error | warn | info | debug
        "log_json": "",                                 # Optional JSON-lines log file
    },

    # --- HTTP surface --------------------------------------------------------
    "server": {
        "host": "0.0.0.0",
        "port": 8788,
    },
}

_ENV_OVERRIDES: Dict[str, tuple[str, str]] = {
    "WN_SUPABASE_URL": ("supabase", "url"),
    "WN_SUPABASE_ANON_KEY": ("supabase", "anon_key"),
    "WN_TMDB_API_KEY": ("tmdb", "api_key"),
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging
# ------------------------------------------------------------
def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"

def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json_atomic(p: Path, data: Any) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env(cfg: Dict[str, Any]) -> None:
    for env, (section, key) in _ENV_OVERRIDES.items():
        v = (os.getenv(env) or "").strip()
        if v:
            cfg.setdefault(section, {})[key] = v


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """Read config.json over the defaults; a broken file falls back to defaults."""
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except Exception:
            user_cfg = {}
    if not isinstance(user_cfg, dict):
        user_cfg = {}

    cfg = _deep_merge(DEFAULT_CFG, user_cfg)
    _apply_env(cfg)
    return cfg


def save_config(cfg: Dict[str, Any]) -> None:
    write_json_atomic(_cfg_file(), dict(cfg or {}))
