"""
config.py — SnapKeep configuration loader.

Load order:
  1. Explicit config_file argument
  2. SNAPKEEP_CONFIG env var
  3. Neither → built-in defaults (no file required)
  4. Validate ranges / orderings → raise ConfigError if malformed

Every core function accepts an optional cfg_obj and falls back to
DEFAULT_CONFIG. There is no mutable module-level config.

Public API:
  load_config(config_file) -> Config
  configure_logging(cfg_obj) -> None
  DEFAULT_CONFIG: Config
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when config.yaml is malformed or holds out-of-range values."""


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_CONFIG_ENV = "SNAPKEEP_CONFIG"
_DATE_ORDERS = ("mdy", "dmy")

_DEFAULT_THRESHOLDS: dict[str, float] = {
    "exact":  0.9,
    "high":   0.7,
    "medium": 0.5,
}


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------

def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Top-level section as a mapping; a bare `name:` key reads as empty."""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"{name} must be a mapping (got {type(section).__name__}).")
    return section


class Config:
    def __init__(
        self,
        data: dict[str, Any] | None = None,
        config_file: Path | None = None,
    ) -> None:
        data = data or {}
        self._data = data
        self.config_file = config_file

        # --- Field extraction ---
        ext = _section(data, "extraction")
        self.default_currency: str = ext.get("default_currency", "USD")
        self.normalize_dates: bool = bool(ext.get("normalize_dates", False))
        self.date_order: str = str(ext.get("date_order", "mdy")).lower()

        # --- Tag classification ---
        tag = _section(data, "tagging")
        self.max_tags: int = tag.get("max_tags", 3)
        self.photo_text_max_chars: int = tag.get("photo_text_max_chars", 50)

        # --- Duplicate detection ---
        sim = _section(data, "similarity")
        self.text_weight: float = float(sim.get("text_weight", 0.7))
        self.name_weight: float = float(sim.get("name_weight", 0.3))
        self.containment_score: float = float(sim.get("containment_score", 0.8))
        self.min_token_chars: int = sim.get("min_token_chars", 3)
        thresholds = {**_DEFAULT_THRESHOLDS, **(sim.get("thresholds") or {})}
        self.exact_threshold: float = float(thresholds["exact"])
        self.high_threshold: float = float(thresholds["high"])
        self.medium_threshold: float = float(thresholds["medium"])

        # --- Query engine ---
        qry = _section(data, "query")
        self.max_references: int = qry.get("max_references", 5)
        self.snippet_before: int = qry.get("snippet_before", 40)
        self.snippet_after: int = qry.get("snippet_after", 60)
        self.snippet_fallback_chars: int = qry.get("snippet_fallback_chars", 80)

        # --- Server ---
        srv = _section(data, "server")
        self.server_host: str = srv.get("host", "0.0.0.0")
        self.server_port: int = srv.get("port", 7860)

        # --- Logging ---
        log = _section(data, "logging")
        self.log_level: str = str(log.get("level", "INFO")).upper()


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def _load_yaml(config_file: Path) -> dict[str, Any]:
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")
    with config_file.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"{config_file.name} must contain a mapping at the top level."
        )
    return data


def _validate(c: Config) -> None:
    if not (c.exact_threshold >= c.high_threshold >= c.medium_threshold):
        raise ConfigError(
            "similarity.thresholds must satisfy exact >= high >= medium "
            f"(got {c.exact_threshold}, {c.high_threshold}, {c.medium_threshold})."
        )
    for name in ("text_weight", "name_weight", "containment_score"):
        value = getattr(c, name)
        if not 0.0 <= value <= 1.0:
            raise ConfigError(f"similarity.{name} must be within [0, 1] (got {value}).")
    if c.date_order not in _DATE_ORDERS:
        raise ConfigError(
            f"extraction.date_order must be one of {_DATE_ORDERS} (got {c.date_order!r})."
        )
    if c.max_tags < 1:
        raise ConfigError(f"tagging.max_tags must be positive (got {c.max_tags}).")
    if c.max_references < 1:
        raise ConfigError(
            f"query.max_references must be positive (got {c.max_references})."
        )


def load_config(config_file: Path | str | None = None) -> Config:
    """
    Load and return a Config instance.

    Args:
        config_file: Explicit path to config.yaml (overrides SNAPKEEP_CONFIG).
                     With neither set, the built-in defaults are returned.
    """
    if config_file is None:
        env = os.environ.get(_CONFIG_ENV)
        config_file = Path(env) if env else None

    if config_file is None:
        cfg_obj = Config({})
    else:
        path = Path(config_file).resolve()
        cfg_obj = Config(_load_yaml(path), path)

    _validate(cfg_obj)
    return cfg_obj


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def configure_logging(cfg_obj: Config | None = None) -> None:
    """Install the root logging handler at the configured level."""
    _cfg = cfg_obj or DEFAULT_CONFIG
    logging.basicConfig(
        level=getattr(logging, _cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

# Read-only fallback used when callers pass no cfg_obj.
DEFAULT_CONFIG: Config = Config({})
