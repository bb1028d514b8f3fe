"""
config — Loads config.yaml with env var overrides.

Precedence: env vars > config.yaml > defaults
"""
from __future__ import annotations
import os
from pathlib import Path
from dataclasses import dataclass, field
import yaml


@dataclass
class Config:
    # Database
    db_url: str = ""  # empty = use default SQLite path

    # Watchmode catalog API
    api_key: str = ""
    api_url: str = "https://api.watchmode.com/v1/"
    http_timeout: float = 15.0

    # Cache lifetimes (seconds) per request category
    ttl_details: int = 2_592_000   # 30 days
    ttl_episodes: int = 604_800    # 7 days
    ttl_sources: int = 2_592_000   # 30 days
    ttl_search: int = 43_200       # 12 hours

    # Source / region filters applied to streaming links (empty = all)
    enabled_sources: list[int] = field(default_factory=list)
    enabled_regions: list[str] = field(default_factory=list)

    # Exposes the per-request URL log on the API
    debug: bool = False
    log_level: str = "INFO"

    # Web server
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    # Rate limiting (requests per second against Watchmode)
    rate_limit_rps: float = 2.0

    def ttl_for(self, category: str) -> int:
        """Cache lifetime for a request category; unknown categories get the search TTL."""
        return {
            "details": self.ttl_details,
            "seasons": self.ttl_details,
            "episodes": self.ttl_episodes,
            "sources": self.ttl_sources,
            "title_sources": self.ttl_sources,
            "search": self.ttl_search,
        }.get(category, self.ttl_search)


def _split_list(val: str) -> list[str]:
    return [part.strip() for part in val.split(",") if part.strip()]


def load_config(config_path: str | Path | None = None) -> Config:
    """Load config from YAML file, then override with env vars."""
    cfg = Config()

    # 1. Load from YAML if available
    if config_path is None:
        config_path = os.environ.get("SHOWTRACKER_CONFIG", "config.yaml")
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        for key, value in data.items():
            key_norm = key.replace("-", "_")
            if hasattr(cfg, key_norm) and value is not None:
                setattr(cfg, key_norm, value)

    # 2. Override with env vars (SHOWTRACKER_ prefix)
    env_map = {
        "SHOWTRACKER_DB_URL": "db_url",
        "WATCHMODE_API_KEY": "api_key",
        "SHOWTRACKER_API_URL": "api_url",
        "SHOWTRACKER_HTTP_TIMEOUT": "http_timeout",
        "SHOWTRACKER_TTL_DETAILS": "ttl_details",
        "SHOWTRACKER_TTL_EPISODES": "ttl_episodes",
        "SHOWTRACKER_TTL_SOURCES": "ttl_sources",
        "SHOWTRACKER_TTL_SEARCH": "ttl_search",
        "SHOWTRACKER_ENABLED_SOURCES": "enabled_sources",
        "SHOWTRACKER_ENABLED_REGIONS": "enabled_regions",
        "SHOWTRACKER_DEBUG": "debug",
        "SHOWTRACKER_LOG_LEVEL": "log_level",
        "SHOWTRACKER_WEB_HOST": "web_host",
        "SHOWTRACKER_WEB_PORT": "web_port",
        "SHOWTRACKER_RATE_LIMIT": "rate_limit_rps",
    }
    for env_key, attr in env_map.items():
        val = os.environ.get(env_key)
        if val is not None:
            field_type = type(getattr(cfg, attr))
            if field_type == bool:
                setattr(cfg, attr, val.strip().lower() in ("1", "true", "yes", "on"))
            elif field_type == int:
                setattr(cfg, attr, int(val))
            elif field_type == float:
                setattr(cfg, attr, float(val))
            elif field_type == list:
                setattr(cfg, attr, _split_list(val))
            else:
                setattr(cfg, attr, val)

    # YAML may hold a comma-separated string or a single scalar
    for attr in ("enabled_sources", "enabled_regions"):
        val = getattr(cfg, attr)
        if isinstance(val, str):
            setattr(cfg, attr, _split_list(val))
        elif not isinstance(val, (list, tuple)):
            setattr(cfg, attr, [val])

    # YAML and env may both hand us strings for the id filter
    cfg.enabled_sources = [int(s) for s in cfg.enabled_sources]
    cfg.enabled_regions = [str(r).upper() for r in cfg.enabled_regions]
    return cfg
