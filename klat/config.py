"""Settings for the klat CLI.

Sources, lowest to highest precedence:
- built-in defaults,
- YAML file (`--config` or KLAT_CONFIG), values under the top-level `klat` key,
- environment variables (KLAT_DB, KLAT_IMAGES, KLAT_TZ, KLAT_LOG_LEVEL, KLAT_INVALID_DEADLINE),
- command line options.
"""

import os
import logging
from dataclasses import dataclass, fields, replace
from datetime import tzinfo
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from tzlocal import get_localzone

from klat.domain.enums import UrgencyBucket
from klat.domain.errors import ConfigError
from klat.domain.priority import RankingPolicy

INVALID_DEADLINE_BUCKETS = {
    "no_deadline": UrgencyBucket.NO_DEADLINE,
    "overdue": UrgencyBucket.OVERDUE,
    "later": UrgencyBucket.LATER,
}

ENV_VARS = {
    "database": "KLAT_DB",
    "images_dir": "KLAT_IMAGES",
    "timezone": "KLAT_TZ",
    "log_level": "KLAT_LOG_LEVEL",
    "invalid_deadline": "KLAT_INVALID_DEADLINE",
}


@dataclass(frozen=True)
class Settings:
    database: Path | None = None
    images_dir: Path | None = None
    timezone: str | None = None
    log_level: str = "WARNING"
    invalid_deadline: str = "no_deadline"

    def __post_init__(self):
        if self.invalid_deadline not in INVALID_DEADLINE_BUCKETS:
            raise ConfigError(
                f"invalid_deadline must be one of: {', '.join(INVALID_DEADLINE_BUCKETS)}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown log level: {self.log_level}")

    def zone(self) -> tzinfo:
        """User time zone; system local zone when not configured."""
        if not self.timezone:
            return get_localzone()
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigError(f"Unknown time zone: {self.timezone}")

    def ranking_policy(self) -> RankingPolicy:
        return RankingPolicy(invalid_deadline_bucket=INVALID_DEADLINE_BUCKETS[self.invalid_deadline])

    def resolved_images_dir(self) -> Path | None:
        if self.images_dir is not None:
            return self.images_dir
        if self.database is not None:
            return self.database.parent / "images"
        return None

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Applies non-None overrides (e.g. CLI options)."""
        return replace(self, **_coerce({k: v for k, v in overrides.items() if v is not None}))


def _coerce(values: Mapping[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(Settings)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
    result = dict(values)
    for key in ("database", "images_dir"):
        if result.get(key) is not None:
            result[key] = Path(result[key]).expanduser()
    if result.get("log_level") is not None:
        result["log_level"] = str(result["log_level"]).upper()
    return result


def load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    section = data.get("klat", {}) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ConfigError(f"{path}: expected a mapping under 'klat'")
    return section


def load_settings(config_path: Path | None = None, env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    values: dict[str, Any] = {}

    config_path = config_path or (Path(env["KLAT_CONFIG"]) if env.get("KLAT_CONFIG") else None)
    if config_path is not None:
        values.update(load_yaml(Path(config_path)))

    for key, var in ENV_VARS.items():
        if env.get(var):
            values[key] = env[var]

    return Settings(**_coerce(values))
