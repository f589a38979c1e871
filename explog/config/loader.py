from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from explog.models.config_models import DatabaseConfig, ExportConfig, ExportOptions, InputConfig

"""Config loader.

Responsibilities:
- Load YAML config (default config/explog.yml)
- Validate against the bundled JSON schema (config_schema.json)
- Apply defaults (postgres engine, %Y-%m-%d / %H:%M input formats, per-row commits)
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/explog.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or unreadable, or the config
            data fails schema validation (missing keys, wrong types, extra keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _check_formats(date_format: str, time_format: str) -> None:
    # strftime 側で壊れる書式は起動時に検出しておく
    for fmt in (date_format, time_format):
        if "%" not in fmt:
            raise ConfigError(f"config validation failed: input format has no directives: {fmt!r}")


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ExportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        type=db_raw.get("type", "postgres"),
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
        sslmode=db_raw.get("sslmode"),
    )

    input_raw = data.get("input") or {}
    input_cfg = InputConfig(
        date_format=input_raw.get("date_format", InputConfig.date_format),
        time_format=input_raw.get("time_format", InputConfig.time_format),
    )
    _check_formats(input_cfg.date_format, input_cfg.time_format)

    export_raw = data.get("export") or {}
    export_opts = ExportOptions(
        atomic_upsert=bool(export_raw.get("atomic_upsert", False)),
        error_log_dir=export_raw.get("error_log_dir", ExportOptions.error_log_dir),
    )
    return ExportConfig(database=db, input=input_cfg, export=export_opts)
