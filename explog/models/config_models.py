from __future__ import annotations

from dataclasses import dataclass, field

from .record import InputFormats

"""Config dataclasses for the ExpLog export tool.

The loader in explog.config.loader builds these from config/explog.yml after
schema validation. Everything downstream receives them explicitly; no module
reads settings from global state.
"""

SUPPORTED_DB_TYPES = ("postgres", "memory")


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    type: str = "postgres"  # postgres | memory
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None
    sslmode: str | None = None


@dataclass(frozen=True)
class InputConfig:
    """Formats the user types dates and times with inside the note table."""
    date_format: str = "%Y-%m-%d"
    time_format: str = "%H:%M"

    def formats(self) -> InputFormats:
        return InputFormats(date_format=self.date_format, time_format=self.time_format)


@dataclass(frozen=True)
class ExportOptions:
    # False: 行単位コミット (部分コミットあり) / True: バッチ全体を 1 トランザクション
    atomic_upsert: bool = False
    error_log_dir: str = "./logs"


@dataclass(frozen=True)
class ExportConfig:
    """Root configuration object for the export tool."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    input: InputConfig = field(default_factory=InputConfig)
    export: ExportOptions = field(default_factory=ExportOptions)
