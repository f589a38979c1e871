"""Domain models for the ExpLog export tool.

This package contains the record, wizard and result models used throughout the
application, plus the configuration dataclasses.
"""

from .config_models import DatabaseConfig, ExportConfig, ExportOptions, InputConfig
from .error_record import ErrorRecord
from .export_result import ExportResult, ExportStatus, UpsertCounters
from .record import ExpLogRecord, InputFormats
from .site import MissingSiteRecord

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ExportConfig",
    "ExportOptions",
    "InputConfig",
    # Processing models
    "ExpLogRecord",
    "InputFormats",
    "MissingSiteRecord",
    "ErrorRecord",
    "ExportResult",
    "ExportStatus",
    "UpsertCounters",
]
