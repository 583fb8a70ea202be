"""Run-wide configuration injected into the graph importer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from common.config.env import get_env_bool, get_env_float, get_env_int, get_env_str
from graph_import.error_classification import (
    DEFAULT_TRANSIENT_POLICY,
    TransientFailurePolicy,
    transient_policy_for_provider,
)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 2.0
DEFAULT_ERROR_RECORDS_DIR = "error_records"


@dataclass(frozen=True)
class ImporterConfig:
    """Settings read once per migration run.

    Attributes:
        cdc: Link edges incrementally from newly arrived rows.
        write_error_records: Spill the records of a failed vertex batch to disk.
        error_records_dir: Directory receiving spilled error records.
        max_retries: Retries after a transient failure (attempts = retries + 1).
        retry_backoff_seconds: Fixed sleep between attempts.
        transient_policy: Signatures of retryable connectivity failures.
    """

    cdc: bool = False
    write_error_records: bool = False
    error_records_dir: str = DEFAULT_ERROR_RECORDS_DIR
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    transient_policy: TransientFailurePolicy = field(default=DEFAULT_TRANSIENT_POLICY)

    def __post_init__(self) -> None:
        """Reject negative retry settings."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be non-negative")

    @classmethod
    def from_env(cls, default_provider: Optional[str] = None) -> "ImporterConfig":
        """Build the configuration from ``GRAPH_IMPORT_*`` environment variables.

        Args:
            default_provider: Provider whose transient policy applies when
                ``GRAPH_IMPORT_TARGET_PROVIDER`` is unset. Callers that build a
                concrete backend pass its provider name.
        """
        return cls(
            cdc=bool(get_env_bool("GRAPH_IMPORT_CDC", False)),
            write_error_records=bool(get_env_bool("GRAPH_IMPORT_WRITE_ERROR_RECORDS", False)),
            error_records_dir=get_env_str("GRAPH_IMPORT_ERROR_RECORDS_DIR", DEFAULT_ERROR_RECORDS_DIR),
            max_retries=get_env_int("GRAPH_IMPORT_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            retry_backoff_seconds=get_env_float(
                "GRAPH_IMPORT_RETRY_BACKOFF_SECONDS", DEFAULT_RETRY_BACKOFF_SECONDS
            ),
            transient_policy=transient_policy_for_provider(
                get_env_str("GRAPH_IMPORT_TARGET_PROVIDER", default_provider)
            ),
        )


@dataclass(frozen=True)
class TargetConnectionSettings:
    """Bolt connection settings for the graph target."""

    uri: str
    user: str
    password: str
    database: Optional[str] = None

    @classmethod
    def from_env(cls) -> "TargetConnectionSettings":
        """Read ``GRAPH_TARGET_*`` variables; the URI is required."""
        return cls(
            uri=get_env_str("GRAPH_TARGET_URI", required=True),
            user=get_env_str("GRAPH_TARGET_USER", "neo4j"),
            password=get_env_str("GRAPH_TARGET_PASSWORD", ""),
            database=get_env_str("GRAPH_TARGET_DATABASE"),
        )
