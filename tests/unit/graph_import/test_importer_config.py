"""Tests for importer configuration from the environment."""

import pytest

from graph_import.config import ImporterConfig, TargetConnectionSettings
from graph_import.error_classification import BOLT_TRANSIENT_POLICY, DEFAULT_TRANSIENT_POLICY


def test_defaults():
    """Unset variables fall back to three retries with a two second backoff."""
    config = ImporterConfig.from_env()
    assert config.cdc is False
    assert config.write_error_records is False
    assert config.max_retries == 3
    assert config.retry_backoff_seconds == 2.0
    assert config.transient_policy is DEFAULT_TRANSIENT_POLICY


def test_reads_env(monkeypatch):
    """Every GRAPH_IMPORT_* variable is honored."""
    monkeypatch.setenv("GRAPH_IMPORT_CDC", "yes")
    monkeypatch.setenv("GRAPH_IMPORT_WRITE_ERROR_RECORDS", "1")
    monkeypatch.setenv("GRAPH_IMPORT_ERROR_RECORDS_DIR", "/var/tmp/rejects")
    monkeypatch.setenv("GRAPH_IMPORT_MAX_RETRIES", "5")
    monkeypatch.setenv("GRAPH_IMPORT_RETRY_BACKOFF_SECONDS", "0.5")
    monkeypatch.setenv("GRAPH_IMPORT_TARGET_PROVIDER", "memgraph")

    config = ImporterConfig.from_env()

    assert config.cdc is True
    assert config.write_error_records is True
    assert config.error_records_dir == "/var/tmp/rejects"
    assert config.max_retries == 5
    assert config.retry_backoff_seconds == 0.5
    assert config.transient_policy is BOLT_TRANSIENT_POLICY


def test_invalid_integer_is_rejected(monkeypatch):
    """Malformed numbers fail loudly."""
    monkeypatch.setenv("GRAPH_IMPORT_MAX_RETRIES", "three")
    with pytest.raises(ValueError):
        ImporterConfig.from_env()


def test_negative_retries_are_rejected():
    """The retry budget cannot be negative."""
    with pytest.raises(ValueError, match="max_retries"):
        ImporterConfig(max_retries=-1)


def test_target_settings_require_uri():
    """The target URI has no default."""
    with pytest.raises(KeyError):
        TargetConnectionSettings.from_env()


def test_target_settings_from_env(monkeypatch):
    """Target settings default the user and leave the database unset."""
    monkeypatch.setenv("GRAPH_TARGET_URI", "bolt://graph:7687")
    settings = TargetConnectionSettings.from_env()
    assert settings.uri == "bolt://graph:7687"
    assert settings.user == "neo4j"
    assert settings.password == ""
    assert settings.database is None


def test_default_provider_selects_policy_when_unset():
    """A caller-supplied provider applies only when the variable is unset."""
    assert ImporterConfig.from_env(default_provider="bolt").transient_policy is BOLT_TRANSIENT_POLICY


def test_explicit_provider_overrides_default(monkeypatch):
    """GRAPH_IMPORT_TARGET_PROVIDER wins over the caller default."""
    monkeypatch.setenv("GRAPH_IMPORT_TARGET_PROVIDER", "cubrid")
    config = ImporterConfig.from_env(default_provider="bolt")
    assert config.transient_policy is DEFAULT_TRANSIENT_POLICY
