"""Tests for settings read from the environment."""

import pytest

from script_resume.config import DEFAULT_SUFFIX, EngineSettings
from script_resume.core.models import RemediationAction

ENV_VARS = [
    "SCRIPT_RESUME_STORE",
    "SCRIPT_RESUME_SUFFIX",
    "SCRIPT_RESUME_INTERACTIVE",
    "SCRIPT_RESUME_SCAN",
    "SCRIPT_RESUME_SNAPSHOT_SOURCE",
    "SCRIPT_RESUME_LOCK",
    "SCRIPT_RESUME_REMEDIATION",
    "SCRIPT_RESUME_STALE_DAYS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    """Test settings with no environment variables set."""
    settings = EngineSettings.from_environment()

    assert settings.store_backend == "json"
    assert settings.state_suffix == DEFAULT_SUFFIX
    assert settings.interactive is None
    assert settings.scan_enabled
    assert settings.snapshot_source
    assert settings.use_lock
    assert settings.non_interactive_remediation == RemediationAction.IGNORE
    assert settings.stale_after_days == 7


def test_environment_overrides(clean_env):
    """Test reading every variable."""
    clean_env.setenv("SCRIPT_RESUME_STORE", "MEMORY")
    clean_env.setenv("SCRIPT_RESUME_SUFFIX", ".ckpt")
    clean_env.setenv("SCRIPT_RESUME_INTERACTIVE", "no")
    clean_env.setenv("SCRIPT_RESUME_SCAN", "false")
    clean_env.setenv("SCRIPT_RESUME_SNAPSHOT_SOURCE", "0")
    clean_env.setenv("SCRIPT_RESUME_LOCK", "off")
    clean_env.setenv("SCRIPT_RESUME_REMEDIATION", "mark_ignored")
    clean_env.setenv("SCRIPT_RESUME_STALE_DAYS", "30")

    settings = EngineSettings.from_environment()

    assert settings.store_backend == "memory"
    assert settings.state_suffix == ".ckpt"
    assert settings.interactive is False
    assert not settings.is_interactive
    assert not settings.scan_enabled
    assert not settings.snapshot_source
    assert not settings.use_lock
    assert settings.non_interactive_remediation == RemediationAction.MARK_IGNORED
    assert settings.stale_after_days == 30


def test_invalid_remediation(clean_env):
    """Test an unknown remediation action."""
    clean_env.setenv("SCRIPT_RESUME_REMEDIATION", "shred")

    with pytest.raises(ValueError):
        EngineSettings.from_environment()
