from pathlib import Path

import pytest
from pydantic import ValidationError

from party_starter.runtime import process
from party_starter.runtime.schema import (
    LaunchSettings,
    NoPortAvailable,
    PollPolicy,
    ReadinessOutcome,
    ReadinessResult,
    ServerStartTimeout,
)


def test_poll_policy_defaults():
    policy = PollPolicy()
    assert policy.target_path == "/get-started"
    assert policy.max_attempts == 30
    assert policy.interval == 1.0


def test_poll_policy_adds_leading_slash():
    assert PollPolicy(target_path="health").target_path == "/health"


@pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"interval": -0.5}, {"request_timeout": 0}])
def test_poll_policy_rejects_invalid(kwargs):
    with pytest.raises(ValidationError):
        PollPolicy(**kwargs)


def test_settings_defaults(monkeypatch):
    for name in (
        "PARTY_STARTER_TEMPLATE_DIR",
        "PARTY_STARTER_PACKAGE_MANAGER",
        "PARTY_STARTER_PORT",
        "PARTY_STARTER_HOST",
        "PARTY_STARTER_OPEN_BROWSER",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = LaunchSettings.from_env()
    assert settings.target_dir == Path("my-vibecode-app")
    assert settings.template_dir is None
    assert settings.package_manager == "pnpm"
    assert settings.start_port == 3000
    assert settings.open_browser is True
    assert settings.url_for(3001) == "http://localhost:3001"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("PARTY_STARTER_TEMPLATE_DIR", "/tmp/starter")
    monkeypatch.setenv("PARTY_STARTER_PACKAGE_MANAGER", "npm")
    monkeypatch.setenv("PARTY_STARTER_PORT", "4000")
    monkeypatch.setenv("PARTY_STARTER_HOST", "127.0.0.1")
    monkeypatch.setenv("PARTY_STARTER_OPEN_BROWSER", "no")
    settings = LaunchSettings.from_env()
    assert settings.template_dir == Path("/tmp/starter")
    assert settings.package_manager == "npm"
    assert settings.start_port == 4000
    assert settings.host == "127.0.0.1"
    assert settings.open_browser is False


def test_explicit_values_override_env(monkeypatch):
    monkeypatch.setenv("PARTY_STARTER_PORT", "4000")
    monkeypatch.setenv("PARTY_STARTER_PACKAGE_MANAGER", "npm")
    settings = LaunchSettings.from_env(start_port=5000, package_manager=None)
    assert settings.start_port == 5000
    assert settings.package_manager == "npm"


def test_settings_reject_bad_port(monkeypatch):
    monkeypatch.setenv("PARTY_STARTER_PORT", "70000")
    with pytest.raises(ValidationError):
        LaunchSettings.from_env()


def test_settings_reject_blank_package_manager():
    with pytest.raises(ValidationError):
        LaunchSettings(package_manager="  ")


def test_settings_reject_port_zero():
    with pytest.raises(ValidationError):
        LaunchSettings(start_port=0)


def test_errors_shared_with_process_module():
    assert process.ServerStartTimeout is ServerStartTimeout
    assert process.NoPortAvailable is NoPortAvailable


def test_raise_for_outcome_timed_out():
    result = ReadinessResult(outcome=ReadinessOutcome.TIMED_OUT, port=3001, url="http://localhost:3001/", attempts=30)
    with pytest.raises(ServerStartTimeout, match="after 30 attempts"):
        result.raise_for_outcome()


def test_raise_for_outcome_ready_is_silent():
    result = ReadinessResult(outcome=ReadinessOutcome.READY, port=3001, url="http://localhost:3001/", attempts=1)
    result.raise_for_outcome()
    assert result.ready
