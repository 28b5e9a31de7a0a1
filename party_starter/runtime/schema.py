from __future__ import annotations

import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_TARGET_DIR = "my-vibecode-app"
DEFAULT_HEALTH_PATH = "/get-started"
MAX_PORT = 65535


class NoPortAvailable(RuntimeError):
    def __init__(self, start_port: int, max_port: int):
        super().__init__(f"No free port in range {start_port}-{max_port}")
        self.start_port = start_port
        self.max_port = max_port


class ServerStartTimeout(RuntimeError):
    def __init__(self, port: int, attempts: int):
        super().__init__(f"Server on port {port} did not become ready after {attempts} attempts")
        self.port = port
        self.attempts = attempts


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class ReadinessOutcome(str, Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class ProbeAttempt(BaseModel):
    index: int
    ok: bool
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class PollPolicy(BaseModel):
    target_path: str = DEFAULT_HEALTH_PATH
    max_attempts: int = Field(30, ge=1)
    # Seconds between probes.
    interval: float = Field(1.0, ge=0)
    request_timeout: float = Field(2.0, gt=0)

    @field_validator("target_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"


class ReadinessResult(BaseModel):
    outcome: ReadinessOutcome
    port: int
    url: str
    attempts: int
    elapsed: float = 0.0

    @property
    def ready(self) -> bool:
        return self.outcome is ReadinessOutcome.READY

    def raise_for_outcome(self) -> None:
        """Raise ``ServerStartTimeout`` if polling ran out of attempts."""
        if self.outcome is ReadinessOutcome.TIMED_OUT:
            raise ServerStartTimeout(self.port, self.attempts)


class LaunchSettings(BaseModel):
    target_dir: Path = Path(DEFAULT_TARGET_DIR)
    template_dir: Optional[Path] = None
    package_manager: str = "pnpm"
    start_port: int = Field(3000, ge=1, le=MAX_PORT)
    host: str = "localhost"
    open_browser: bool = True
    open_on_timeout: bool = True
    install: bool = True
    poll: PollPolicy = Field(default_factory=PollPolicy)

    @field_validator("package_manager")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("package_manager must not be empty")
        return value

    def url_for(self, port: int) -> str:
        return f"http://{self.host}:{port}"

    @classmethod
    def from_env(cls, **overrides: Any) -> "LaunchSettings":
        """Build settings from PARTY_STARTER_* variables, then apply explicit overrides."""
        values: dict[str, Any] = {}
        template = os.environ.get("PARTY_STARTER_TEMPLATE_DIR")
        if template:
            values["template_dir"] = template
        package_manager = os.environ.get("PARTY_STARTER_PACKAGE_MANAGER")
        if package_manager:
            values["package_manager"] = package_manager
        port = os.environ.get("PARTY_STARTER_PORT")
        if port:
            values["start_port"] = port
        host = os.environ.get("PARTY_STARTER_HOST")
        if host:
            values["host"] = host
        values["open_browser"] = _env_bool("PARTY_STARTER_OPEN_BROWSER", True)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
