"""Configuration module for the Taproom environment."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from taproom.core.errors import BackendUnavailableError

_DEF_HOME = Path.home() / ".taproom"


def _home_from_env() -> Path:
    return Path(os.environ.get("TAPROOM_HOME", str(_DEF_HOME))).expanduser()


def _optional_float(value: str | None) -> float | None:
    if value is None or value.strip().lower() in ("", "none", "0"):
        return None
    return float(value)


@dataclass
class Settings:
    """Runtime settings for a Taproom session."""
    brew_bin: str = "brew"
    home: Path = field(default_factory=_home_from_env)
    page_size: int = 10
    status_ttl: float = 10.0
    status_history: int = 5
    tombstone_ttl: float = 30.0
    command_timeout: float | None = None
    log_level: str = "INFO"

    @property
    def log_dir(self) -> Path:
        return self.home / "logs"


@dataclass
class BrewEnv:
    """Location of the Homebrew installation."""
    prefix: Path
    cellar: Path
    caskroom: Path


def load_settings() -> Settings:
    """Build settings from defaults and ``TAPROOM_*`` environment variables."""
    env = os.environ
    settings = Settings()

    if "TAPROOM_BREW" in env:
        settings.brew_bin = env["TAPROOM_BREW"]
    if "TAPROOM_PAGE_SIZE" in env:
        settings.page_size = max(1, int(env["TAPROOM_PAGE_SIZE"]))
    if "TAPROOM_STATUS_TTL" in env:
        settings.status_ttl = float(env["TAPROOM_STATUS_TTL"])
    if "TAPROOM_STATUS_HISTORY" in env:
        settings.status_history = max(1, int(env["TAPROOM_STATUS_HISTORY"]))
    if "TAPROOM_TOMBSTONE_TTL" in env:
        settings.tombstone_ttl = float(env["TAPROOM_TOMBSTONE_TTL"])
    if "TAPROOM_COMMAND_TIMEOUT" in env:
        settings.command_timeout = _optional_float(env["TAPROOM_COMMAND_TIMEOUT"])
    if "TAPROOM_LOG_LEVEL" in env:
        settings.log_level = env["TAPROOM_LOG_LEVEL"].upper()

    return settings


def discover_env(settings: Settings) -> BrewEnv:
    """Discover the Homebrew environment.

    Raises:
        BackendUnavailableError: If the ``brew`` binary cannot be executed.
    """
    try:
        output = subprocess.check_output(
            [settings.brew_bin, "--prefix"], text=True, stderr=subprocess.PIPE
        ).strip()
    except FileNotFoundError as e:
        raise BackendUnavailableError(binary=settings.brew_bin) from e
    except subprocess.CalledProcessError as e:
        raise BackendUnavailableError(
            binary=settings.brew_bin,
            context={"returncode": e.returncode, "error": (e.stderr or "").strip()},
        ) from e

    prefix = Path(output)
    return BrewEnv(prefix=prefix, cellar=prefix / "Cellar", caskroom=prefix / "Caskroom")
