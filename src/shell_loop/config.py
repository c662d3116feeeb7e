"""Runtime configuration for the loop command."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from shell_loop.engine.backend import DEFAULT_SHELL

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class LoopSettings:
    """Process-level settings that are not part of a single loop invocation."""

    shell: str = DEFAULT_SHELL
    log_level: str = "WARNING"
    restore_env: bool = True

    @classmethod
    def from_env(cls) -> LoopSettings:
        """Load settings from ``SHELL_LOOP_*`` environment variables."""

        settings = cls(
            shell=os.getenv("SHELL_LOOP_SHELL", DEFAULT_SHELL).strip() or DEFAULT_SHELL,
            log_level=os.getenv("SHELL_LOOP_LOG_LEVEL", "WARNING").strip().upper(),
            restore_env=_env_bool("SHELL_LOOP_RESTORE_ENV", default=True),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raise configuration error for unusable values."""

        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"SHELL_LOOP_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}: "
                f"{self.log_level!r}",
            )

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
