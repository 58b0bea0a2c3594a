import shlex
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Bridge Settings
    BRIDGE_PORT: int = 3000  # reserved for server mode, unused by the CLI
    LOG_LEVEL: str = "info"
    TIMEOUT: int = 30000  # ms, applies to every external probe

    # Environment Probes
    IDE_COMMAND: str = "code"
    EXTENSION_IDS: str = "github.copilot,github.copilot-chat"

    # Assistant Settings
    ASSISTANT_URL: Optional[str] = None

    # Launcher Settings
    LAUNCHER_LOG: str = "copilot-lsp-server.log"
    LAUNCHER_SERVICE: Optional[str] = None
    SERVER_COMMAND: str = "copilot-language-server --stdio"

    model_config = SettingsConfigDict(env_prefix="COPILOT_", env_file=".env", extra="ignore")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level not in ("info", "debug"):
            raise ValueError(f"LOG_LEVEL must be 'info' or 'debug', got {value!r}")
        return level

    @field_validator("TIMEOUT")
    @classmethod
    def _check_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("TIMEOUT must be a positive number of milliseconds")
        return value

    @property
    def timeout_seconds(self) -> float:
        return self.TIMEOUT / 1000.0

    @property
    def ide_argv(self) -> List[str]:
        return shlex.split(self.IDE_COMMAND)

    @property
    def extension_ids(self) -> List[str]:
        return [item.strip() for item in self.EXTENSION_IDS.split(",") if item.strip()]

    @property
    def server_argv(self) -> List[str]:
        return shlex.split(self.SERVER_COMMAND)


def load_settings() -> Settings:
    """Read settings from the environment (raises pydantic.ValidationError on bad values)."""
    return Settings()
