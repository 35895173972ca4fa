"""Runtime configuration read from ``ROBOT_INTERFACE_*`` environment variables."""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class InterfaceConfig(BaseSettings):
    """Settings shared by the description loader, monitor and logger.

    Attributes:
        description_path: Directories searched for ``<identifier>.urdf`` when a
            description identifier is not itself a path to a file.
        state_wait_timeout: Seconds a state query waits for a complete state.
        log_level: Name of the stdlib logging level.
        log_dir: Directory for JSON-lines log files; console only when unset.
    """

    description_path: List[Path] = Field(default_factory=list)
    state_wait_timeout: float = Field(default=1.0, ge=0.0)
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_prefix="ROBOT_INTERFACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )
