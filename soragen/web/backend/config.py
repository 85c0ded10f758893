"""Configuration for the web backend."""

from pathlib import Path

from pydantic import BaseModel


class WebConfig(BaseModel):
    """Web server configuration."""

    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: list[str] = ["*"]
    config_path: Path | None = None  # YAML file for soragen.config.Config
    static_dir: Path | None = None  # Served at / when set
    start_scheduler: bool = True
