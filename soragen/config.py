"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class KieConfig(BaseModel):
    """Kie.ai API configuration."""

    api_key: str | None = None
    base_url: str = "https://api.kie.ai"
    callback_base_url: str = "http://localhost:3000"
    model: str = "sora-2-text-to-video"
    request_timeout: float = 60.0
    query_timeout: float = 30.0


class QueueConfig(BaseModel):
    """Task queue timing and capacity (seconds unless noted)."""

    max_concurrent_tasks: int = Field(default=5, ge=1)
    admission_interval: float = Field(default=5.0, gt=0)
    reconcile_interval: float = Field(default=30.0, gt=0)
    status_check_after: float = Field(default=120.0, ge=0)
    generation_timeout: float = Field(default=600.0, gt=0)
    retention_interval: float = Field(default=3600.0, gt=0)
    retention_hours: float = Field(default=24.0, gt=0)


class Config(BaseModel):
    """Main application configuration."""

    kie: KieConfig = Field(default_factory=KieConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f)

        if data is None:
            return cls()

        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump()
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    def with_env(self, environ: dict[str, str] | None = None) -> "Config":
        """Return a copy with values from environment variables applied."""
        env = os.environ if environ is None else environ
        kie: dict[str, Any] = {}
        queue: dict[str, Any] = {}

        if env.get("KIE_API_KEY"):
            kie["api_key"] = env["KIE_API_KEY"]
        if env.get("KIE_API_BASE_URL"):
            kie["base_url"] = env["KIE_API_BASE_URL"]
        if env.get("CALLBACK_BASE_URL"):
            kie["callback_base_url"] = env["CALLBACK_BASE_URL"]
        if env.get("MAX_CONCURRENT_TASKS"):
            queue["max_concurrent_tasks"] = int(env["MAX_CONCURRENT_TASKS"])

        return Config(
            kie=self.kie.model_copy(update=kie),
            queue=QueueConfig(**{**self.queue.model_dump(), **queue}),
        )


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file (or defaults) with environment overrides."""
    if config_path is None:
        candidate = Path("config.yaml")
        if candidate.exists():
            config_path = candidate

    config = Config.from_yaml(config_path) if config_path is not None else Config()
    return config.with_env()
