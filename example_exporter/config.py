from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from example_exporter.errors import ConfigError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="EXPORTER_", env_file=".env", extra="ignore")

    app_name: str = "example-exporter"
    log_level: str = "INFO"
    log_file: str = "log/logfile"

    # scrape server
    host: str = "0.0.0.0"
    metrics_path: str = "/metrics"
    shutdown_timeout_seconds: Optional[float] = 5.0

    # include process / platform / gc families from prometheus_client
    runtime_metrics_enabled: bool = True

    @field_validator("shutdown_timeout_seconds", mode="before")
    @classmethod
    def _unbounded_timeout(cls, value: Any) -> Any:
        # "none", "" or a non-positive number means wait for the drain indefinitely
        if value is None:
            return None
        if isinstance(value, str):
            if value.strip().lower() in ("", "none"):
                return None
            value = float(value)
        if isinstance(value, (int, float)) and value <= 0:
            return None
        return value


settings = Settings()


class ExporterConfig(BaseModel):
    """Contents of the exporter's YAML config file."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    port: int = Field(ge=0, le=65535)


def _unwrap(raw: Dict[str, Any]) -> Dict[str, Any]:
    # Older config files nest everything under a "conf" section.
    nested = raw.get("conf")
    if isinstance(nested, dict) and "port" not in raw:
        return nested
    return raw


def load_config(path: Union[str, Path]) -> ExporterConfig:
    """
    Read and validate the config file at ``path``.

    Every failure mode (missing file, bad YAML, wrong shape, failed validation)
    is reported as ConfigError so the caller can exit before binding a port.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"cannot read config file {str(path)!r}: {exc}") from exc

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"in file {str(path)!r}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"in file {str(path)!r}: expected a mapping at the top level")

    try:
        return ExporterConfig.model_validate(_unwrap(raw))
    except ValidationError as exc:
        parts = []
        for err in exc.errors():
            loc = ".".join(str(x) for x in err.get("loc", []))
            msg = err.get("msg", "Invalid value")
            parts.append(f"{loc}: {msg}" if loc else str(msg))
        raise ConfigError(f"in file {str(path)!r}: {'; '.join(parts)}") from exc
