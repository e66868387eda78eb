"""Configuration loading and validation utilities."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field

ErrorPolicy = Literal["raise", "record"]


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class RunDefaults(BaseModel):
    record_time: bool = Field(
        default=True, description="Append the prediction wall time as a 'time' diagnostic"
    )
    on_error: ErrorPolicy = Field(
        default="raise", description="'raise' to stop on the first failure, 'record' to keep going"
    )
    output_root: Optional[str] = Field(
        default=None, description="Directory under which run results are saved (None disables saving)"
    )


class PlotDefaults(BaseModel):
    height: float = 3.5
    aspect: float = 1.2
    col_wrap: int = 3
    style: str = "whitegrid"
    context: str = "notebook"
    dpi: int = 150


class AppConfig(BaseModel):
    logging: LoggingConfig = LoggingConfig()
    run_defaults: RunDefaults = RunDefaults()
    plot_defaults: PlotDefaults = PlotDefaults()

    @staticmethod
    def from_yaml(path: str | Path) -> "AppConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return AppConfig(**data)


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "base.yaml"


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load application config from YAML.

    Args:
        path: Optional path to YAML config. If None, defaults to config/base.yaml,
            falling back to built-in defaults when that file is absent.
    """
    if path is None and not DEFAULT_CONFIG_PATH.exists():
        return AppConfig()
    resolved = Path(path) if path else DEFAULT_CONFIG_PATH
    return AppConfig.from_yaml(resolved)


def configure_logging(config: LoggingConfig) -> None:
    """Apply the logging section of the app config to the root logger."""
    logging.basicConfig(level=config.level.upper(), format=config.format, force=True)
