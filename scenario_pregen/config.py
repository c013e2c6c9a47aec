"""Settings for cache, pipeline and parameter grid.

Loaded from a YAML file (``config/pregen.yaml`` by default) with a few
environment overrides; ``.env`` files are honoured through python-dotenv.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Annotated, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_CONFIG_PATH = Path("config") / "pregen.yaml"

DEFAULT_AMOUNTS = [1000, 5000, 10000, 25000, 50000, 100000]
DEFAULT_MONTHLY = [100, 250, 500, 1000, 2000, 5000]
DEFAULT_RETURNS = [4, 6, 7, 8, 10, 12]  # percent
DEFAULT_YEARS = [5, 10, 15, 20, 25, 30]
DEFAULT_LOCALES = ["en", "es", "pl"]


class CacheSettings(BaseModel):
    default_ttl: float = 60 * 60 * 24
    max_size: int = 500
    cleanup_interval: float = 60 * 10


class PipelineSettings(BaseModel):
    locales: List[str] = Field(default_factory=lambda: list(DEFAULT_LOCALES))
    concurrency: int = 8
    item_timeout: float = 30.0
    store_dir: Optional[str] = None


# Item ranges mirror ParameterCombination so a bad grid is rejected at load time
Amount = Annotated[float, Field(ge=0, le=10_000_000)]
Monthly = Annotated[float, Field(ge=0, le=100_000)]
Return = Annotated[float, Field(ge=0, le=50)]
Years = Annotated[int, Field(ge=1, le=100)]


class GridSettings(BaseModel):
    amounts: List[Amount] = Field(default_factory=lambda: list(DEFAULT_AMOUNTS))
    monthly: List[Monthly] = Field(default_factory=lambda: list(DEFAULT_MONTHLY))
    returns: List[Return] = Field(default_factory=lambda: list(DEFAULT_RETURNS))
    years: List[Years] = Field(default_factory=lambda: list(DEFAULT_YEARS))


class Settings(BaseModel):
    cache: CacheSettings = Field(default_factory=CacheSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    grid: GridSettings = Field(default_factory=GridSettings)


def _apply_env(settings: Settings) -> Settings:
    locales = os.getenv("PREGEN_LOCALES")
    if locales:
        settings.pipeline.locales = [x.strip() for x in locales.split(",") if x.strip()]
    concurrency = os.getenv("PREGEN_CONCURRENCY")
    if concurrency and concurrency.isdigit():
        settings.pipeline.concurrency = int(concurrency)
    timeout = os.getenv("PREGEN_ITEM_TIMEOUT")
    if timeout:
        try:
            settings.pipeline.item_timeout = float(timeout)
        except ValueError:
            pass  # keep file value
    store_dir = os.getenv("PREGEN_STORE_DIR")
    if store_dir:
        settings.pipeline.store_dir = store_dir
    return settings


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings from YAML; a missing file yields defaults.

    Raises ``yaml.YAMLError`` or ``pydantic.ValidationError`` for a file that
    exists but cannot be parsed.
    """
    cfg_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    data = {}
    if cfg_path.exists():
        with open(cfg_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    return _apply_env(Settings.model_validate(data))


__all__ = [
    "CacheSettings",
    "PipelineSettings",
    "GridSettings",
    "Settings",
    "load_settings",
    "DEFAULT_CONFIG_PATH",
]
