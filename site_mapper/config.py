# === FILE: site_mapper/config.py ===
"""
Loading and validation of the SiteMapper crawl configuration.
Pydantic describes the schema; YAML and JSON files are accepted.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, HttpUrl

__all__ = ("CrawlerConfig", "load_config", "DEFAULT_URL")

DEFAULT_URL = "https://gophercises.com"


class CrawlerConfig(BaseModel):
    """Configuration for a single crawl."""
    model_config = ConfigDict(extra="forbid", frozen=True, validate_default=True)

    base_url: HttpUrl = Field(DEFAULT_URL, description="Seed URL of the crawl.")
    max_depth: int = Field(3, ge=0, description="Maximum link depth from the seed.")
    concurrency: int = Field(8, ge=1, description="Parallel fetches within one depth layer.")
    timeout: float = Field(10.0, gt=0, description="Timeout for one fetch attempt (seconds).")
    retry_times: int = Field(0, ge=0, description="Extra attempts on retryable failures.")
    retry_backoff: float = Field(0.5, ge=0, description="Base backoff between retries (seconds).")
    max_pages: Optional[int] = Field(None, ge=1, description="Hard cap on discovered pages.")
    rate_limit: Optional[float] = Field(None, gt=0, description="Requests per second.")
    user_agent: str = Field("SiteMapperBot/1.0", min_length=1, description="User-Agent header.")
    drain_timeout: float = Field(
        5.0, ge=0, description="Grace period for in-flight fetches after cancellation."
    )

    @property
    def seed(self) -> str:
        return str(self.base_url)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None] = None) -> CrawlerConfig:
    """
    Read YAML or JSON and return a validated CrawlerConfig.

    With *path* None, ``configs/default.yaml`` is used when present and the
    built-in defaults otherwise. An explicit path that does not exist raises
    FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.is_file():
            return CrawlerConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return CrawlerConfig(**data)
