from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_DOMAINS = ["privacy", "child", "safety", "finance"]


class InputConfig(BaseModel):
    data_path: str | None = None
    domains: list[str] = Field(default_factory=lambda: list(DEFAULT_DOMAINS))
    sample_limit: int = Field(default=2, ge=0)


class GrowthConfig(BaseModel):
    min_baseline: float = Field(default=5.0, ge=0.0)
    clamp_pct: float = Field(default=500.0, gt=0.0)


class RankingConfig(BaseModel):
    top_n: int = Field(default=5, ge=1)
    stance_top_n: int = Field(default=4, ge=1)
    include_non_positive: bool = False
    sparkline_points: int = Field(default=7, ge=1)
    rising_days: int = Field(default=7, ge=1)


class GraphConfig(BaseModel):
    max_laws: int = Field(default=5, ge=1)
    max_incidents_per_law: int = Field(default=10, ge=1)
    group_by: Literal["statute", "theme"] = "statute"


class FetchConfig(BaseModel):
    retries: int = Field(default=2, ge=0)
    backoff_seconds: float = Field(default=0.5, ge=0.0)


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet", "json"] = "csv"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input: InputConfig = Field(default_factory=InputConfig)
    growth: GrowthConfig = Field(default_factory=GrowthConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.input.data_path = _resolve_optional_path(
        config.input.data_path or os.getenv("LAW_TRENDS_DATA_PATH"),
        base_dir,
    )
    return config
