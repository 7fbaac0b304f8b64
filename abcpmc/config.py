from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator


class RejectionConfig(BaseModel):
    n_sims: int = Field(10000, gt=0)
    k: Optional[int] = Field(None, ge=0)
    h: Optional[float] = None
    reference_cap: int = Field(10000, gt=0)
    store_init: bool = False
    silent: bool = False

    @model_validator(mode="after")
    def _one_acceptance_rule(self) -> "RejectionConfig":
        if self.k is not None and self.h is not None:
            raise ValueError("accept either the k closest simulations or those within h, not both")
        return self


class PMCConfig(BaseModel):
    n_particles: int = Field(100, ge=2)
    alpha: float = Field(0.5, gt=0.0, lt=1.0)
    max_sims: int = Field(10000, gt=0)
    nsims_for_init: int = Field(10000, gt=0)
    adaptive: bool = False
    store_init: bool = False
    diag_perturb: bool = False
    covariance_estimator: Literal["biased", "unbiased"] = "biased"
    silent: bool = False

    @property
    def raw_table_size(self) -> int:
        return int(math.ceil(self.n_particles / self.alpha))


class ComparisonConfig(BaseModel):
    n_particles: int = Field(100, ge=2)
    alpha: float = Field(0.5, gt=0.0, le=1.0)
    max_sims: int = Field(10000, gt=0)
    nsims_for_init: int = Field(10000, gt=0)
    initialise_dist: bool = True
    h1: float = math.inf
    store_init: bool = False
    diag_perturb: bool = False
    covariance_estimator: Literal["biased", "unbiased"] = "biased"
    silent: bool = False

    @model_validator(mode="after")
    def _first_threshold_open(self) -> "ComparisonConfig":
        if self.initialise_dist and self.h1 < math.inf:
            raise ValueError("to initialise the distance during the run the first threshold h1 must be inf")
        return self

    @property
    def n_threshold(self) -> int:
        return int(math.ceil(self.n_particles * self.alpha))


class ModelConfig(BaseModel):
    entry_point: str = "abcpmc.models.toy:build_uniform_noise_problem"
    kwargs: Dict[str, Any] = Field(default_factory=dict)


class OutputConfig(BaseModel):
    save_plots: bool = True
    save_particles: bool = True
    save_init: bool = False


class RunConfig(BaseModel):
    seed: int = 42
    method: Literal["rejection", "pmc", "comparison"] = "pmc"
    model: ModelConfig = ModelConfig()
    rejection: RejectionConfig = RejectionConfig()
    pmc: PMCConfig = PMCConfig()
    comparison: ComparisonConfig = ComparisonConfig()
    output: OutputConfig = OutputConfig()


class ConfigError(Exception):
    pass


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str | Path) -> RunConfig:
    path = Path(path)
    data = yaml.safe_load(path.read_text()) or {}
    base_path = data.get("base")
    if base_path:
        base_data = yaml.safe_load((path.parent / base_path).read_text()) or {}
        data = deep_merge(base_data, data)
        data.pop("base", None)
    try:
        return RunConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc


def dump_config(cfg: RunConfig, path: str | Path) -> None:
    path = Path(path)
    path.write_text(yaml.safe_dump(cfg.model_dump(), sort_keys=False))
