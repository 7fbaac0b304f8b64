import math
from pathlib import Path

import pytest
from pydantic import ValidationError

from abcpmc.config import (
    ComparisonConfig,
    ConfigError,
    PMCConfig,
    RejectionConfig,
    dump_config,
    load_config,
)

CONFIGS = Path(__file__).parent.parent / "configs"


def test_load_config():
    cfg = load_config(CONFIGS / "toy_pmc.yaml")
    assert cfg.method == "pmc"
    assert cfg.pmc.n_particles == 50
    assert cfg.pmc.raw_table_size == 100
    assert cfg.model.entry_point.endswith(":build_uniform_noise_problem")


def test_load_config_merges_base():
    cfg = load_config(CONFIGS / "toy_adaptive.yaml")
    assert cfg.pmc.adaptive
    assert cfg.pmc.store_init
    assert cfg.pmc.max_sims == 5000
    assert cfg.model.kwargs == {"scaled": True}


def test_model_override_replaces_entry_point():
    cfg = load_config(CONFIGS / "normal_location.yaml")
    assert cfg.model.entry_point.endswith(":build_normal_location_problem")
    assert cfg.model.kwargs["n_obs"] == 50
    assert cfg.pmc.n_particles == 200


def test_invalid_config_raises_config_error(tmp_path: Path):
    path = tmp_path / "bad.yaml"
    path.write_text("pmc:\n  alpha: 1.5\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_dump_config_round_trip(tmp_path: Path):
    cfg = load_config(CONFIGS / "toy_comparison.yaml")
    dump_config(cfg, tmp_path / "resolved.yaml")
    reloaded = load_config(tmp_path / "resolved.yaml")
    assert reloaded.model_dump() == cfg.model_dump()
    assert math.isinf(reloaded.comparison.h1)


def test_comparison_rejects_h1_with_initialisation():
    with pytest.raises(ValidationError):
        ComparisonConfig(initialise_dist=True, h1=2.0)
    cfg = ComparisonConfig(initialise_dist=False, h1=2.0)
    assert cfg.h1 == 2.0


def test_rejection_rejects_k_and_h():
    with pytest.raises(ValidationError):
        RejectionConfig(n_sims=10, k=5, h=0.1)


def test_pmc_alpha_bounds():
    with pytest.raises(ValidationError):
        PMCConfig(alpha=1.0)
    assert PMCConfig(n_particles=50, alpha=0.3).raw_table_size == 167
    assert ComparisonConfig(n_particles=50, alpha=0.25).n_threshold == 13


def test_pmc_needs_at_least_two_particles():
    with pytest.raises(ValidationError):
        PMCConfig(n_particles=1)
    with pytest.raises(ValidationError):
        ComparisonConfig(n_particles=1)
    assert PMCConfig(n_particles=2).n_particles == 2
