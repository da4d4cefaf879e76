"""Load environment and matching configuration."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from talentnest.log import get_logger

log = get_logger(__name__)

load_dotenv()

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = PROJECT_ROOT / "config"
MATCHING_CONFIG_PATH: Path = CONFIG_DIR / "matching.yaml"
DATA_DIR: Path = PROJECT_ROOT / "data"


@dataclass(frozen=True)
class ScoringConfig:
    """Every weight, cap, band and threshold used to score an applicant.

    Tiers and bands are ordered ``(lower_bound, bonus)`` pairs, checked from
    the top; the first bound that is met wins.
    """

    similarity_cap: float = 0.8
    keyword_bonus_max: float = 0.03
    experience_tiers: tuple[tuple[float, float], ...] = (
        (1.0, 0.03),
        (0.75, 0.02),
        (0.5, 0.01),
    )
    role_bands: tuple[tuple[float, float], ...] = (
        (0.85, 0.05),   # strong
        (0.70, 0.0),    # acceptable
        (0.50, -0.05),  # weak
    )
    role_mismatch_penalty: float = -0.10
    shortlist_threshold: float = 0.5
    feedback_min_resume_chars: int = 300


@dataclass(frozen=True)
class PipelineConfig:
    max_workers: int = 4
    request_timeout: float = 30.0
    max_resume_bytes: int = 10 * 1024 * 1024
    retry_attempts: int = 3
    retry_base_delay: float = 1.0
    run_timeout: float = 600.0
    embedding_model: str = "text-embedding-3-small"
    feedback_model: str = "llama-3.3-70b-versatile"
    feedback_max_tokens: int = 150
    disconnect_poll_interval: float = 1.0


@dataclass(frozen=True)
class RateLimitConfig:
    per_admin_daily: int = 2
    global_daily: int = 15
    window_seconds: float = 24 * 60 * 60


@dataclass(frozen=True)
class MatchingConfig:
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _as_pairs(value: Any) -> tuple[tuple[float, float], ...]:
    # YAML gives [[0.85, 0.05], ...]; sort so the highest bound is checked first
    pairs = [(float(lo), float(bonus)) for lo, bonus in value]
    return tuple(sorted(pairs, key=lambda p: -p[0]))


def _apply_section(base: Any, section: str, overrides: dict[str, Any] | None) -> Any:
    if not overrides:
        return base
    known = {f.name: f for f in fields(base)}
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in known:
            log.warning("Ignoring unknown %s setting: %s", section, key)
            continue
        current = getattr(base, key)
        if isinstance(current, tuple):
            changes[key] = _as_pairs(value)
        else:
            changes[key] = type(current)(value)
    return replace(base, **changes)


def load_matching_config(path: Path | None = None) -> MatchingConfig:
    """Defaults, overridden by ``config/matching.yaml`` when present."""
    path = path or Path(get_env("TALENTNEST_CONFIG") or MATCHING_CONFIG_PATH)
    config = MatchingConfig()
    if not path.exists():
        log.debug("No matching config at %s, using defaults", path)
        return config

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    config = MatchingConfig(
        scoring=_apply_section(config.scoring, "scoring", data.get("scoring")),
        pipeline=_apply_section(config.pipeline, "pipeline", data.get("pipeline")),
        rate_limit=_apply_section(config.rate_limit, "rate_limit", data.get("rate_limit")),
    )
    log.info(
        "Loaded matching config from %s (shortlist threshold %.2f)",
        path.name,
        config.scoring.shortlist_threshold,
    )
    return config


def get_data_file() -> Path:
    return Path(get_env("TALENTNEST_DATA_FILE") or DATA_DIR / "talentnest.json")
