"""
Configuration for the churn risk engine.

Two layers:
- ScoringConfig: every constant of the scoring model (weights, normalisation
  caps, tier thresholds, factor thresholds, horizon). Historical predictions
  were produced with these exact values, so the defaults must not change.
- EngineSettings: runtime settings (database, batch parallelism, logging),
  loadable from YAML or environment variables.
"""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from .records import RiskTier, SpendingLevel


@dataclass(frozen=True)
class ScoringConfig:
    """
    Constants for the weighted churn model.

    raw = 0.30*wellness + 0.20*spending + 0.20*engagement
        + 0.15*alerts + 0.15*activity
    probability = 1 / (1 + exp(-5 * (raw - 0.5)))
    """

    # === Feature weights (sum to 1.0) ===
    weights: Dict[str, float] = field(default_factory=lambda: {
        "wellness": 0.30,
        "spending": 0.20,
        "engagement": 0.20,
        "alerts": 0.15,
        "activity": 0.15,
    })

    # === Normalisation ===
    spending_norm: Dict[str, float] = field(default_factory=lambda: {
        SpendingLevel.EXCESSIVE.value: 1.0,
        SpendingLevel.HIGH.value: 0.7,
        SpendingLevel.MODERATE.value: 0.3,
        SpendingLevel.LOW.value: 0.1,
    })
    alert_cap: int = 10      # active alerts at which alertNorm saturates
    activity_cap: int = 30   # inactive days at which activityNorm saturates

    # === Logistic squashing ===
    steepness: float = 5.0
    midpoint: float = 0.5

    # === Risk tiers (inclusive lower bounds, checked top-down) ===
    tier_thresholds: List[Tuple[float, RiskTier]] = field(default_factory=lambda: [
        (0.8, RiskTier.CRITICAL),
        (0.6, RiskTier.HIGH),
        (0.4, RiskTier.MEDIUM),
        (0.2, RiskTier.LOW),
    ])
    tier_default: RiskTier = RiskTier.MINIMAL

    # === Risk factor triggers ===
    very_low_wellness: float = 40
    low_wellness: float = 50
    very_low_engagement: float = 30
    low_engagement: float = 50
    many_alerts: int = 5         # strictly greater than
    inactive_days: int = 14      # strictly greater than

    # === Output limits ===
    max_risk_factors: int = 5
    max_interventions: int = 4

    # === Horizon ===
    horizon_days: int = 90
    probability_decimals: int = 2

    version: str = "1.0.0"

    def get_risk_tier(self, probability: float) -> RiskTier:
        """Map a churn probability to its tier (first match wins)."""
        for lower_bound, tier in self.tier_thresholds:
            if probability >= lower_bound:
                return tier
        return self.tier_default


# Default configuration instance
DEFAULT_CONFIG = ScoringConfig()


@dataclass
class EngineSettings:
    """
    Runtime settings for the engine shell (stores, batches, logging).

    Load from YAML:
        settings = EngineSettings.from_yaml("config/engine.yaml")

    Load from environment (RISK_ENGINE_* variables):
        settings = EngineSettings.from_env()
    """

    database_url: str = "sqlite:///risk_engine.db"
    batch_workers: int = 1
    high_risk_limit: int = 100
    log_level: str = "INFO"
    log_format: str = "console"

    ENV_PREFIX = "RISK_ENGINE_"

    def __post_init__(self):
        if self.batch_workers < 1:
            raise ValueError(f"batch_workers must be >= 1, got {self.batch_workers}")
        if self.high_risk_limit < 1:
            raise ValueError(f"high_risk_limit must be >= 1, got {self.high_risk_limit}")
        if self.log_format not in ("console", "json"):
            raise ValueError(f"log_format must be 'console' or 'json', got {self.log_format!r}")

    @classmethod
    def from_yaml(cls, path: Path | str) -> "EngineSettings":
        """Load settings from a YAML file."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_env(cls, base: Optional["EngineSettings"] = None) -> "EngineSettings":
        """Overlay RISK_ENGINE_* environment variables on top of ``base``."""
        values = asdict(base) if base is not None else {}
        casts = {"batch_workers": int, "high_risk_limit": int}
        for name in ("database_url", "batch_workers", "high_risk_limit", "log_level", "log_format"):
            raw = os.environ.get(f"{cls.ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = casts.get(name, str)(raw)
        return cls(**values)

    def to_yaml(self, path: Path | str) -> None:
        """Save settings to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(asdict(self), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> dict:
        return asdict(self)
