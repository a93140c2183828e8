"""
RiskScorer - weighted churn model and tier classification.

Usage:
    from risk_engine import RiskScorer, FeatureSnapshot

    scorer = RiskScorer()

    # Whole population in one vectorized pass
    result = scorer.score(snapshot_df)
    print(result.df[["SUBJECT_ID", "CHURN_PROBABILITY", "RISK_TIER"]])
    print(result.summary())

    # Single subject
    probability = scorer.predict_probability(FeatureSnapshot(wellness_score=20))
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from .config import ScoringConfig, DEFAULT_CONFIG
from .components import (
    WellnessNormalizer,
    SpendingNormalizer,
    EngagementNormalizer,
    AlertNormalizer,
    ActivityNormalizer,
)
from .records import FeatureSnapshot, RiskTier, TIER_ORDER
from .schemas import SCORING_INPUT_SCHEMA, SCORING_OUTPUT_SCHEMA


@dataclass
class ScoringResult:
    """
    Container for scoring results with component breakdown.

    Attributes:
        df: Original DataFrame with scores added
        component_columns: List of normalised feature column names
        weights: Weight of each signal, keyed by normaliser name
    """

    df: pd.DataFrame
    component_columns: list[str]
    weights: dict[str, float] = field(default_factory=dict)

    def get_high_risk(self, min_tier: str = RiskTier.HIGH) -> pd.DataFrame:
        """
        Get subjects at or above a risk tier.

        Args:
            min_tier: Least severe tier to include

        Returns:
            DataFrame filtered to subjects at or above the tier
        """
        max_idx = TIER_ORDER.index(RiskTier(min_tier))
        valid_tiers = [str(tier) for tier in TIER_ORDER[: max_idx + 1]]
        return self.df[self.df["RISK_TIER"].isin(valid_tiers)]

    def summary(self) -> pd.DataFrame:
        """
        Generate summary statistics by risk tier.

        Returns:
            DataFrame with counts and mean probability, most severe tier first
        """
        return (
            self.df.groupby("RISK_TIER")
            .agg(
                count=("SUBJECT_ID", "count"),
                avg_probability=("CHURN_PROBABILITY", "mean"),
            )
            .reindex([str(tier) for tier in TIER_ORDER])
            .dropna(how="all")
            .round(2)
        )

    def component_breakdown(self) -> pd.DataFrame:
        """
        How much each signal drives the population's raw score.

        Returns:
            One row per signal: mean and max normalised value, its weight,
            the mean weighted contribution, and that contribution as a
            share of the mean raw score
        """
        names = [col.replace("_norm", "") for col in self.component_columns]
        normalised = self.df[self.component_columns].set_axis(names, axis=1)
        weights = pd.Series({name: self.weights.get(name, 0.0) for name in names})
        contribution = normalised.mean() * weights
        mean_raw = self.df["RAW_SCORE"].mean()

        breakdown = pd.DataFrame({
            "mean": normalised.mean(),
            "max": normalised.max(),
            "weight": weights,
            "contribution": contribution,
            "share": contribution / mean_raw if mean_raw else 0.0,
        })
        return breakdown.sort_values("contribution", ascending=False).round(3)


class RiskScorer:
    """
    Vectorized churn risk scoring engine.

    Normalises each signal independently, combines them with fixed
    weights, squashes the weighted sum through a logistic curve and
    maps the result to a tier.

    Components (weight):
    - Wellness (0.30): low FWI score
    - Spending (0.20): spending category
    - Engagement (0.20): low engagement
    - Alerts (0.15): active alert count
    - Activity (0.15): days since last activity
    """

    REQUIRED_COLUMNS = [
        "SUBJECT_ID",
        "WELLNESS_SCORE",
        "SPENDING_LEVEL",
        "ENGAGEMENT_SCORE",
        "ACTIVE_ALERT_COUNT",
        "INTERVENTION_COUNT",
        "COMPLETED_INTERVENTION_COUNT",
        "DAYS_SINCE_LAST_ACTIVITY",
    ]

    def __init__(self, config: Optional[ScoringConfig] = None):
        """
        Initialize scorer with configuration.

        Args:
            config: ScoringConfig instance. Uses DEFAULT_CONFIG if None.
        """
        self.config = config or DEFAULT_CONFIG
        self._init_components()

    def _init_components(self) -> None:
        """Initialize all feature normalisers."""
        self.components = {
            "wellness": WellnessNormalizer(self.config),
            "spending": SpendingNormalizer(self.config),
            "engagement": EngagementNormalizer(self.config),
            "alerts": AlertNormalizer(self.config),
            "activity": ActivityNormalizer(self.config),
        }

    def validate_input(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Validate required columns and value ranges.

        Args:
            df: Input DataFrame

        Returns:
            The validated (type-coerced) DataFrame

        Raises:
            ValueError: If required columns are missing
            pandera.errors.SchemaError: If values are out of range
        """
        missing = set(self.REQUIRED_COLUMNS) - set(df.columns)
        if missing:
            raise ValueError(f"Missing required columns: {missing}")
        return SCORING_INPUT_SCHEMA.validate(df)

    def squash(self, raw: np.ndarray | pd.Series) -> np.ndarray | pd.Series:
        """Logistic curve centred on the midpoint."""
        return 1 / (1 + np.exp(-self.config.steepness * (raw - self.config.midpoint)))

    def classify(self, probability: pd.Series) -> pd.Series:
        """Vectorized tier assignment (inclusive lower bounds, first match wins)."""
        conditions = []
        choices = []

        for lower_bound, tier in self.config.tier_thresholds:
            conditions.append(probability >= lower_bound)
            choices.append(str(tier))

        return pd.Series(
            np.select(conditions, choices, default=str(self.config.tier_default)),
            index=probability.index,
        ).astype(str)

    def score(self, df: pd.DataFrame) -> ScoringResult:
        """
        Calculate churn probability and tier for every subject.

        The stored probability is rounded to two decimals and the tier is
        derived from that rounded value, so a persisted tier can always be
        recomputed from the persisted probability. The unrounded value is
        kept in RAW_PROBABILITY.

        Args:
            df: DataFrame with required columns

        Returns:
            ScoringResult with scores and component breakdown

        Example:
            >>> scorer = RiskScorer()
            >>> result = scorer.score(snapshot_df)
            >>> critical = result.get_high_risk("critical")
        """
        result = self.validate_input(df).copy()

        # Calculate all normalised features (vectorized)
        component_cols = []
        raw = pd.Series(0.0, index=result.index)
        for name, component in self.components.items():
            col_name = f"{name}_norm"
            result[col_name] = component.normalize(result)
            raw = raw + component.weight * result[col_name]
            component_cols.append(col_name)

        result["RAW_SCORE"] = raw.astype(float)
        result["RAW_PROBABILITY"] = self.squash(result["RAW_SCORE"]).astype(float)
        result["CHURN_PROBABILITY"] = result["RAW_PROBABILITY"].round(
            self.config.probability_decimals
        )
        result["RISK_TIER"] = self.classify(result["CHURN_PROBABILITY"])

        SCORING_OUTPUT_SCHEMA.validate(result)
        return ScoringResult(
            df=result,
            component_columns=component_cols,
            weights=dict(self.config.weights),
        )

    def score_single(self, snapshot: FeatureSnapshot, subject_id: str = "SUBJECT") -> dict:
        """
        Score a single subject (convenience method).

        Args:
            snapshot: Feature snapshot for the subject
            subject_id: Identifier carried into the scoring frame

        Returns:
            Dictionary with probabilities, tier and normalised components
        """
        df = pd.DataFrame([{"SUBJECT_ID": subject_id, **snapshot.to_row()}])
        result = self.score(df)
        row = result.df.iloc[0]
        return {
            "RAW_SCORE": float(row["RAW_SCORE"]),
            "RAW_PROBABILITY": float(row["RAW_PROBABILITY"]),
            "CHURN_PROBABILITY": float(row["CHURN_PROBABILITY"]),
            "RISK_TIER": RiskTier(row["RISK_TIER"]),
            "components": {
                col.replace("_norm", ""): float(row[col])
                for col in result.component_columns
            },
        }

    def predict_probability(self, snapshot: FeatureSnapshot) -> float:
        """Unrounded churn probability in [0, 1] for one snapshot."""
        return self.score_single(snapshot)["RAW_PROBABILITY"]


def classify_tier(probability: float, config: ScoringConfig = DEFAULT_CONFIG) -> RiskTier:
    """Map a churn probability to its risk tier."""
    return config.get_risk_tier(probability)
