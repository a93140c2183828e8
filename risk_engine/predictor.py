"""
ChurnPredictor - orchestrates scoring and persistence of predictions.

Usage:
    from risk_engine import ChurnPredictor

    predictor = ChurnPredictor(features=feature_source, store=prediction_store)

    prediction = predictor.evaluate("emp-001")
    predictions = predictor.batch_evaluate(["emp-001", "emp-002"])
    at_risk = predictor.list_high_risk(limit=25)
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence

import pandas as pd
import structlog

from .batching import run_isolated
from .config import EngineSettings, ScoringConfig, DEFAULT_CONFIG
from .factors import extract_risk_factors
from .interventions import recommend_interventions
from .records import ChurnPrediction, FeatureSnapshot, HIGH_RISK_TIERS, RiskTier, utcnow
from .scorer import RiskScorer, ScoringResult
from .store import FeatureSource, PredictionStats, PredictionStore

logger = structlog.get_logger(__name__)


@dataclass
class BatchReport:
    """Successful predictions plus the error for every subject that failed."""

    predictions: list[ChurnPrediction] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return len(self.predictions)

    @property
    def failed(self) -> int:
        return len(self.errors)


class ChurnPredictor:
    """
    Evaluate subjects and keep one current prediction per subject.

    Pipeline per subject:
    1. Read the feature snapshot
    2. Score churn probability and tier
    3. Extract risk factors
    4. Recommend interventions
    5. Upsert (last evaluation wins)
    """

    def __init__(
        self,
        features: FeatureSource,
        store: PredictionStore,
        scorer: Optional[RiskScorer] = None,
        config: Optional[ScoringConfig] = None,
        settings: Optional[EngineSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            features: Source of feature snapshots
            store: Prediction store
            scorer: RiskScorer. Built from ``config`` if None.
            config: ScoringConfig. Uses DEFAULT_CONFIG if None.
            settings: EngineSettings for batch size and listing limits
            clock: Returns the current (timezone-aware) time
        """
        self.config = config or (scorer.config if scorer else DEFAULT_CONFIG)
        self.scorer = scorer or RiskScorer(self.config)
        self.features = features
        self.store = store
        self.settings = settings or EngineSettings()
        self.clock = clock

    def build_prediction(self, subject_id: str, snapshot: FeatureSnapshot) -> ChurnPrediction:
        """Run the pure scoring pipeline for one snapshot (no I/O)."""
        scores = self.scorer.score_single(snapshot, subject_id=subject_id)
        probability = scores["RAW_PROBABILITY"]
        tier = scores["RISK_TIER"]

        factors = extract_risk_factors(snapshot, self.config)
        interventions = recommend_interventions(factors, tier, self.config)

        evaluated_at = self.clock()
        days_left = int(round(self.config.horizon_days - probability * self.config.horizon_days))
        predicted_churn_date = (evaluated_at + timedelta(days=days_left)).date()

        return ChurnPrediction(
            subject_id=subject_id,
            churn_probability=scores["CHURN_PROBABILITY"],
            risk_tier=tier,
            predicted_churn_date=predicted_churn_date,
            main_risk_factors=tuple(factors),
            recommended_interventions=tuple(interventions),
            evaluated_at=evaluated_at,
        )

    def evaluate(self, subject_id: str) -> ChurnPrediction:
        """
        Evaluate one subject and persist the result.

        Raises:
            StoreError: If the snapshot read or the upsert fails
        """
        snapshot = self.features.get_feature_snapshot(subject_id)
        prediction = self.build_prediction(subject_id, snapshot)
        self.store.upsert(prediction)

        logger.info(
            "churn_prediction_stored",
            subject_id=subject_id,
            churn_probability=prediction.churn_probability,
            risk_tier=str(prediction.risk_tier),
        )
        return prediction

    def batch_evaluate_detailed(self, subject_ids: Sequence[str]) -> BatchReport:
        """Evaluate every subject independently and report each failure."""
        report = BatchReport()
        for unit in run_isolated(self.evaluate, list(subject_ids), self.settings.batch_workers):
            if unit.ok:
                report.predictions.append(unit.value)
            else:
                logger.error(
                    "churn_evaluation_failed",
                    subject_id=unit.unit,
                    error=str(unit.error),
                    error_type=type(unit.error).__name__,
                )
                report.errors[unit.unit] = str(unit.error)

        logger.info(
            "churn_batch_evaluated",
            total=len(subject_ids),
            succeeded=report.succeeded,
            failed=report.failed,
        )
        return report

    def batch_evaluate(self, subject_ids: Sequence[str]) -> list[ChurnPrediction]:
        """
        Evaluate many subjects; failures are logged and left out.

        Returns:
            Successful predictions, in input order
        """
        return self.batch_evaluate_detailed(subject_ids).predictions

    def get_prediction(self, subject_id: str) -> Optional[ChurnPrediction]:
        return self.store.get_by_subject(subject_id)

    def list_high_risk(
        self,
        tiers: Optional[Iterable[RiskTier | str]] = None,
        limit: Optional[int] = None,
    ) -> list[ChurnPrediction]:
        """
        List persisted predictions in the given tiers, most likely to churn first.

        Args:
            tiers: Tiers to include. Defaults to critical and high.
            limit: Maximum results. Defaults to settings.high_risk_limit.
        """
        tier_filter = {RiskTier(t) for t in tiers} if tiers is not None else set(HIGH_RISK_TIERS)
        limit = limit if limit is not None else self.settings.high_risk_limit
        if not tier_filter or limit <= 0:
            return []
        return self.store.list_by_tier(tier_filter, limit)

    def prediction_stats(self) -> PredictionStats:
        return self.store.stats()

    def score_frame(self, df: pd.DataFrame) -> ScoringResult:
        """Score a DataFrame of snapshots without persisting anything."""
        return self.scorer.score(df)
