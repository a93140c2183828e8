"""
Churn Risk Engine

Scores per-subject churn risk with a fixed weighted model, persists one
current prediction per subject, and turns business alerts into ecosystem
actions (notifications, intervention plans).
"""

from .config import DEFAULT_CONFIG, EngineSettings, ScoringConfig
from .dispatcher import ALERT_RULES, AlertDispatcher, DispatchOutcome, DispatchResult
from .factors import extract_risk_factors
from .interventions import recommend_interventions
from .notifications import NotificationEmitter
from .predictor import BatchReport, ChurnPredictor
from .records import (
    ActionLogEntry,
    AlertEvent,
    AlertType,
    ChurnPrediction,
    FeatureSnapshot,
    NotificationKind,
    RiskTier,
    SpendingLevel,
)
from .scorer import RiskScorer, ScoringResult, classify_tier

__all__ = [
    "ALERT_RULES",
    "DEFAULT_CONFIG",
    "ActionLogEntry",
    "AlertDispatcher",
    "AlertEvent",
    "AlertType",
    "BatchReport",
    "ChurnPrediction",
    "ChurnPredictor",
    "DispatchOutcome",
    "DispatchResult",
    "EngineSettings",
    "FeatureSnapshot",
    "NotificationEmitter",
    "NotificationKind",
    "RiskScorer",
    "RiskTier",
    "ScoringConfig",
    "ScoringResult",
    "SpendingLevel",
    "classify_tier",
    "extract_risk_factors",
    "recommend_interventions",
]
__version__ = "1.0.0"
