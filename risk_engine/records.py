"""
Value types shared by the scoring core and the engine shell.

Everything here is a plain, immutable value: the pure scoring functions take
and return these, the stores persist them.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any, Mapping, Optional


# ── Enums ──────────────────────────────────────────────────────────────


class SpendingLevel(StrEnum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXCESSIVE = "excessive"


class RiskTier(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    MINIMAL = "minimal"


HIGH_RISK_TIERS = frozenset({RiskTier.CRITICAL, RiskTier.HIGH})

# Most severe first
TIER_ORDER = [RiskTier.CRITICAL, RiskTier.HIGH, RiskTier.MEDIUM, RiskTier.LOW, RiskTier.MINIMAL]


class AlertType(StrEnum):
    LOW_WELLNESS = "low_wellness"
    HIGH_SPENDING = "high_spending"
    FREQUENT_ADVANCE_REQUESTS = "frequent_advance_requests"
    WELLNESS_IMPROVEMENT = "wellness_improvement"
    TIER_UPGRADE = "tier_upgrade"


class NotificationKind(StrEnum):
    TIER_UPGRADE = "tier-upgrade"
    NEW_RECOMMENDATION = "new-recommendation"
    INTERVENTION_STARTED = "intervention-started"
    INTERVENTION_COMPLETED = "intervention-completed"
    RATE_IMPROVED = "rate-improved"
    MILESTONE = "milestone"


class InterventionType(StrEnum):
    EDUCATION = "education"
    COUNSELING = "counseling"
    GOALS = "goals"
    OFFERS = "offers"
    MANAGER_OUTREACH = "manager_outreach"


class Urgency(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ActionOutcome(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Feature snapshot ───────────────────────────────────────────────────


@dataclass(frozen=True)
class FeatureSnapshot:
    """
    Current signals for one subject at evaluation time.

    Read-only view; build it with ``from_record`` so missing signals
    get their documented defaults.
    """

    wellness_score: float = 50
    spending_level: SpendingLevel = SpendingLevel.MODERATE
    engagement_score: float = 50
    active_alert_count: int = 0
    intervention_count: int = 0
    completed_intervention_count: int = 0
    days_since_last_activity: int = 7

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "FeatureSnapshot":
        """
        Build a snapshot from a raw mapping of signals.

        Keys that are absent or None fall back to the dataclass defaults.
        Zero is a real value and is kept.
        """
        defaults = cls()
        values = {}
        for name in cls.__dataclass_fields__:
            value = record.get(name)
            values[name] = getattr(defaults, name) if value is None else value
        values["spending_level"] = SpendingLevel(values["spending_level"])
        return cls(**values)

    def to_row(self) -> dict:
        """Render as a DataFrame row using the scoring column names."""
        return {
            "WELLNESS_SCORE": self.wellness_score,
            "SPENDING_LEVEL": str(self.spending_level),
            "ENGAGEMENT_SCORE": self.engagement_score,
            "ACTIVE_ALERT_COUNT": self.active_alert_count,
            "INTERVENTION_COUNT": self.intervention_count,
            "COMPLETED_INTERVENTION_COUNT": self.completed_intervention_count,
            "DAYS_SINCE_LAST_ACTIVITY": self.days_since_last_activity,
        }


# ── Prediction ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChurnPrediction:
    """Current churn prediction for a subject. One row per subject."""

    subject_id: str
    churn_probability: float
    risk_tier: RiskTier
    predicted_churn_date: date
    main_risk_factors: tuple[str, ...] = ()
    recommended_interventions: tuple[str, ...] = ()
    evaluated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["risk_tier"] = str(self.risk_tier)
        data["predicted_churn_date"] = self.predicted_churn_date.isoformat()
        data["evaluated_at"] = self.evaluated_at.isoformat()
        data["main_risk_factors"] = list(self.main_risk_factors)
        data["recommended_interventions"] = list(self.recommended_interventions)
        return data


# ── Alerts ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlertEvent:
    """
    A business alert handed to the dispatcher.

    ``alert_type`` stays a plain string so that unknown types reach the
    dispatcher and are reported as unhandled instead of failing here.
    """

    subject_id: str
    alert_type: str
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActionLogEntry:
    subject_id: str
    alert_type: str
    action: str
    outcome: ActionOutcome
    timestamp: datetime = field(default_factory=utcnow)
    detail: Optional[str] = None
