"""
Risk factor extraction.

Turns a feature snapshot into a short, ordered list of human-readable
reasons for the subject's churn risk. Rules are checked in a fixed order
(most severe first) and only triggered rules contribute.
"""

from typing import Optional

from .config import ScoringConfig, DEFAULT_CONFIG
from .records import FeatureSnapshot, SpendingLevel


def extract_risk_factors(
    snapshot: FeatureSnapshot,
    config: Optional[ScoringConfig] = None,
) -> list[str]:
    """
    List the main risk factors for a subject.

    Rule order:
    1. wellness (very low < 40, low < 50)
    2. spending (excessive, high)
    3. engagement (very low < 30, low < 50)
    4. more than 5 active alerts
    5. inactive for more than 14 days
    6. interventions started but none completed

    Args:
        snapshot: Current signals for the subject
        config: ScoringConfig with factor thresholds. DEFAULT_CONFIG if None.

    Returns:
        Up to ``max_risk_factors`` strings, in rule order
    """
    config = config or DEFAULT_CONFIG
    factors: list[str] = []

    if snapshot.wellness_score < config.very_low_wellness:
        factors.append("very low wellness score")
    elif snapshot.wellness_score < config.low_wellness:
        factors.append("low wellness score")

    if snapshot.spending_level == SpendingLevel.EXCESSIVE:
        factors.append("excessive spending patterns")
    elif snapshot.spending_level == SpendingLevel.HIGH:
        factors.append("high spending level")

    if snapshot.engagement_score < config.very_low_engagement:
        factors.append("very low engagement")
    elif snapshot.engagement_score < config.low_engagement:
        factors.append("low engagement")

    if snapshot.active_alert_count > config.many_alerts:
        factors.append(f"multiple active alerts ({snapshot.active_alert_count})")

    if snapshot.days_since_last_activity > config.inactive_days:
        factors.append(f"inactive for {snapshot.days_since_last_activity} days")

    if snapshot.intervention_count > 0 and snapshot.completed_intervention_count == 0:
        factors.append("no completed interventions")

    return factors[: config.max_risk_factors]
