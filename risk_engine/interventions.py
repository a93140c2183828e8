"""
Intervention recommendations.

Each rule appends its interventions independently when it matches; the
combined list is then cut to ``max_interventions``, so earlier rules win.
"""

from typing import Iterable, Optional

from .config import ScoringConfig, DEFAULT_CONFIG
from .records import HIGH_RISK_TIERS, RiskTier


# (keyword found in a risk factor, interventions to add)
FACTOR_INTERVENTIONS: list[tuple[str, tuple[str, ...]]] = [
    ("wellness", ("wellness assessment", "personalized education program")),
    ("spending", ("spending analysis/budgeting", "debt resources")),
    ("engagement", ("engagement boost program", "peer mentoring")),
    ("inactive", ("re-engagement campaign", "personalized recommendations")),
]

URGENT_INTERVENTIONS = ("urgent outreach", "one-on-one session")


def recommend_interventions(
    risk_factors: Iterable[str],
    tier: RiskTier | str,
    config: Optional[ScoringConfig] = None,
) -> list[str]:
    """
    Suggest interventions for a subject.

    Args:
        risk_factors: Output of ``extract_risk_factors``
        tier: The subject's risk tier
        config: ScoringConfig with the output cap. DEFAULT_CONFIG if None.

    Returns:
        Up to ``max_interventions`` strings, urgent outreach first
    """
    config = config or DEFAULT_CONFIG
    factors = [factor.lower() for factor in risk_factors]
    interventions: list[str] = []

    if RiskTier(tier) in HIGH_RISK_TIERS:
        interventions.extend(URGENT_INTERVENTIONS)

    for keyword, suggestions in FACTOR_INTERVENTIONS:
        if any(keyword in factor for factor in factors):
            interventions.extend(suggestions)

    return interventions[: config.max_interventions]
