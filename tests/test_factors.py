"""
Tests for risk factor extraction and intervention recommendations.
"""

import pytest

from risk_engine import RiskTier, extract_risk_factors, recommend_interventions
from risk_engine.records import FeatureSnapshot, SpendingLevel


class TestExtractRiskFactors:
    """Rule order and thresholds for risk factors."""

    def test_reference_scenario(self, critical_snapshot):
        factors = extract_risk_factors(critical_snapshot)

        assert factors == [
            "very low wellness score",
            "excessive spending patterns",
            "very low engagement",
            "multiple active alerts (8)",
            "inactive for 20 days",
        ]

    def test_default_snapshot_has_no_factors(self):
        assert extract_risk_factors(FeatureSnapshot()) == []

    @pytest.mark.parametrize("score,expected", [
        (39, ["very low wellness score"]),
        (40, ["low wellness score"]),
        (49.9, ["low wellness score"]),
        (50, []),
    ])
    def test_wellness_thresholds(self, score, expected):
        assert extract_risk_factors(FeatureSnapshot(wellness_score=score)) == expected

    @pytest.mark.parametrize("score,expected", [
        (29, ["very low engagement"]),
        (30, ["low engagement"]),
        (50, []),
    ])
    def test_engagement_thresholds(self, score, expected):
        assert extract_risk_factors(FeatureSnapshot(engagement_score=score)) == expected

    def test_spending_levels(self):
        assert extract_risk_factors(FeatureSnapshot(spending_level=SpendingLevel.HIGH)) == ["high spending level"]
        assert extract_risk_factors(FeatureSnapshot(spending_level=SpendingLevel.LOW)) == []

    def test_alert_and_activity_are_strict(self):
        """Five alerts and 14 idle days do not trigger; six and 15 do."""
        assert extract_risk_factors(FeatureSnapshot(active_alert_count=5, days_since_last_activity=14)) == []
        assert extract_risk_factors(FeatureSnapshot(active_alert_count=6, days_since_last_activity=15)) == [
            "multiple active alerts (6)",
            "inactive for 15 days",
        ]

    def test_no_completed_interventions(self):
        snapshot = FeatureSnapshot(intervention_count=3, completed_intervention_count=0)
        assert extract_risk_factors(snapshot) == ["no completed interventions"]

        snapshot = FeatureSnapshot(intervention_count=3, completed_intervention_count=1)
        assert extract_risk_factors(snapshot) == []

    def test_capped_at_five(self, edge_cases):
        """Six rules fire for the worst case; only the first five are kept."""
        factors = extract_risk_factors(edge_cases["WORST"])

        assert len(factors) == 5
        assert "no completed interventions" not in factors

    def test_high_scenario(self, edge_cases):
        assert extract_risk_factors(edge_cases["HIGH"]) == [
            "very low wellness score",
            "high spending level",
            "low engagement",
            "multiple active alerts (6)",
            "inactive for 20 days",
        ]


class TestRecommendInterventions:
    """Interventions follow factors; high-risk tiers get urgent outreach first."""

    def test_urgent_first_and_capped(self, critical_snapshot):
        factors = extract_risk_factors(critical_snapshot)
        interventions = recommend_interventions(factors, RiskTier.CRITICAL)

        assert interventions == [
            "urgent outreach",
            "one-on-one session",
            "wellness assessment",
            "personalized education program",
        ]

    def test_medium_tier_has_no_urgent_outreach(self, edge_cases):
        factors = extract_risk_factors(edge_cases["MEDIUM"])
        interventions = recommend_interventions(factors, RiskTier.MEDIUM)

        assert interventions == [
            "wellness assessment",
            "personalized education program",
            "engagement boost program",
            "peer mentoring",
        ]

    def test_spending_and_inactivity(self):
        factors = ["high spending level", "inactive for 20 days"]

        assert recommend_interventions(factors, "low") == [
            "spending analysis/budgeting",
            "debt resources",
            "re-engagement campaign",
            "personalized recommendations",
        ]

    def test_high_tier_without_factors(self):
        assert recommend_interventions([], RiskTier.HIGH) == ["urgent outreach", "one-on-one session"]

    def test_nothing_to_recommend(self):
        assert recommend_interventions([], RiskTier.MINIMAL) == []

    def test_never_more_than_four(self, sample_data, scorer):
        for _, row in sample_data.iterrows():
            snapshot = FeatureSnapshot.from_record({
                "wellness_score": row["WELLNESS_SCORE"],
                "spending_level": row["SPENDING_LEVEL"],
                "engagement_score": row["ENGAGEMENT_SCORE"],
                "active_alert_count": row["ACTIVE_ALERT_COUNT"],
                "days_since_last_activity": row["DAYS_SINCE_LAST_ACTIVITY"],
            })
            factors = extract_risk_factors(snapshot)
            assert len(factors) <= 5
            assert len(recommend_interventions(factors, RiskTier.CRITICAL)) <= 4
