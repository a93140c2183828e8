"""
Tests for scoring constants, runtime settings and snapshot defaults.
"""

import pytest

from risk_engine.config import DEFAULT_CONFIG, EngineSettings, ScoringConfig
from risk_engine.records import FeatureSnapshot, RiskTier, SpendingLevel


class TestScoringConfig:
    def test_weights_sum_to_one(self, default_config):
        assert sum(default_config.weights.values()) == pytest.approx(1.0)

    def test_thresholds_descending(self, default_config):
        bounds = [bound for bound, _ in default_config.tier_thresholds]
        assert bounds == sorted(bounds, reverse=True)

    def test_custom_thresholds(self):
        config = ScoringConfig(tier_thresholds=[(0.5, RiskTier.CRITICAL)])

        assert config.get_risk_tier(0.55) == RiskTier.CRITICAL
        assert config.get_risk_tier(0.45) == RiskTier.MINIMAL

    def test_default_instance(self):
        assert DEFAULT_CONFIG == ScoringConfig()


class TestEngineSettings:
    """YAML and environment loading."""

    def test_defaults(self):
        settings = EngineSettings()

        assert settings.batch_workers == 1
        assert settings.high_risk_limit == 100
        assert settings.log_format == "console"

    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / "config" / "engine.yaml"
        settings = EngineSettings(database_url="sqlite:///x.db", batch_workers=4, log_format="json")
        settings.to_yaml(path)

        assert EngineSettings.from_yaml(path) == settings

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("")

        assert EngineSettings.from_yaml(path) == EngineSettings()

    def test_unknown_yaml_key_rejected(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("batch_size: 10\n")

        with pytest.raises(TypeError):
            EngineSettings.from_yaml(path)

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RISK_ENGINE_DATABASE_URL", "postgresql://db/risk")
        monkeypatch.setenv("RISK_ENGINE_BATCH_WORKERS", "8")
        monkeypatch.setenv("RISK_ENGINE_LOG_LEVEL", "DEBUG")

        settings = EngineSettings.from_env(EngineSettings(high_risk_limit=25))

        assert settings.database_url == "postgresql://db/risk"
        assert settings.batch_workers == 8
        assert settings.log_level == "DEBUG"
        assert settings.high_risk_limit == 25

    @pytest.mark.parametrize("kwargs", [
        {"batch_workers": 0},
        {"high_risk_limit": 0},
        {"log_format": "xml"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            EngineSettings(**kwargs)


class TestFeatureSnapshot:
    """Defaults for missing signals."""

    def test_empty_record(self):
        assert FeatureSnapshot.from_record({}) == FeatureSnapshot()

    def test_documented_defaults(self):
        snapshot = FeatureSnapshot()

        assert snapshot.wellness_score == 50
        assert snapshot.spending_level == SpendingLevel.MODERATE
        assert snapshot.engagement_score == 50
        assert snapshot.active_alert_count == 0
        assert snapshot.intervention_count == 0
        assert snapshot.completed_intervention_count == 0
        assert snapshot.days_since_last_activity == 7

    def test_none_replaced_zero_kept(self):
        snapshot = FeatureSnapshot.from_record({
            "wellness_score": None,
            "engagement_score": 0,
            "days_since_last_activity": 0,
        })

        assert snapshot.wellness_score == 50
        assert snapshot.engagement_score == 0
        assert snapshot.days_since_last_activity == 0

    def test_invalid_spending_level(self):
        with pytest.raises(ValueError):
            FeatureSnapshot.from_record({"spending_level": "lavish"})
