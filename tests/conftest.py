"""
Pytest fixtures for the churn risk engine tests.
"""

from datetime import datetime, timezone

import numpy as np
import pandas as pd
import pytest

# Add package to path
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from risk_engine.config import EngineSettings, ScoringConfig
from risk_engine.db import create_engine_from_url, create_session_factory, init_db
from risk_engine.dispatcher import AlertDispatcher
from risk_engine.notifications import NotificationEmitter
from risk_engine.predictor import ChurnPredictor
from risk_engine.records import FeatureSnapshot, SpendingLevel
from risk_engine.scorer import RiskScorer
from risk_engine.store import (
    SqlActionLog,
    SqlFeatureSource,
    SqlNotificationSink,
    SqlPredictionStore,
)


FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def generate_sample_snapshots(n_subjects: int = 100, seed: int = 42) -> pd.DataFrame:
    """
    Generate a realistic population of feature snapshots.

    Wellness and engagement centred around 60, most subjects spending
    moderately, a long tail of inactive subjects.
    """
    rng = np.random.default_rng(seed)

    interventions = rng.integers(0, 4, size=n_subjects)
    completed = np.minimum(interventions, rng.integers(0, 3, size=n_subjects))

    return pd.DataFrame(
        {
            "SUBJECT_ID": [f"EMP_{i:05d}" for i in range(n_subjects)],
            "WELLNESS_SCORE": np.clip(rng.normal(60, 20, size=n_subjects), 0, 100).round(1),
            "SPENDING_LEVEL": rng.choice(
                ["low", "moderate", "high", "excessive"],
                size=n_subjects,
                p=[0.25, 0.45, 0.2, 0.1],
            ),
            "ENGAGEMENT_SCORE": np.clip(rng.normal(60, 25, size=n_subjects), 0, 100).round(1),
            "ACTIVE_ALERT_COUNT": rng.poisson(2, size=n_subjects),
            "INTERVENTION_COUNT": interventions,
            "COMPLETED_INTERVENTION_COUNT": completed,
            "DAYS_SINCE_LAST_ACTIVITY": rng.exponential(8, size=n_subjects).astype(int),
        }
    )


class RecordingSink:
    """Notification sink that keeps every write in memory."""

    def __init__(self):
        self.writes = []

    def write(self, subject_id, title, body, kind, metadata):
        self.writes.append({
            "subject_id": subject_id,
            "title": title,
            "body": body,
            "kind": kind,
            "metadata": dict(metadata),
        })

    def kinds(self):
        return [w["kind"] for w in self.writes]


class RecordingActionLog:
    def __init__(self):
        self.entries = []

    def append(self, entry):
        self.entries.append(entry)


# ── Snapshots ──────────────────────────────────────────────────────────


@pytest.fixture
def default_config():
    """Default scoring configuration."""
    return ScoringConfig()


@pytest.fixture
def scorer(default_config):
    """RiskScorer with default config."""
    return RiskScorer(default_config)


@pytest.fixture
def sample_data():
    """100 sample subjects with realistic distributions."""
    return generate_sample_snapshots(n_subjects=100, seed=42)


@pytest.fixture
def critical_snapshot():
    """Reference scenario: raw score 0.82, probability ~0.832."""
    return FeatureSnapshot(
        wellness_score=20,
        spending_level=SpendingLevel.EXCESSIVE,
        engagement_score=20,
        active_alert_count=8,
        days_since_last_activity=20,
    )


@pytest.fixture
def edge_cases():
    """Named snapshots covering every tier."""
    return {
        # raw 1.0 -> p 0.92
        "WORST": FeatureSnapshot(
            wellness_score=0,
            spending_level=SpendingLevel.EXCESSIVE,
            engagement_score=0,
            active_alert_count=10,
            intervention_count=2,
            completed_intervention_count=0,
            days_since_last_activity=30,
        ),
        # raw 0.82 -> p 0.83
        "CRITICAL": FeatureSnapshot(
            wellness_score=20,
            spending_level=SpendingLevel.EXCESSIVE,
            engagement_score=20,
            active_alert_count=8,
            days_since_last_activity=20,
        ),
        # raw 0.66 -> p 0.69
        "HIGH": FeatureSnapshot(
            wellness_score=30,
            spending_level=SpendingLevel.HIGH,
            engagement_score=40,
            active_alert_count=6,
            days_since_last_activity=20,
        ),
        # raw 0.44 -> p 0.43
        "MEDIUM": FeatureSnapshot(
            wellness_score=40,
            spending_level=SpendingLevel.MODERATE,
            engagement_score=45,
            active_alert_count=2,
            days_since_last_activity=12,
        ),
        # all defaults: raw 0.345 -> p 0.32
        "DEFAULT": FeatureSnapshot(),
        # raw 0.02 -> p 0.08
        "BEST": FeatureSnapshot(
            wellness_score=100,
            spending_level=SpendingLevel.LOW,
            engagement_score=100,
            active_alert_count=0,
            days_since_last_activity=0,
        ),
    }


@pytest.fixture
def edge_case_frame(edge_cases):
    return pd.DataFrame([
        {"SUBJECT_ID": name, **snapshot.to_row()}
        for name, snapshot in edge_cases.items()
    ])


# ── Stores ─────────────────────────────────────────────────────────────


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database with all tables."""
    engine = create_engine_from_url("sqlite://")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def feature_source(session_factory, edge_cases):
    source = SqlFeatureSource(session_factory)
    for name, snapshot in edge_cases.items():
        source.put_signals(
            name,
            wellness_score=snapshot.wellness_score,
            spending_level=str(snapshot.spending_level),
            engagement_score=snapshot.engagement_score,
            active_alert_count=snapshot.active_alert_count,
            intervention_count=snapshot.intervention_count,
            completed_intervention_count=snapshot.completed_intervention_count,
            days_since_last_activity=snapshot.days_since_last_activity,
        )
    return source


@pytest.fixture
def prediction_store(session_factory):
    return SqlPredictionStore(session_factory)


@pytest.fixture
def predictor(feature_source, prediction_store):
    """ChurnPredictor on SQLite with a frozen clock."""
    return ChurnPredictor(
        features=feature_source,
        store=prediction_store,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def recording_log():
    return RecordingActionLog()


@pytest.fixture
def dispatcher(recording_sink, recording_log):
    """AlertDispatcher writing to in-memory recorders."""
    return AlertDispatcher(
        emitter=NotificationEmitter(recording_sink),
        action_log=recording_log,
    )


@pytest.fixture
def sql_dispatcher(session_factory):
    return AlertDispatcher(
        emitter=NotificationEmitter(SqlNotificationSink(session_factory)),
        action_log=SqlActionLog(session_factory),
        settings=EngineSettings(database_url="sqlite://"),
    )
