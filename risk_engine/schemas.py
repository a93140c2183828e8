"""
Data schema definitions for churn risk scoring.

Uses Pandera for runtime validation of snapshot DataFrames so that bad
upstream signals are caught before scoring.
"""

from pandera import Column, Check, DataFrameSchema

from .records import RiskTier, SpendingLevel


SCORE_RANGE = [
    Check.greater_than_or_equal_to(0),
    Check.less_than_or_equal_to(100),
]


# Schema for scoring input data
SCORING_INPUT_SCHEMA = DataFrameSchema(
    {
        "SUBJECT_ID": Column(
            str,
            nullable=False,
            unique=True,
            description="Unique subject identifier"
        ),
        "WELLNESS_SCORE": Column(
            float,
            nullable=False,
            checks=SCORE_RANGE,
            description="Financial wellness (FWI) score, 0-100"
        ),
        "SPENDING_LEVEL": Column(
            str,
            nullable=False,
            checks=Check.isin([level.value for level in SpendingLevel]),
            description="Spending category (low, moderate, high, excessive)"
        ),
        "ENGAGEMENT_SCORE": Column(
            float,
            nullable=False,
            checks=SCORE_RANGE,
            description="Engagement score, 0-100"
        ),
        "ACTIVE_ALERT_COUNT": Column(
            int,
            nullable=False,
            checks=Check.greater_than_or_equal_to(0),
            description="Number of currently active alerts"
        ),
        "INTERVENTION_COUNT": Column(
            int,
            nullable=False,
            checks=Check.greater_than_or_equal_to(0),
            description="Intervention plans ever started"
        ),
        "COMPLETED_INTERVENTION_COUNT": Column(
            int,
            nullable=False,
            checks=Check.greater_than_or_equal_to(0),
            description="Intervention plans completed"
        ),
        "DAYS_SINCE_LAST_ACTIVITY": Column(
            int,
            nullable=False,
            checks=Check.greater_than_or_equal_to(0),
            description="Days since the subject's last recorded activity"
        ),
    },
    checks=[
        Check(
            lambda df: df["COMPLETED_INTERVENTION_COUNT"] <= df["INTERVENTION_COUNT"],
            error="completed interventions exceed total interventions",
        ),
    ],
    strict=False,  # Allow extra columns (for flexibility with additional fields)
    coerce=True,   # Try to coerce types automatically
    description="Schema for churn risk scoring input data"
)


# Schema for scoring output data
SCORING_OUTPUT_SCHEMA = DataFrameSchema(
    {
        "SUBJECT_ID": Column(str, nullable=False),
        "RAW_SCORE": Column(
            float,
            nullable=False,
            checks=Check.greater_than_or_equal_to(0)
        ),
        "CHURN_PROBABILITY": Column(
            float,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0),
                Check.less_than_or_equal_to(1),
            ]
        ),
        "RISK_TIER": Column(
            str,
            nullable=False,
            coerce=True,
            checks=Check.isin([tier.value for tier in RiskTier])
        ),
    },
    strict=False,  # Allow component columns
    description="Schema for churn risk scoring output data"
)
