"""Engagement normaliser."""

import pandas as pd

from .base import BaseNormalizer


class EngagementNormalizer(BaseNormalizer):
    """
    Normalise the 0-100 engagement score.

    engagement_norm = max(0, 1 - engagement_score / 100)
    """

    name = "engagement"

    @property
    def required_columns(self) -> list[str]:
        return ["ENGAGEMENT_SCORE"]

    def normalize(self, df: pd.DataFrame) -> pd.Series:
        self.validate(df)
        return (1 - df["ENGAGEMENT_SCORE"].astype(float) / 100).clip(lower=0)
