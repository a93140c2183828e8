"""Financial wellness normaliser."""

import pandas as pd

from .base import BaseNormalizer


class WellnessNormalizer(BaseNormalizer):
    """
    Normalise the 0-100 wellness (FWI) score.

    A low wellness score is the strongest churn signal and carries
    the largest weight (30%).

    wellness_norm = max(0, 1 - wellness_score / 100)
    """

    name = "wellness"

    @property
    def required_columns(self) -> list[str]:
        return ["WELLNESS_SCORE"]

    def normalize(self, df: pd.DataFrame) -> pd.Series:
        """Invert the wellness score onto [0, 1]."""
        self.validate(df)
        return (1 - df["WELLNESS_SCORE"].astype(float) / 100).clip(lower=0)
