"""Spending level normaliser."""

import pandas as pd

from .base import BaseNormalizer


class SpendingNormalizer(BaseNormalizer):
    """
    Map the spending category onto a fixed risk value.

    Values:
    - excessive: 1.0
    - high: 0.7
    - moderate: 0.3
    - low: 0.1

    Categories are checked by the input schema before scoring, so every
    row reaching ``normalize`` has one of the four levels. A missing
    signal was already defaulted to moderate by ``FeatureSnapshot``.
    """

    name = "spending"

    @property
    def required_columns(self) -> list[str]:
        return ["SPENDING_LEVEL"]

    def normalize(self, df: pd.DataFrame) -> pd.Series:
        """Map spending levels to risk values."""
        self.validate(df)
        return df["SPENDING_LEVEL"].astype(str).map(self.config.spending_norm).astype(float)
