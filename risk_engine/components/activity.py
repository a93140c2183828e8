"""Inactivity normaliser."""

import pandas as pd

from .base import BaseNormalizer


class ActivityNormalizer(BaseNormalizer):
    """
    Normalise days since the subject's last activity.

    A month without activity saturates the signal:
    activity_norm = min(1, days_since_last_activity / 30)
    """

    name = "activity"

    @property
    def required_columns(self) -> list[str]:
        return ["DAYS_SINCE_LAST_ACTIVITY"]

    def normalize(self, df: pd.DataFrame) -> pd.Series:
        """Calculate the inactivity signal."""
        self.validate(df)
        return (
            df["DAYS_SINCE_LAST_ACTIVITY"].astype(float) / self.config.activity_cap
        ).clip(upper=1)
