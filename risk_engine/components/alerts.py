"""Active alert count normaliser."""

import pandas as pd

from .base import BaseNormalizer


class AlertNormalizer(BaseNormalizer):
    """
    Normalise the number of active alerts.

    Saturates at ``alert_cap`` (10) alerts:
    alert_norm = min(1, active_alert_count / 10)
    """

    name = "alerts"

    @property
    def required_columns(self) -> list[str]:
        return ["ACTIVE_ALERT_COUNT"]

    def normalize(self, df: pd.DataFrame) -> pd.Series:
        self.validate(df)
        return (df["ACTIVE_ALERT_COUNT"].astype(float) / self.config.alert_cap).clip(upper=1)
