"""Base class for feature normalisers."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from ..config import ScoringConfig


class BaseNormalizer(ABC):
    """
    One churn signal, rescaled so that 0 is no risk and 1 is full risk.

    Subclasses read their signal columns from a snapshot frame and return
    one value per subject. Scores such as wellness are inverted (a high
    score means low risk); counts such as alerts or idle days saturate at
    a cap from ScoringConfig. The scorer multiplies the result by
    ``weight`` and sums across normalisers to get the raw score.
    """

    name: str = "base"

    def __init__(self, config: "ScoringConfig"):
        self.config = config

    @property
    def weight(self) -> float:
        """Share of the raw score carried by this signal."""
        return self.config.weights[self.name]

    @abstractmethod
    def normalize(self, df: pd.DataFrame) -> pd.Series:
        """
        Rescale this signal for every subject in ``df``.

        Returns:
            Series aligned with ``df.index``, values in [0, 1]
        """

    @property
    @abstractmethod
    def required_columns(self) -> list[str]:
        """Snapshot columns this signal is read from."""

    def validate(self, df: pd.DataFrame) -> None:
        missing = set(self.required_columns) - set(df.columns)
        if missing:
            raise ValueError(
                f"{self.__class__.__name__} requires columns: {missing}"
            )
