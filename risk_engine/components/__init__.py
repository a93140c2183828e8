"""Feature normalisers for the churn model."""

from .base import BaseNormalizer
from .wellness import WellnessNormalizer
from .spending import SpendingNormalizer
from .engagement import EngagementNormalizer
from .alerts import AlertNormalizer
from .activity import ActivityNormalizer

__all__ = [
    "BaseNormalizer",
    "WellnessNormalizer",
    "SpendingNormalizer",
    "EngagementNormalizer",
    "AlertNormalizer",
    "ActivityNormalizer",
]
