"""
Ecosystem notifications.

One fixed title/body template per notification kind. The emitter renders
the template, builds the metadata recorded alongside it, and hands the
result to a NotificationSink. Delivery transports (push, email, webhook)
read from that sink and are not part of this package.
"""

from dataclasses import dataclass
from typing import Any, Callable, Mapping

import structlog

from .exceptions import TemplateError
from .records import NotificationKind, Urgency
from .store import NotificationSink

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NotificationTemplate:
    """Title/body format strings plus a metadata builder."""

    title: str
    body: str
    metadata: Callable[[Mapping[str, Any]], dict]


URGENCY_PREFIX = {
    Urgency.HIGH: "[Hot]",
    Urgency.MEDIUM: "[Featured]",
    Urgency.LOW: "[Tip]",
}


def _tier_upgrade_args(args: Mapping[str, Any]) -> dict:
    # rate_reduction arrives in basis points (50 = 0.50%)
    return {**args, "rate_reduction_pct": args["rate_reduction"] / 100}


def _recommendation_args(args: Mapping[str, Any]) -> dict:
    return {**args, "prefix": URGENCY_PREFIX[Urgency(args["urgency"])]}


TEMPLATES: dict[NotificationKind, NotificationTemplate] = {
    NotificationKind.TIER_UPGRADE: NotificationTemplate(
        title="Congratulations! You've reached {new_tier} tier!",
        body=(
            "You now have {discount}% discount on marketplace offers and "
            "{rate_reduction_pct:.2f}% reduction on advance rates."
        ),
        metadata=lambda a: {
            "old_tier": a["old_tier"],
            "new_tier": a["new_tier"],
            "discount": a["discount"],
            "rate_reduction": a["rate_reduction"],
        },
    ),
    NotificationKind.NEW_RECOMMENDATION: NotificationTemplate(
        title="{prefix} New Personalized Offer for You!",
        body="We found an offer that could save you ${estimated_savings}. Check it out now!",
        metadata=lambda a: {
            "type": a["recommendation_type"],
            "savings": a["estimated_savings"],
            "urgency": str(a["urgency"]),
        },
    ),
    NotificationKind.INTERVENTION_STARTED: NotificationTemplate(
        title="Financial Wellness Plan Started",
        body="We've created a personalized plan to help you: {expected_outcome}",
        metadata=lambda a: {
            "type": str(a["intervention_type"]),
            "outcome": a["expected_outcome"],
        },
    ),
    NotificationKind.INTERVENTION_COMPLETED: NotificationTemplate(
        title="Wellness Plan Completed!",
        body="Great job! You've achieved: {actual_outcome}. Estimated value: ${roi}",
        metadata=lambda a: {
            "type": str(a["intervention_type"]),
            "outcome": a["actual_outcome"],
            "roi": a["roi"],
        },
    ),
    NotificationKind.RATE_IMPROVED: NotificationTemplate(
        title="Your Advance Rate Just Improved!",
        body=(
            "Your rate dropped from {old_rate}% to {new_rate}% "
            "(wellness score: {wellness_score}). You're saving money!"
        ),
        metadata=lambda a: {
            "old_rate": a["old_rate"],
            "new_rate": a["new_rate"],
            "savings": round(a["old_rate"] - a["new_rate"], 4),
            "wellness_score": a["wellness_score"],
        },
    ),
    NotificationKind.MILESTONE: NotificationTemplate(
        title="Wellness Milestone Reached!",
        body=(
            "Your wellness score reached {score}! You're making great progress "
            "on your financial wellness journey."
        ),
        metadata=lambda a: {
            "score": a["score"],
            "milestone": a["milestone"],
        },
    ),
}

ARG_PREPARERS: dict[NotificationKind, Callable[[Mapping[str, Any]], dict]] = {
    NotificationKind.TIER_UPGRADE: _tier_upgrade_args,
    NotificationKind.NEW_RECOMMENDATION: _recommendation_args,
}


def render(kind: NotificationKind | str, template_args: Mapping[str, Any]) -> tuple[str, str, dict]:
    """
    Render the title, body and metadata for a notification kind.

    Raises:
        TemplateError: If the kind is unknown or an argument is missing
    """
    try:
        kind = NotificationKind(kind)
    except ValueError as e:
        raise TemplateError(f"Unknown notification kind: {kind!r}") from e

    template = TEMPLATES[kind]
    try:
        args = ARG_PREPARERS.get(kind, dict)(template_args)
        title = template.title.format(**args)
        body = template.body.format(**args)
        metadata = template.metadata(args)
    except (KeyError, ValueError, TypeError) as e:
        raise TemplateError(f"Cannot render {kind} notification: {e}") from e
    return title, body, metadata


class NotificationEmitter:
    """
    Renders and writes ecosystem notifications.

    ``emit`` is the generic entry point; the named helpers mirror each
    ecosystem trigger and fill in the template arguments.
    """

    def __init__(self, sink: NotificationSink):
        self.sink = sink

    def emit(self, subject_id: str, kind: NotificationKind | str, template_args: Mapping[str, Any]) -> None:
        """
        Render and write one notification.

        Raises:
            TemplateError: If the template cannot be rendered
            StoreError: If the sink write fails
        """
        title, body, metadata = render(kind, template_args)
        self.sink.write(subject_id, title, body, NotificationKind(kind), metadata)
        logger.info("notification_emitted", subject_id=subject_id, kind=str(kind))

    def tier_upgrade(
        self,
        subject_id: str,
        old_tier: str,
        new_tier: str,
        discount: float,
        rate_reduction: float,
    ) -> None:
        self.emit(subject_id, NotificationKind.TIER_UPGRADE, {
            "old_tier": old_tier,
            "new_tier": new_tier,
            "discount": discount,
            "rate_reduction": rate_reduction,
        })

    def new_recommendation(
        self,
        subject_id: str,
        recommendation_type: str,
        estimated_savings: int,
        urgency: Urgency,
    ) -> None:
        self.emit(subject_id, NotificationKind.NEW_RECOMMENDATION, {
            "recommendation_type": recommendation_type,
            "estimated_savings": estimated_savings,
            "urgency": urgency,
        })

    def intervention_started(self, subject_id: str, intervention_type: str, expected_outcome: str) -> None:
        self.emit(subject_id, NotificationKind.INTERVENTION_STARTED, {
            "intervention_type": intervention_type,
            "expected_outcome": expected_outcome,
        })

    def intervention_completed(
        self,
        subject_id: str,
        intervention_type: str,
        actual_outcome: str,
        roi: float,
    ) -> None:
        self.emit(subject_id, NotificationKind.INTERVENTION_COMPLETED, {
            "intervention_type": intervention_type,
            "actual_outcome": actual_outcome,
            "roi": roi,
        })

    def rate_improved(self, subject_id: str, old_rate: float, new_rate: float, wellness_score: float) -> None:
        self.emit(subject_id, NotificationKind.RATE_IMPROVED, {
            "old_rate": old_rate,
            "new_rate": new_rate,
            "wellness_score": wellness_score,
        })

    def milestone(self, subject_id: str, score: float, milestone: int) -> None:
        self.emit(subject_id, NotificationKind.MILESTONE, {
            "score": score,
            "milestone": milestone,
        })
