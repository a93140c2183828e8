"""
Alert integration dispatcher.

Maps a business alert onto ecosystem actions through ALERT_RULES, a
declarative table keyed by alert type. Each alert type declares the
payload it needs and an ordered list of (condition, action) pairs; adding
an alert type means adding an entry, not editing dispatch logic.

Dispatch never raises to the caller. Each action runs on its own, its
outcome goes to the action log, and a failing action does not stop the
ones after it.
"""

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Mapping, Optional, Sequence

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .batching import run_isolated
from .config import EngineSettings
from .exceptions import PayloadError
from .notifications import NotificationEmitter
from .records import (
    ActionLogEntry,
    ActionOutcome,
    AlertEvent,
    AlertType,
    InterventionType,
    Urgency,
)
from .store import ActionLogSink

logger = structlog.get_logger(__name__)


# ── Payloads ───────────────────────────────────────────────────────────


def _field(snake: str, camel: str, **kwargs):
    """Accept both snake_case and camelCase payload keys."""
    return Field(validation_alias=AliasChoices(snake, camel), **kwargs)


class AlertPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class LowWellnessPayload(AlertPayload):
    wellness_score: float = _field("wellness_score", "wellnessScore", ge=0, le=100)


class HighSpendingPayload(AlertPayload):
    amount: float = Field(ge=0)
    category: str = Field(min_length=1)


class FrequentAdvancePayload(AlertPayload):
    count: int = Field(ge=0)


class WellnessImprovementPayload(AlertPayload):
    old_score: float = _field("old_score", "oldScore", ge=0, le=100)
    new_score: float = _field("new_score", "newScore", ge=0, le=100)


class TierUpgradePayload(AlertPayload):
    old_tier: str = _field("old_tier", "oldTier")
    new_tier: str = _field("new_tier", "newTier")
    discount: float = Field(ge=0)
    rate_reduction: float = _field("rate_reduction", "rateReduction", ge=0)


# ── Rule table ─────────────────────────────────────────────────────────


# Spending reduction offers are estimated to save 15% of the flagged amount
SPENDING_SAVINGS_RATE = 0.15
GOALS_SPENDING_THRESHOLD = 5000
COUNSELING_WELLNESS_THRESHOLD = 30
EDUCATION_WELLNESS_THRESHOLD = 50
ADVANCE_REQUEST_THRESHOLD = 5
RATE_IMPROVEMENT_MIN_GAIN = 5
ASSUMED_OLD_RATE = 4.5
ASSUMED_NEW_RATE = 3.5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _decile(score: float) -> int:
    return int(math.floor(score / 10))


Action = Callable[[NotificationEmitter, str, AlertPayload], None]
Condition = Callable[[AlertPayload], bool]


def _always(payload: AlertPayload) -> bool:
    return True


@dataclass(frozen=True)
class ActionRule:
    """One conditional action within an alert rule."""

    action: str
    run: Action
    condition: Condition = _always


@dataclass(frozen=True)
class AlertRule:
    """Payload model plus the ordered actions for one alert type."""

    payload_model: type[AlertPayload]
    actions: tuple[ActionRule, ...]


def start_intervention(intervention: InterventionType, outcome: str | Callable[[AlertPayload], str]) -> ActionRule:
    """Build an action that starts an intervention plan for the subject."""

    def run(emitter: NotificationEmitter, subject_id: str, payload: AlertPayload) -> None:
        expected = outcome(payload) if callable(outcome) else outcome
        emitter.intervention_started(subject_id, intervention, expected)

    return ActionRule(action=f"start_intervention:{intervention}", run=run)


def _with_condition(rule: ActionRule, condition: Condition) -> ActionRule:
    return ActionRule(action=rule.action, run=rule.run, condition=condition)


ALERT_RULES: dict[AlertType, AlertRule] = {
    AlertType.LOW_WELLNESS: AlertRule(
        payload_model=LowWellnessPayload,
        actions=(
            _with_condition(
                start_intervention(
                    InterventionType.COUNSELING,
                    "Personalized financial counseling to improve your wellness score",
                ),
                lambda p: p.wellness_score < COUNSELING_WELLNESS_THRESHOLD,
            ),
            ActionRule(
                action="new_recommendation",
                condition=lambda p: p.wellness_score < EDUCATION_WELLNESS_THRESHOLD,
                run=lambda em, s, p: em.new_recommendation(s, "education", 0, Urgency.HIGH),
            ),
        ),
    ),
    AlertType.HIGH_SPENDING: AlertRule(
        payload_model=HighSpendingPayload,
        actions=(
            ActionRule(
                action="new_recommendation",
                run=lambda em, s, p: em.new_recommendation(
                    s,
                    f"{p.category} spending reduction",
                    _round_half_up(p.amount * SPENDING_SAVINGS_RATE),
                    Urgency.HIGH,
                ),
            ),
            _with_condition(
                start_intervention(
                    InterventionType.GOALS,
                    lambda p: f"Create a spending goal for {p.category} to reduce expenses",
                ),
                lambda p: p.amount > GOALS_SPENDING_THRESHOLD,
            ),
        ),
    ),
    AlertType.FREQUENT_ADVANCE_REQUESTS: AlertRule(
        payload_model=FrequentAdvancePayload,
        actions=(
            _with_condition(
                start_intervention(
                    InterventionType.EDUCATION,
                    "Financial literacy program to reduce dependency on salary advances",
                ),
                lambda p: p.count > ADVANCE_REQUEST_THRESHOLD,
            ),
            ActionRule(
                action="new_recommendation",
                run=lambda em, s, p: em.new_recommendation(s, "budget optimization", 0, Urgency.MEDIUM),
            ),
        ),
    ),
    AlertType.WELLNESS_IMPROVEMENT: AlertRule(
        payload_model=WellnessImprovementPayload,
        actions=(
            ActionRule(
                action="milestone",
                condition=lambda p: _decile(p.new_score) > _decile(p.old_score),
                run=lambda em, s, p: em.milestone(s, p.new_score, _decile(p.new_score) * 10),
            ),
            ActionRule(
                action="rate_improved",
                condition=lambda p: p.new_score - p.old_score >= RATE_IMPROVEMENT_MIN_GAIN,
                run=lambda em, s, p: em.rate_improved(s, ASSUMED_OLD_RATE, ASSUMED_NEW_RATE, p.new_score),
            ),
        ),
    ),
    AlertType.TIER_UPGRADE: AlertRule(
        payload_model=TierUpgradePayload,
        actions=(
            ActionRule(
                action="tier_upgrade",
                run=lambda em, s, p: em.tier_upgrade(s, p.old_tier, p.new_tier, p.discount, p.rate_reduction),
            ),
        ),
    ),
}


# ── Dispatcher ─────────────────────────────────────────────────────────


class DispatchOutcome(StrEnum):
    PROCESSED = "processed"   # every triggered action succeeded
    FAILED = "failed"         # invalid payload or at least one action failed
    UNHANDLED = "unhandled"   # unknown alert type


@dataclass(frozen=True)
class DispatchResult:
    subject_id: str
    alert_type: str
    outcome: DispatchOutcome
    actions: tuple[ActionLogEntry, ...] = ()


def parse_payload(alert_type: AlertType, payload, rule: Optional[AlertRule] = None) -> AlertPayload:
    """
    Validate an alert payload against its rule's model.

    Args:
        alert_type: Alert type the payload belongs to
        payload: Raw payload; None is treated as empty
        rule: Rule to validate against. Looked up in ALERT_RULES if None.

    Raises:
        PayloadError: If the payload is not a mapping or its keys are missing or invalid
    """
    model = (rule or ALERT_RULES[alert_type]).payload_model
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise PayloadError(f"Invalid {alert_type} payload: expected a mapping, got {type(payload).__name__}")
    try:
        return model.model_validate(dict(payload))
    except ValidationError as e:
        raise PayloadError(f"Invalid {alert_type} payload: {e.error_count()} error(s): {e}") from e


class AlertDispatcher:
    """
    Routes alert events to ecosystem actions via ALERT_RULES.

    Args:
        emitter: Notification emitter used by every action
        action_log: Optional sink for ActionLogEntry records
        settings: EngineSettings (batch_workers is used by dispatch_batch)
        rules: Override the rule table (defaults to ALERT_RULES)
    """

    def __init__(
        self,
        emitter: NotificationEmitter,
        action_log: Optional[ActionLogSink] = None,
        settings: Optional[EngineSettings] = None,
        rules: Optional[dict[AlertType, AlertRule]] = None,
    ):
        self.emitter = emitter
        self.action_log = action_log
        self.settings = settings or EngineSettings()
        self.rules = rules if rules is not None else ALERT_RULES

    def dispatch(self, event: AlertEvent) -> None:
        """Process one alert event. Never raises."""
        try:
            self._dispatch(event)
        except Exception as e:
            logger.error(
                "alert_dispatch_crashed",
                subject_id=event.subject_id,
                alert_type=event.alert_type,
                error=str(e),
            )

    def dispatch_batch(self, events: Sequence[AlertEvent]) -> list[DispatchResult]:
        """
        Process many alert events, isolating each one.

        Returns:
            One DispatchResult per event, in input order
        """
        results = []
        for unit in run_isolated(self._dispatch, list(events), self.settings.batch_workers):
            if unit.ok:
                results.append(unit.value)
                continue
            logger.error(
                "alert_dispatch_crashed",
                subject_id=unit.unit.subject_id,
                alert_type=unit.unit.alert_type,
                error=str(unit.error),
            )
            results.append(DispatchResult(
                subject_id=unit.unit.subject_id,
                alert_type=unit.unit.alert_type,
                outcome=DispatchOutcome.FAILED,
            ))

        logger.info(
            "alert_batch_dispatched",
            total=len(results),
            failed=sum(1 for r in results if r.outcome == DispatchOutcome.FAILED),
            unhandled=sum(1 for r in results if r.outcome == DispatchOutcome.UNHANDLED),
        )
        return results

    def _dispatch(self, event: AlertEvent) -> DispatchResult:
        log = logger.bind(subject_id=event.subject_id, alert_type=event.alert_type)

        try:
            alert_type = AlertType(event.alert_type)
            rule = self.rules[alert_type]
        except (ValueError, KeyError):
            log.warning("unhandled_event_type")
            return DispatchResult(event.subject_id, event.alert_type, DispatchOutcome.UNHANDLED)

        try:
            payload = parse_payload(alert_type, event.payload, rule)
        except PayloadError as e:
            log.warning("alert_payload_invalid", error=str(e))
            entry = self._record(event, "validate_payload", ActionOutcome.FAILED, str(e))
            return DispatchResult(event.subject_id, event.alert_type, DispatchOutcome.FAILED, (entry,))

        entries = []
        for action in rule.actions:
            if not action.condition(payload):
                continue
            try:
                action.run(self.emitter, event.subject_id, payload)
            except Exception as e:
                log.error("alert_action_failed", action=action.action, error=str(e))
                entries.append(self._record(event, action.action, ActionOutcome.FAILED, str(e)))
            else:
                log.info("alert_action_succeeded", action=action.action)
                entries.append(self._record(event, action.action, ActionOutcome.SUCCESS))

        failed = any(entry.outcome == ActionOutcome.FAILED for entry in entries)
        return DispatchResult(
            subject_id=event.subject_id,
            alert_type=event.alert_type,
            outcome=DispatchOutcome.FAILED if failed else DispatchOutcome.PROCESSED,
            actions=tuple(entries),
        )

    def _record(
        self,
        event: AlertEvent,
        action: str,
        outcome: ActionOutcome,
        detail: Optional[str] = None,
    ) -> ActionLogEntry:
        """Append to the action log; logging failures never change the outcome."""
        entry = ActionLogEntry(
            subject_id=event.subject_id,
            alert_type=event.alert_type,
            action=action,
            outcome=outcome,
            detail=detail,
        )
        if self.action_log is not None:
            try:
                self.action_log.append(entry)
            except Exception as e:
                logger.warning(
                    "action_log_append_failed",
                    subject_id=event.subject_id,
                    action=action,
                    error=str(e),
                )
        return entry
