"""
Store collaborators for the engine shell.

Protocols define what the orchestrator and dispatcher need; the Sql*
classes implement them on SQLAlchemy. Every SQLAlchemy failure surfaces
as StoreError so callers can isolate it per subject or event.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timezone
from typing import Any, Iterable, Iterator, Mapping, Optional, Protocol

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .db import (
    AlertActionLog,
    ChurnPredictionRecord,
    Notification,
    SubjectSignals,
    session_scope,
)
from .exceptions import StoreError, SubjectNotFoundError
from .records import (
    ActionLogEntry,
    ChurnPrediction,
    FeatureSnapshot,
    NotificationKind,
    RiskTier,
    TIER_ORDER,
)

logger = structlog.get_logger(__name__)


# ── Protocols ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PredictionStats:
    """Aggregate view over all current predictions."""

    total_predictions: int = 0
    by_tier: dict[str, int] = field(default_factory=dict)
    avg_churn_probability: float = 0.0


class FeatureSource(Protocol):
    def get_feature_snapshot(self, subject_id: str) -> FeatureSnapshot:
        ...


class PredictionStore(Protocol):
    def upsert(self, prediction: ChurnPrediction) -> None:
        ...

    def get_by_subject(self, subject_id: str) -> Optional[ChurnPrediction]:
        ...

    def list_by_tier(self, tiers: Iterable[RiskTier], limit: int) -> list[ChurnPrediction]:
        ...

    def stats(self) -> PredictionStats:
        ...


class NotificationSink(Protocol):
    def write(
        self,
        subject_id: str,
        title: str,
        body: str,
        kind: NotificationKind,
        metadata: Mapping[str, Any],
    ) -> None:
        ...


class ActionLogSink(Protocol):
    def append(self, entry: ActionLogEntry) -> None:
        ...


# ── SQLAlchemy implementations ─────────────────────────────────────────


@contextmanager
def _store_errors(operation: str, factory: sessionmaker[Session]) -> Iterator[Session]:
    """Open a session scope and translate database errors into StoreError."""
    try:
        with session_scope(factory) as session:
            yield session
    except SQLAlchemyError as e:
        logger.error("store_operation_failed", operation=operation, error=str(e))
        raise StoreError(f"{operation} failed: {e}") from e


def _as_utc(value):
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlFeatureSource:
    """Reads feature snapshots from the subject_signals table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def get_feature_snapshot(self, subject_id: str) -> FeatureSnapshot:
        with _store_errors("feature read", self.session_factory) as session:
            row = session.get(SubjectSignals, subject_id)
            if row is None:
                raise SubjectNotFoundError(subject_id)
            record = {
                name: getattr(row, name)
                for name in FeatureSnapshot.__dataclass_fields__
            }
        return FeatureSnapshot.from_record(record)

    def put_signals(self, subject_id: str, **signals: Any) -> None:
        """Insert or replace the raw signals for a subject."""
        with _store_errors("signal write", self.session_factory) as session:
            session.merge(SubjectSignals(subject_id=subject_id, **signals))


class SqlPredictionStore:
    """
    Persists one current prediction per subject.

    Upserts use the dialect's native INSERT ... ON CONFLICT so concurrent
    evaluations of the same subject converge to the last write.
    """

    _INSERTS = {
        "sqlite": sqlite.insert,
        "postgresql": postgresql.insert,
    }

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    @staticmethod
    def _to_values(prediction: ChurnPrediction) -> dict:
        return {
            "subject_id": prediction.subject_id,
            "churn_probability": prediction.churn_probability,
            "risk_tier": str(prediction.risk_tier),
            "predicted_churn_date": prediction.predicted_churn_date,
            "main_risk_factors": list(prediction.main_risk_factors),
            "recommended_interventions": list(prediction.recommended_interventions),
            "evaluated_at": prediction.evaluated_at,
        }

    @staticmethod
    def _from_row(row: ChurnPredictionRecord) -> ChurnPrediction:
        return ChurnPrediction(
            subject_id=row.subject_id,
            churn_probability=row.churn_probability,
            risk_tier=RiskTier(row.risk_tier),
            predicted_churn_date=row.predicted_churn_date,
            main_risk_factors=tuple(row.main_risk_factors or ()),
            recommended_interventions=tuple(row.recommended_interventions or ()),
            evaluated_at=_as_utc(row.evaluated_at),
        )

    def upsert(self, prediction: ChurnPrediction) -> None:
        values = self._to_values(prediction)
        with _store_errors("prediction upsert", self.session_factory) as session:
            insert = self._INSERTS.get(session.get_bind().dialect.name)
            if insert is None:
                session.merge(ChurnPredictionRecord(**values))
                return
            stmt = insert(ChurnPredictionRecord).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["subject_id"],
                set_={
                    key: stmt.excluded[key]
                    for key in values
                    if key != "subject_id"
                },
            )
            session.execute(stmt)

    def get_by_subject(self, subject_id: str) -> Optional[ChurnPrediction]:
        with _store_errors("prediction lookup", self.session_factory) as session:
            row = session.get(ChurnPredictionRecord, subject_id)
            return self._from_row(row) if row is not None else None

    def list_by_tier(self, tiers: Iterable[RiskTier], limit: int) -> list[ChurnPrediction]:
        tier_values = [str(RiskTier(tier)) for tier in tiers]
        stmt = (
            select(ChurnPredictionRecord)
            .where(ChurnPredictionRecord.risk_tier.in_(tier_values))
            .order_by(
                ChurnPredictionRecord.churn_probability.desc(),
                ChurnPredictionRecord.subject_id.asc(),
            )
            .limit(limit)
        )
        with _store_errors("high-risk listing", self.session_factory) as session:
            return [self._from_row(row) for row in session.scalars(stmt)]

    def stats(self) -> PredictionStats:
        stmt = select(
            ChurnPredictionRecord.risk_tier,
            func.count(),
            func.avg(ChurnPredictionRecord.churn_probability),
        ).group_by(ChurnPredictionRecord.risk_tier)
        with _store_errors("prediction stats", self.session_factory) as session:
            rows = session.execute(stmt).all()

        by_tier = {str(tier): 0 for tier in TIER_ORDER}
        total = 0
        weighted = 0.0
        for tier, count, avg in rows:
            by_tier[tier] = count
            total += count
            weighted += (avg or 0.0) * count

        return PredictionStats(
            total_predictions=total,
            by_tier=by_tier,
            avg_churn_probability=round(weighted / total, 2) if total else 0.0,
        )


class SqlNotificationSink:
    """Writes durable notifications. No deduplication."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def write(
        self,
        subject_id: str,
        title: str,
        body: str,
        kind: NotificationKind,
        metadata: Mapping[str, Any],
    ) -> None:
        with _store_errors("notification write", self.session_factory) as session:
            session.add(Notification(
                subject_id=subject_id,
                title=title,
                body=body,
                kind=str(kind),
                metadata_=dict(metadata),
            ))

    def list_for_subject(self, subject_id: str) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.subject_id == subject_id)
            .order_by(Notification.id)
        )
        with _store_errors("notification listing", self.session_factory) as session:
            return list(session.scalars(stmt))


class SqlActionLog:
    """Append-only alert action log."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def append(self, entry: ActionLogEntry) -> None:
        with _store_errors("action log append", self.session_factory) as session:
            session.add(AlertActionLog(
                subject_id=entry.subject_id,
                alert_type=entry.alert_type,
                action=entry.action,
                outcome=str(entry.outcome),
                detail=entry.detail,
                timestamp=entry.timestamp,
            ))

    def list_for_subject(self, subject_id: str) -> list[AlertActionLog]:
        stmt = (
            select(AlertActionLog)
            .where(AlertActionLog.subject_id == subject_id)
            .order_by(AlertActionLog.id)
        )
        with _store_errors("action log listing", self.session_factory) as session:
            return list(session.scalars(stmt))
