"""
Database engine, session scope, and declarative models.

Uses SQLAlchemy 2.0 (sync ORM). SQLite for development and tests,
PostgreSQL in production; JSON columns work on both.
"""

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterator, Optional

import structlog
from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .records import utcnow

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for engine tables."""

    pass


class SubjectSignals(Base):
    """
    Raw per-subject signals, maintained by upstream jobs.

    Every signal column is nullable; missing values are defaulted when
    the feature snapshot is built.
    """

    __tablename__ = "subject_signals"

    subject_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    wellness_score: Mapped[Optional[float]] = mapped_column(Float)
    spending_level: Mapped[Optional[str]] = mapped_column(String(20))
    engagement_score: Mapped[Optional[float]] = mapped_column(Float)
    active_alert_count: Mapped[Optional[int]] = mapped_column(Integer)
    intervention_count: Mapped[Optional[int]] = mapped_column(Integer)
    completed_intervention_count: Mapped[Optional[int]] = mapped_column(Integer)
    days_since_last_activity: Mapped[Optional[int]] = mapped_column(Integer)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ChurnPredictionRecord(Base):
    """Current churn prediction. One row per subject, replaced on every evaluation."""

    __tablename__ = "churn_predictions"
    __table_args__ = (
        Index("ix_churn_predictions_tier_probability", "risk_tier", "churn_probability"),
    )

    subject_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    churn_probability: Mapped[float] = mapped_column(Float, nullable=False)
    risk_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    predicted_churn_date: Mapped[date] = mapped_column(Date, nullable=False)
    main_risk_factors: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    recommended_interventions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    evaluated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Notification(Base):
    """Durable in-app notification."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_subject", "subject_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(String(40), nullable=False)
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class AlertActionLog(Base):
    """
    Append-only record of actions taken for alert events.

    NO UPDATE, NO DELETE from engine code.
    """

    __tablename__ = "alert_action_log"
    __table_args__ = (
        Index("ix_alert_action_log_subject", "subject_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    outcome: Mapped[str] = mapped_column(String(20), nullable=False)
    detail: Mapped[Optional[str]] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


def create_engine_from_url(url: str, echo: bool = False) -> Engine:
    """
    Create a database engine.

    In-memory SQLite gets a single shared connection so every session
    sees the same database.
    """
    kwargs: dict = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    logger.info("database_engine_created", dialect=engine.dialect.name)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a session that commits on success and rolls back on error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """Create all engine tables if they do not exist."""
    Base.metadata.create_all(engine)
    logger.info("database_initialized", tables=sorted(Base.metadata.tables))
