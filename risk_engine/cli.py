#!/usr/bin/env python3
"""
CLI entry point for batch jobs and admin actions.

Usage:
    # Create tables
    python -m risk_engine init-db

    # Evaluate subjects
    python -m risk_engine evaluate emp-001 emp-002

    # List at-risk subjects
    python -m risk_engine high-risk --limit 20
    python -m risk_engine high-risk --tier critical

    # Prediction statistics
    python -m risk_engine stats

    # Dispatch an alert
    python -m risk_engine dispatch --subject emp-001 --type high_spending \\
        --payload '{"amount": 6000, "category": "dining"}'
"""

import argparse
import json
import sys
from typing import Optional, Sequence

import pandas as pd

from .config import EngineSettings
from .db import create_engine_from_url, create_session_factory, init_db
from .dispatcher import AlertDispatcher, DispatchOutcome
from .logging_config import configure_logging
from .notifications import NotificationEmitter
from .predictor import ChurnPredictor
from .records import AlertEvent, RiskTier
from .store import SqlActionLog, SqlFeatureSource, SqlNotificationSink, SqlPredictionStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="risk-engine",
        description="Churn risk scoring and alert dispatch",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  risk-engine evaluate emp-001 emp-002
  risk-engine high-risk --tier critical --limit 10
  risk-engine dispatch --subject emp-001 --type tier_upgrade \\
      --payload '{"oldTier": "Silver", "newTier": "Gold", "discount": 10, "rateReduction": 50}'
        """,
    )
    parser.add_argument("--config", help="Path to an EngineSettings YAML file")
    parser.add_argument("--database-url", help="Override the database URL")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    evaluate = sub.add_parser("evaluate", help="Evaluate churn risk for subjects")
    evaluate.add_argument("subject_ids", nargs="+", help="Subject identifier(s)")

    high_risk = sub.add_parser("high-risk", help="List high-risk predictions")
    high_risk.add_argument(
        "--tier",
        action="append",
        choices=[tier.value for tier in RiskTier],
        help="Tier to include (repeatable, default: critical and high)",
    )
    high_risk.add_argument("--limit", type=int, help="Maximum number of results")

    sub.add_parser("stats", help="Show prediction statistics")

    dispatch = sub.add_parser("dispatch", help="Dispatch an alert event")
    dispatch.add_argument("--subject", required=True, help="Subject identifier")
    dispatch.add_argument("--type", dest="alert_type", required=True, help="Alert type")
    dispatch.add_argument("--payload", default="{}", help="Alert payload as JSON")

    return parser


def load_settings(args: argparse.Namespace) -> EngineSettings:
    base = EngineSettings.from_yaml(args.config) if args.config else None
    settings = EngineSettings.from_env(base)
    if args.database_url:
        settings.database_url = args.database_url
    return settings


def _predictions_frame(predictions) -> pd.DataFrame:
    return pd.DataFrame([p.to_dict() for p in predictions])


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args)
    configure_logging(settings.log_level, settings.log_format)

    engine = create_engine_from_url(settings.database_url)
    factory = create_session_factory(engine)

    if args.command == "init-db":
        init_db(engine)
        print("Database initialized.")
        return 0

    predictor = ChurnPredictor(
        features=SqlFeatureSource(factory),
        store=SqlPredictionStore(factory),
        settings=settings,
    )

    if args.command == "evaluate":
        report = predictor.batch_evaluate_detailed(args.subject_ids)
        if report.predictions:
            print(_predictions_frame(report.predictions).to_string(index=False))
        for subject_id, error in report.errors.items():
            print(f"FAILED {subject_id}: {error}")
        print(f"\nTotal: {len(args.subject_ids)}, Succeeded: {report.succeeded}, Failed: {report.failed}")
        return 0 if report.failed == 0 else 1

    if args.command == "high-risk":
        predictions = predictor.list_high_risk(tiers=args.tier, limit=args.limit)
        if not predictions:
            print("No matching predictions.")
        else:
            columns = ["subject_id", "churn_probability", "risk_tier", "predicted_churn_date"]
            print(_predictions_frame(predictions)[columns].to_string(index=False))
        return 0

    if args.command == "stats":
        stats = predictor.prediction_stats()
        print(f"Total predictions: {stats.total_predictions}")
        print(f"Average churn probability: {stats.avg_churn_probability:.2f}")
        for tier, count in stats.by_tier.items():
            print(f"  {tier:<10} {count}")
        return 0

    if args.command == "dispatch":
        try:
            payload = json.loads(args.payload)
        except json.JSONDecodeError as e:
            print(f"Invalid JSON payload: {e}")
            return 1

        dispatcher = AlertDispatcher(
            emitter=NotificationEmitter(SqlNotificationSink(factory)),
            action_log=SqlActionLog(factory),
            settings=settings,
        )
        [result] = dispatcher.dispatch_batch([AlertEvent(args.subject, args.alert_type, payload)])
        print(f"{result.subject_id}: {result.outcome}")
        for entry in result.actions:
            print(f"  [{entry.outcome}] {entry.action}" + (f" ({entry.detail})" if entry.detail else ""))
        return 0 if result.outcome == DispatchOutcome.PROCESSED else 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
