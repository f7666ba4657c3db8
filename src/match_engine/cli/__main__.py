"""CLI entry point: python -m match_engine.cli {reconcile,relearn,explain}"""

import argparse
import asyncio
import json
import sys

import structlog

from match_engine.config.settings import get_settings
from match_engine.db.session import close_db, get_session_factory
from match_engine.learning.service import PreferenceLearnerService
from match_engine.logging_config import configure_logging
from match_engine.matching.config import load_matching_config
from match_engine.ranking.ranker import explain_match
from match_engine.swipes.reconciliation import reconcile_matches


async def _with_db(job) -> None:
    try:
        await job
    finally:
        await close_db()


async def run_reconcile() -> None:
    result = await reconcile_matches(get_session_factory())
    print(json.dumps({"created": result.created, "deactivated": result.deactivated}))


async def run_relearn(user_ids: list[str], due_only: bool) -> None:
    settings = get_settings()
    config = load_matching_config(settings.matching_config_path)
    service = PreferenceLearnerService(get_session_factory(), config.learner)

    if due_only:
        results = await service.refresh_due_models()
    else:
        results = [await service.refresh(user_id) for user_id in user_ids]

    for r in results:
        print(json.dumps({"user_id": r.user_id, "status": r.status, "history_size": r.history_size}))


async def run_explain(viewer_id: str, candidate_id: str) -> None:
    settings = get_settings()
    config = load_matching_config(settings.matching_config_path)
    score = await explain_match(get_session_factory(), viewer_id, candidate_id, config)
    print(
        json.dumps(
            {
                "viewer_id": viewer_id,
                "candidate_id": candidate_id,
                "score": round(score.overall, 4),
                "breakdown": {k: round(v, 4) for k, v in score.factors.as_dict().items()},
            }
        )
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="match_engine.cli",
        description="Match Engine operator CLI",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("reconcile", help="Repair match rows from reciprocal swipes")

    relearn_parser = subparsers.add_parser("relearn", help="Recompute implicit preference models")
    relearn_parser.add_argument("user_ids", nargs="*", help="Users to refresh")
    relearn_parser.add_argument(
        "--due",
        action="store_true",
        help="Refresh every user whose swipe counter reached the refresh threshold",
    )

    explain_parser = subparsers.add_parser("explain", help="Print the factor breakdown for a pair")
    explain_parser.add_argument("viewer_id")
    explain_parser.add_argument("candidate_id")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    configure_logging(
        json_output=settings.log_json,
        log_level=settings.log_level,
        component="cli",
        stream=sys.stderr,
    )
    log = structlog.get_logger()

    if args.command == "reconcile":
        asyncio.run(_with_db(run_reconcile()))
    elif args.command == "relearn":
        if not args.user_ids and not args.due:
            log.error("relearn_requires_users_or_due")
            sys.exit(2)
        asyncio.run(_with_db(run_relearn(args.user_ids, args.due)))
    elif args.command == "explain":
        asyncio.run(_with_db(run_explain(args.viewer_id, args.candidate_id)))


if __name__ == "__main__":
    main()
