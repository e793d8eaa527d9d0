"""CLI entry point for the job hunter engine."""

import argparse
import asyncio
import logging
import sqlite3
import sys

from src.core.config import Settings
from src.core.db import (
    DuplicateApplicationError,
    get_application_patterns,
    get_user_profile,
    init_db,
    upsert_user_profile,
)
from src.core.schemas import APPLICATION_STATUSES, UserProfile
from src.pipeline.analytics import application_overview
from src.pipeline.applications import (
    JobNotFoundError,
    submit_manual_application,
    update_application_status,
)
from src.pipeline.notifier import LogNotifier, check_and_notify
from src.pipeline.orchestrator import (
    get_auto_apply_candidates,
    get_matching_jobs,
    process_auto_apply,
    refresh_jobs,
)
from src.pipeline.scorer import score_jobs_for_user
from src.platforms.fixture import YamlJobSource


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument("--user", type=int, default=1, help="User ID (default: 1)")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job hunter - score postings, learn application patterns, auto-apply",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    profile_parser = subparsers.add_parser("profile", help="Load a profile YAML into the store")
    profile_parser.add_argument("--file", required=True, help="Path to profile YAML")
    _add_common(profile_parser)

    refresh_parser = subparsers.add_parser(
        "refresh", help="Fetch postings from configured sources and rescore",
    )
    _add_common(refresh_parser)

    score_parser = subparsers.add_parser("score", help="Rescore all active jobs for the user")
    _add_common(score_parser)

    jobs_parser = subparsers.add_parser("jobs", help="List matching jobs")
    jobs_parser.add_argument("--min-score", type=float, default=None)
    jobs_parser.add_argument("--max-age-hours", type=int, default=None)
    jobs_parser.add_argument("--source", action="append", dest="sources")
    jobs_parser.add_argument("--limit", type=int, default=50)
    _add_common(jobs_parser)

    apply_parser = subparsers.add_parser("apply", help="Record a manual application")
    apply_parser.add_argument("--job-id", type=int, required=True)
    apply_parser.add_argument("--notes", default=None)
    apply_parser.add_argument("--cover-letter", default=None)
    _add_common(apply_parser)

    status_parser = subparsers.add_parser("status", help="Update an application's status")
    status_parser.add_argument("--application-id", type=int, required=True)
    status_parser.add_argument("--status", choices=APPLICATION_STATUSES, required=True)
    _add_common(status_parser)

    auto_parser = subparsers.add_parser("auto-apply", help="Auto-apply to matching jobs")
    auto_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List candidates without creating applications",
    )
    _add_common(auto_parser)

    patterns_parser = subparsers.add_parser("patterns", help="Show learned application patterns")
    _add_common(patterns_parser)

    notify_parser = subparsers.add_parser("notify", help="Send a digest of new matching jobs")
    _add_common(notify_parser)

    stats_parser = subparsers.add_parser("stats", help="Show application statistics")
    _add_common(stats_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _user_skills(conn: sqlite3.Connection, user_id: int) -> list[str]:
    profile = get_user_profile(conn, user_id)
    return profile.skills if profile else []


def cmd_profile(args: argparse.Namespace, conn: sqlite3.Connection) -> None:
    profile = UserProfile.from_yaml(args.file, user_id=args.user)
    upsert_user_profile(conn, profile)
    print(f"Profile stored for user {args.user}")
    print(f"  Skills: {profile.skills}")
    print(f"  Auto-apply: {'enabled' if profile.auto_apply_enabled else 'disabled'}")
    print(f"  Relevance threshold: {profile.relevance_threshold}")


def cmd_refresh(args: argparse.Namespace, conn: sqlite3.Connection, settings: Settings) -> None:
    sources = [YamlJobSource(s.name, s.path) for s in settings.sources]
    if not sources:
        print("No sources configured - nothing to refresh.")
        return
    result = asyncio.run(
        refresh_jobs(conn, sources, args.user, settings.refresh.interval_hours),
    )
    scored = score_jobs_for_user(
        conn, args.user, _user_skills(conn, args.user), settings.scoring,
        limit=settings.refresh.score_limit,
    )
    print(f"Refresh complete: {result.jobs_found} found, {result.new_jobs} new, "
          f"{scored} scored.")
    if result.next_refresh_at:
        print(f"Next refresh due at {result.next_refresh_at:%Y-%m-%d %H:%M}")


def cmd_score(args: argparse.Namespace, conn: sqlite3.Connection, settings: Settings) -> None:
    scored = score_jobs_for_user(
        conn, args.user, _user_skills(conn, args.user), settings.scoring,
        limit=settings.refresh.score_limit,
    )
    print(f"Scored {scored} jobs for user {args.user}.")


def cmd_jobs(args: argparse.Namespace, conn: sqlite3.Connection) -> None:
    jobs = get_matching_jobs(
        conn,
        args.user,
        min_score=args.min_score,
        max_age_hours=args.max_age_hours,
        sources=args.sources,
        limit=args.limit,
    )
    print(f"{len(jobs)} jobs")
    for s in jobs:
        score = "-" if s.score is None else f"{s.score:g}"
        print(f"  [{s.job.id}] {score:>4}  {s.job.title} @ {s.job.company or '?'} "
              f"({s.job.location or '?'}, {s.job.source})")


def cmd_auto_apply(args: argparse.Namespace, conn: sqlite3.Connection, settings: Settings) -> None:
    if args.dry_run:
        candidates = get_auto_apply_candidates(conn, args.user, settings.auto_apply)
        print(f"[DRY RUN] {len(candidates)} pattern-matching candidates")
        for c in candidates:
            verdict = "would apply" if c.would_auto_apply else "below confidence"
            print(f"  [{c.job.id}] {c.job.title} @ {c.job.company or '?'}: "
                  f"confidence {c.auto_apply_confidence}% ({verdict})")
        return
    result = process_auto_apply(conn, args.user, settings.auto_apply)
    print(f"Auto-apply complete: {result.applied} applied, {result.skipped} skipped.")


def cmd_patterns(args: argparse.Namespace, conn: sqlite3.Connection) -> None:
    patterns = get_application_patterns(conn, args.user)
    print(f"{len(patterns)} active patterns")
    for p in patterns:
        print(f"  [{p.id}] {p.pattern_type}: {p.application_count} applications, "
              f"success rate {p.success_rate:.0%}")
        print(f"    Keywords: {p.keywords}")
        print(f"    Companies: {p.companies}")
        print(f"    Locations: {p.locations}")


def cmd_stats(args: argparse.Namespace, conn: sqlite3.Connection) -> None:
    overview = application_overview(conn, args.user)
    print(f"Applications: {overview['total_applications']} "
          f"({overview['manual_applications']} manual, "
          f"{overview['automatic_applications']} automatic)")
    print(f"  Pending: {overview['pending_applications']}")
    print(f"  Interviews: {overview['interviews_scheduled']}")
    print(f"  Accepted: {overview['accepted_offers']}")
    print(f"  Rejected: {overview['rejected_applications']}")
    print(f"  Success rate: {overview['success_rate']}%")
    if overview["last_refresh"]:
        print(f"Last refresh: {overview['last_refresh']:%Y-%m-%d %H:%M}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    conn = init_db(settings.database.path)
    try:
        if args.command == "profile":
            cmd_profile(args, conn)
        elif args.command == "refresh":
            cmd_refresh(args, conn, settings)
        elif args.command == "score":
            cmd_score(args, conn, settings)
        elif args.command == "jobs":
            cmd_jobs(args, conn)
        elif args.command == "apply":
            application_id = submit_manual_application(
                conn, args.user, args.job_id, args.notes, args.cover_letter, settings.auto_apply,
            )
            print(f"Application {application_id} submitted for job {args.job_id}.")
        elif args.command == "status":
            if not update_application_status(conn, args.application_id, args.status):
                print(f"Error: application {args.application_id} not found", file=sys.stderr)
                sys.exit(1)
            print(f"Application {args.application_id} is now '{args.status}'.")
        elif args.command == "auto-apply":
            cmd_auto_apply(args, conn, settings)
        elif args.command == "patterns":
            cmd_patterns(args, conn)
        elif args.command == "notify":
            notified, count = check_and_notify(
                conn, args.user, LogNotifier(), settings.notifications,
                settings.auto_apply.default_relevance_threshold,
            )
            print(f"{count} new jobs; notification {'sent' if notified else 'not sent'}.")
        elif args.command == "stats":
            cmd_stats(args, conn)
    except (FileNotFoundError, ValueError, JobNotFoundError, DuplicateApplicationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
