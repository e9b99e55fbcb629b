import argparse
import logging
import sys
import time

from src.adapters.clock import SystemClock
from src.adapters.dev_jobs import RescoreJob, RescoreJobScheduler
from src.adapters.sqlite.migrator import DEFAULT_MIGRATIONS_DIR, SQLiteMigrator
from src.adapters.sqlite_db import SQLiteEventStore, SQLiteListingRepo
from src.api.deps import Settings
from src.app_shell.config import ConfigError, validate_ops_rules
from src.rules.adapters import RankingRulesAdapter
from src.rules.loader import load_rules
from src.rules.models import Rules

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("cli")


def get_rules(settings: Settings) -> Rules:
    try:
        rules = load_rules(settings.rules_path)
        validate_ops_rules(rules, settings.data_dir)
    except (FileNotFoundError, ValueError, ConfigError) as e:
        logger.error("%s", e)
        sys.exit(1)
    return rules


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    get_rules(settings)
    migrator = SQLiteMigrator(settings.db_path, args.migrations_dir)
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migrations to {settings.db_path}.")


def build_rescore_job(settings: Settings, rules: Rules) -> RescoreJob:
    return RescoreJob(
        source=SQLiteEventStore(settings.db_path),
        listings=SQLiteListingRepo(settings.db_path),
        time_port=SystemClock(),
        rules=RankingRulesAdapter(rules.ranking),
    )


def handle_rescore(settings: Settings, args: argparse.Namespace) -> None:
    rules = get_rules(settings)
    job = build_rescore_job(settings, rules)

    if not args.loop:
        result = job()
        print(f"Updated {result.updated_count} listings ({len(result.failed)} failed).")
        if not result.success:
            sys.exit(1)
        return

    interval = args.interval or rules.ranking.rescore_interval_minutes * 60
    scheduler = RescoreJobScheduler(job, interval_seconds=interval)
    scheduler.trigger_now()
    scheduler.start()
    try:
        while scheduler.is_running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        scheduler.stop()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Trendboard CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending database migrations")
    migrate_parser.add_argument(
        "--migrations-dir", default=DEFAULT_MIGRATIONS_DIR, help="Directory of .sql files"
    )

    # rescore
    rescore_parser = subparsers.add_parser("rescore", help="Recompute trending scores")
    rescore_parser.add_argument(
        "--loop", action="store_true", help="Keep running, rescoring every interval"
    )
    rescore_parser.add_argument(
        "--interval", type=float, default=None, help="Seconds between passes (with --loop)"
    )

    args = parser.parse_args(argv)
    settings = Settings()

    if args.command == "migrate":
        handle_migrate(settings, args)
    elif args.command == "rescore":
        handle_rescore(settings, args)


if __name__ == "__main__":
    main()
