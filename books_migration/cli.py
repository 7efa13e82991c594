"""Command-line entry point for the FreshBooks to Zoho Books migration."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .exceptions import ConfigurationError, MigrationError
from .models.config import Backend, MigrationConfig
from .models.migration import EntityType, MigrationRun
from .orchestrator import MigrationPipeline
from .services.token_manager import RefreshListener, TokenManager, TokenSet

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"
STAGE_CHOICES = ["all"] + [e.value for e in EntityType]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Books Migration - Move accounting data from FreshBooks to Zoho Books"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    migrate_parser = subparsers.add_parser("migrate", help="Run a migration")
    migrate_parser.add_argument("stage", choices=STAGE_CHOICES, help="Stage to run, or 'all'")
    migrate_parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config file")
    migrate_parser.add_argument("--dry-run", action="store_true", help="Simulate without changes")
    migrate_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    migrate_parser.add_argument(
        "--use-config-mapping", action="store_true",
        help="Build the hierarchical chart of accounts from category_mapping",
    )
    migrate_parser.add_argument("--skip-items", action="store_true", help="Do not migrate items")
    migrate_parser.add_argument(
        "--continue-on-error", action="store_true",
        help="Keep running later stages after a stage aborts",
    )
    migrate_parser.add_argument("--report", help="Write a JSON run report to this path")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == "migrate":
        return run_migration(args)

    parser.print_help()
    return 2


def token_persister(config: MigrationConfig) -> RefreshListener:
    """Listener that writes refreshed tokens back to the config file."""

    def persist_tokens(backend: Backend, tokens: TokenSet) -> None:
        config.update_tokens(backend, tokens.access_token, tokens.refresh_token)
        config.save()
        logger.info(f"Saved refreshed {backend.value} tokens to {config.path}")

    return persist_tokens


def run_migration(args: argparse.Namespace) -> int:
    """Run a migration from the config file; returns the exit status."""
    try:
        config = MigrationConfig.load(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    token_manager = TokenManager(config.freshbooks, config.zoho)
    token_manager.add_refresh_listener(token_persister(config))

    try:
        pipeline = MigrationPipeline.from_config(
            config,
            token_manager,
            dry_run=args.dry_run,
            use_config_mapping=args.use_config_mapping,
            include_items=not args.skip_items,
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    stages = None if args.stage == "all" else [EntityType(args.stage)]

    exit_code = 0
    try:
        pipeline.run_all(continue_on_error=args.continue_on_error, stages=stages)
    except MigrationError as e:
        logger.error(f"Migration stopped: {e}")
        exit_code = 1

    run = pipeline.run
    if run.failed_steps:
        exit_code = 1

    print_run_summary(run)
    if args.report:
        save_report(run, args.report)

    return exit_code


def print_run_summary(run: MigrationRun) -> None:
    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE" if not run.failed_steps else "MIGRATION FINISHED WITH ERRORS")
    print("=" * 60)
    if run.dry_run:
        print("Mode: DRY RUN (no changes were made)")
    print(f"Status: {run.status.value}")
    print(f"Succeeded: {run.total_succeeded}")
    print(f"Failed: {run.total_failed}")
    print(f"Skipped: {run.total_skipped}")
    for step in run.failed_steps:
        print(f"Aborted stage: {step.entity.value} ({step.error})")
    if run.duration_seconds:
        print(f"Duration: {run.duration_seconds:.2f} seconds")


def save_report(run: MigrationRun, path: str) -> None:
    """Write the run report as JSON."""
    report_path = Path(path)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    with open(report_path, "w") as f:
        json.dump(run.to_dict(), f, indent=2, default=str)
    logger.info(f"Report saved to {report_path}")


if __name__ == "__main__":
    sys.exit(main())
