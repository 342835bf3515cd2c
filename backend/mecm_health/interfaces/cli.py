"""
Command-line entry point for the health snapshot collector.

Usage:
    mecm-health --sql-server SCCM-SQL01 --database CM_PS1
    mecm-health --sql-server SCCM-SQL01 --database CM_PS1 --prompt-credentials
    mecm-health --sql-server SCCM-SQL01 --database CM_PS1 --output web/data/mock_data.json
    mecm-health --use-sample                              # publish the canned snapshot

Exit codes:
    0  snapshot written
    1  snapshot could not be written
    2  configuration error (nothing was queried)
"""
import argparse
import getpass
import logging
import sys
from typing import Optional, Sequence

from .. import __version__
from ..config import Settings
from ..domain.common.errors import ConfigurationError, DomainError, SnapshotWriteError
from ..use_cases.health import CollectHealthSnapshotCommand
from ..wiring.bootstrap import build_collect_use_case, build_publish_sample_use_case

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_WRITE_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mecm-health",
        description="Collect an MECM health snapshot for the dashboard",
    )
    parser.add_argument("--sql-server", help="SQL Server hosting the site database")
    parser.add_argument("--database", help="Site database name (e.g. CM_PS1)")
    parser.add_argument("--output", help="Snapshot path (default: data/mock_data.json)")
    parser.add_argument(
        "--prompt-credentials",
        action="store_true",
        help="Prompt for SQL credentials instead of using Windows authentication",
    )
    parser.add_argument(
        "--use-sample",
        action="store_true",
        help="Publish the packaged sample snapshot without querying",
    )
    parser.add_argument("--seed", type=int, help="Seed for the synthesized trend series")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command-line overrides applied."""
    overrides = {
        "sql_server": args.sql_server,
        "database": args.database,
        "output_path": args.output,
        "trend_seed": args.seed,
        "log_level": args.log_level,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def prompt_credentials(settings: Settings) -> Settings:
    username = input("SQL username: ").strip()
    password = getpass.getpass("SQL password: ")
    return settings.model_copy(
        update={"trusted_connection": False, "username": username, "password": password}
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def run(args: argparse.Namespace) -> int:
    settings = load_settings(args)
    configure_logging(settings.log_level)

    if args.use_sample:
        result = build_publish_sample_use_case(settings).execute(str(settings.sample_path))
        print(f"Sample snapshot published to {result.location}")
        return EXIT_OK

    # Fail before any querying when the source is not fully identified
    settings.require_source()
    if args.prompt_credentials:
        settings = prompt_credentials(settings)
        settings.require_source()

    use_case = build_collect_use_case(settings)
    result = use_case.execute(
        CollectHealthSnapshotCommand(
            sql_server=settings.sql_server or "",
            database=settings.database or "",
            collector_version=__version__,
            trend_seed=settings.trend_seed,
        )
    )

    overview = result.snapshot.security_overview
    print(f"Snapshot written to {result.location}")
    print(
        f"Overall health score: {overview.overall_health_score} "
        f"({overview.risk_level.value} risk), {len(overview.critical_findings)} finding(s)"
    )
    for domain, status in result.domain_status.items():
        print(f"  {domain:<12} {status.value}")
    if result.warnings:
        print(f"{len(result.warnings)} feature(s) skipped, see log for details")
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except SnapshotWriteError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_WRITE_FAILED
    except DomainError as e:
        logger.error("Collection failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_WRITE_FAILED


if __name__ == "__main__":
    sys.exit(main())
