"""
Report which query variant wins for every descriptor against a live site.

Operator aid for schema drift: run it against a site database before
trusting a snapshot, to see which features fall back or are skipped.
Nothing is written.

Usage:
    cd backend
    python scripts/probe_sources.py --sql-server SCCM-SQL01 --database CM_PS1
    python scripts/probe_sources.py --sql-server SCCM-SQL01 --database CM_PS1 --domain edge
    python scripts/probe_sources.py --sql-server SCCM-SQL01 --database CM_PS1 --show-rows
    python scripts/probe_sources.py --database-url sqlite:///probe.db   # any SQLAlchemy URL
"""
import argparse
import json
import logging
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from mecm_health.config import Settings
from mecm_health.domain.common.errors import ConfigurationError
from mecm_health.domain.health.adapter import SourceAdapter
from mecm_health.infra.serialization import to_json_compatible
from mecm_health.infra.source.catalog import QUERY_CATALOG
from mecm_health.wiring.bootstrap import get_query_executor


def probe(adapter: SourceAdapter, domains: list[str], show_rows: bool = False) -> int:
    """Print one line per descriptor; return the number unavailable."""
    unavailable = 0
    for domain in domains:
        print(f"\n{domain}")
        print("-" * 80)
        for desc in QUERY_CATALOG[domain]:
            outcome = adapter.fetch(desc)
            if outcome.is_ok:
                fallback = " (fallback)" if outcome.errors else ""
                print(f"  {desc.key:<26} {outcome.variant}{fallback}  rows={len(outcome.rows)}")
                if show_rows and outcome.rows:
                    print(f"      {json.dumps(to_json_compatible(dict(outcome.first_row())))}")
            else:
                unavailable += 1
                print(f"  {desc.key:<26} UNAVAILABLE")
            for error in outcome.errors:
                print(f"      ! {error}")
    return unavailable


def main():
    parser = argparse.ArgumentParser(description="Probe the MECM query fallback chains")
    parser.add_argument("--sql-server", help="SQL Server hosting the site database")
    parser.add_argument("--database", help="Site database name (e.g. CM_PS1)")
    parser.add_argument("--database-url", help="Full SQLAlchemy URL (overrides server/database)")
    parser.add_argument(
        "--domain",
        action="append",
        choices=sorted(QUERY_CATALOG),
        help="Limit to a domain (repeatable)",
    )
    parser.add_argument("--show-rows", action="store_true", help="Print the first row of each answer")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every attempt")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    overrides = {
        "sql_server": args.sql_server,
        "database": args.database,
        "database_url_override": args.database_url,
    }
    settings = Settings(**{k: v for k, v in overrides.items() if v is not None})

    try:
        settings.require_source()
        adapter = SourceAdapter(get_query_executor(settings), settings.query_timeout_seconds)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    domains = args.domain or list(QUERY_CATALOG)
    unavailable = probe(adapter, domains, args.show_rows)
    total = sum(len(QUERY_CATALOG[d]) for d in domains)

    print(f"\n{'='*80}")
    print(f"{total - unavailable}/{total} descriptors answered, {unavailable} unavailable")
    sys.exit(1 if unavailable else 0)


if __name__ == "__main__":
    main()
