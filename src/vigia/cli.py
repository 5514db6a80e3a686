"""Command-line interface for Vigia.

Usage:
    vigia profile deputado_204534
    vigia profile senador_4539 --force --format json
    vigia all
    vigia health
"""

import argparse
import asyncio
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from vigia import __version__, roster
from vigia.cache import ParquetEntityStore, TieredCache
from vigia.config import settings
from vigia.engine.comparison import PeerComparison
from vigia.engine.metrics import category_breakdown, format_brl
from vigia.health import HealthMonitor
from vigia.models import Entity
from vigia.pipeline import Orchestrator
from vigia.service import VigiaService


logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=1)


def create_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="vigia",
        description="Vigia: spending profiles and red flags for public officials",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vigia profile deputado_204534
  vigia all --format json
  vigia health
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--format",
        type=str,
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    common.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Durable cache directory (default: settings.cache_dir)",
    )

    profile_parser = subparsers.add_parser(
        "profile",
        parents=[common],
        help="Aggregate one tracked official",
    )
    profile_parser.add_argument("entity_id", type=str, help="Entity key, e.g. deputado_204534")
    profile_parser.add_argument("--force", action="store_true", help="Bypass the cache")

    all_parser = subparsers.add_parser(
        "all",
        parents=[common],
        help="Aggregate every tracked official",
    )
    all_parser.add_argument("--force", action="store_true", help="Bypass the cache")

    subparsers.add_parser("health", parents=[common], help="Probe source reachability")
    subparsers.add_parser("version", help="Show version information")

    return parser


def _run_async(coro):
    """Run a coroutine on a fresh event loop in a worker thread."""

    def _target():
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()

    return _executor.submit(_target).result()


def _build_service(args: argparse.Namespace) -> VigiaService:
    cache_dir = str(args.cache_dir) if args.cache_dir else settings.cache_dir
    return VigiaService(Orchestrator(TieredCache(ParquetEntityStore(cache_dir))), health=HealthMonitor())


def format_entity(entity: Entity, comparison: PeerComparison | None = None) -> str:
    """Plain-text profile, with the peer ranking when one is given."""
    lines = [
        f"{entity.name} ({entity.party or 'sem partido'}) - {entity.position}, {entity.region}",
        f"Efficiency: {entity.efficiency_rating.get_description()}",
    ]
    if entity.spend_limit:
        lines.append(f"Spend (12 months): {format_brl(entity.spend_total)} of {format_brl(entity.spend_limit)}")
    if entity.spend_records:
        lines.append("Top categories:")
        lines.extend(
            f"  {category}: {format_brl(total)} ({share:.0%})"
            for category, total, share in category_breakdown(entity.spend_records)[:3]
        )
    if comparison is not None:
        direction = "above" if comparison.difference >= 0 else "below"
        lines.append(
            f"Peer rank: {comparison.rank} of {comparison.peer_count}, "
            f"{format_brl(abs(comparison.difference))} {direction} the peer average "
            f"({comparison.percent_above_average:+.1f}%)"
        )
    if entity.staff_stats.max_staff:
        s = entity.staff_stats
        lines.append(f"Staff: {s.staff_count}/{s.max_staff}, {format_brl(s.monthly_cost)}/month")
    if entity.amendments.count:
        a = entity.amendments
        lines.append(f"Amendments: {a.count}, committed {format_brl(a.total_committed)}, paid {format_brl(a.total_paid)}")
    if entity.red_flags:
        lines.append("Red flags:")
        lines.extend(f"  [{f.severity.value}] {f.description}" for f in entity.red_flags)
    if entity.key_findings:
        lines.append("Key findings:")
        lines.extend(f"  - {finding}" for finding in entity.key_findings)
    lines.append(f"Sources: {', '.join(entity.sources) or 'none'}")
    lines.append(f"Last updated: {entity.last_updated.isoformat()}")
    return "\n".join(lines)


def cmd_profile(args: argparse.Namespace) -> int:
    """Aggregate and print one entity. Exit 1 when nothing could be produced."""
    try:
        service = _build_service(args)
        if service.resolve(args.entity_id) is None:
            print(f"Error: unknown entity {args.entity_id}", file=sys.stderr)
            return 2
        entity = _run_async(service.fetch_one(args.entity_id, force_refresh=args.force))
        if entity is None:
            print(f"Error: no data available for {args.entity_id}", file=sys.stderr)
            return 1

        comparison = _run_async(service.compare(entity))

        if args.format == "json":
            data = entity.to_dict()
            data["peer_comparison"] = comparison.to_dict() if comparison else None
            print(json.dumps(data, indent=2, ensure_ascii=False))
        else:
            print(format_entity(entity, comparison))
        return 0

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.error("Profile failed: %s", e, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_all(args: argparse.Namespace) -> int:
    """Aggregate the roster. Exit 1 only when no entity was produced."""
    try:
        service = _build_service(args)
        entities = _run_async(service.fetch_all(force_refresh=args.force))
        report = service.last_report

        if args.format == "json":
            print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        else:
            for entity in entities:
                flags = len(entity.red_flags)
                print(
                    f"{entity.id:<28} {entity.name:<24} "
                    f"{entity.efficiency_rating.value:<14} {flags} flag{'s' if flags != 1 else ''}"
                )
            if report.failed:
                print(f"No data: {', '.join(report.failed)}", file=sys.stderr)
        return 0 if entities else 1

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.error("Batch aggregation failed: %s", e, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_health(args: argparse.Namespace) -> int:
    """Probe every source. Always exits 0; the vector carries the outcome."""
    service = _build_service(args)
    vector = _run_async(service.get_health())
    if args.format == "json":
        print(json.dumps({name: s.to_dict() for name, s in vector.items()}, indent=2))
    else:
        for name, status in vector.items():
            state = "up" if status.reachable else f"down ({status.detail})"
            print(f"{name:<14} {state}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    print(f"Vigia v{__version__}")
    print(f"Tracking {len(roster.TRACKED)} officials ({settings.state_code})")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    parser = create_parser()
    args = parser.parse_args(argv)

    handlers = {
        "profile": cmd_profile,
        "all": cmd_all,
        "health": cmd_health,
        "version": cmd_version,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args)


def cli_entry() -> None:
    """Console script entry point for setuptools."""
    sys.exit(main())


if __name__ == "__main__":
    cli_entry()
