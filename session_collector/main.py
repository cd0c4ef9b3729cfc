#!/usr/bin/env python3
"""Session Collector - gather AI coding assistant sessions into one result.

Entry point for the CLI application.
"""

import argparse
import logging
import sys
from collections import Counter
from datetime import datetime, timedelta
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import Config, default_config_yaml, expand_path, load_config
from .context import CollectionContext
from .errors import CollectorError
from .models import CollectionRequest, CollectionResult, DateRange

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(level: str, verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def parse_date(value: str, end_of_day: bool = False) -> datetime:
    """Parse YYYY-MM-DD; end_of_day extends to the last instant of that day."""
    try:
        day = datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from e
    if end_of_day:
        return day + timedelta(days=1) - timedelta(microseconds=1)
    return day


def build_request(args, config: Config, registered: list[str]) -> CollectionRequest:
    if args.all:
        sources = registered
    elif args.sources:
        sources = [s.strip() for s in args.sources.split(",") if s.strip()]
        unknown = [s for s in sources if s not in registered]
        if unknown:
            raise CollectorError(f"unknown source(s): {', '.join(unknown)}")
    else:
        raise CollectorError("specify --all or --sources")

    date_range = None
    if args.date_from or args.date_to:
        date_range = DateRange(
            start=parse_date(args.date_from) if args.date_from else None,
            end=parse_date(args.date_to, end_of_day=True) if args.date_to else None,
        )

    return CollectionRequest(
        sources=sources,
        date_range=date_range,
        include_files=args.include_files,
        include_commands=args.include_commands,
        output_path=args.output or "",
        template=config.output.default_template,
    )


def print_collection_result(result: CollectionResult):
    counts = Counter(s.source for s in result.sessions)
    synthetic = Counter(s.source for s in result.sessions if s.is_synthetic)

    table = Table(title="Collection Summary")
    table.add_column("Source")
    table.add_column("Sessions", justify="right")
    table.add_column("Messages", justify="right")
    table.add_column("Note")
    for source in result.sources:
        messages = sum(len(s.messages) for s in result.sessions if s.source == source)
        note = "placeholder data" if synthetic[source] else ""
        table.add_row(source, str(counts[source]), str(messages), note)
    console.print(table)

    console.print(
        f"Total: {result.total_count} sessions in {result.duration.total_seconds():.2f}s"
    )
    if result.errors:
        console.print(f"[yellow]{len(result.errors)} warnings:[/yellow]")
        for err in result.errors:
            console.print(f"  - {err}", markup=False)


def cmd_collect(args, config: Config):
    """Collect sessions from the requested sources."""
    from .service import CollectService
    from .snapshot import save_snapshot

    service = CollectService(config=config)
    request = build_request(args, config, service.supported_sources())
    logger.debug(f"Collection request: {request}")

    with CollectionContext() as ctx:
        result = service.collect_all(ctx, request)

    if not args.no_save:
        data_dir = Path(expand_path(args.output)) if args.output else Path(expand_path(config.output.data_dir))
        try:
            path = save_snapshot(result, data_dir)
            console.print(f"Saved snapshot: {path}")
        except OSError as e:
            logger.warning(f"Failed to save snapshot: {e}")

    print_collection_result(result)


def cmd_sources(args, config: Config):
    """List registered sources."""
    from .providers import build_default_registry

    registry = build_default_registry()
    for name in registry.list_registered_sources():
        collector = registry.get_collector(name, config.source(name))
        available = "✓" if collector.is_available() else "✗"
        console.print(f"{available} {collector.icon} {collector.display_name} ({name})")
        if args.status:
            status = "available" if collector.is_available() else "not found (fallback data)"
            console.print(f"    Config dir: {collector.config.config_dir}", markup=False)
            console.print(f"    History: {collector.config.history_file or '-'}", markup=False)
            console.print(f"    Sessions: {collector.config.session_dir or '-'}", markup=False)
            console.print(f"    Status: {status}")


def cmd_config(args, config: Config):
    """Show the effective config or write the defaults."""
    if args.action == "show":
        import yaml

        source = str(config.path) if config.path else "built-in defaults"
        console.print(f"# from {source}", markup=False)
        console.print(yaml.safe_dump(config.to_dict(), sort_keys=False), markup=False)
        return

    target = Path(expand_path(args.path))
    if target.exists() and not args.force:
        raise CollectorError(f"{target} already exists (use --force to overwrite)")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(default_config_yaml(), encoding="utf-8")
    console.print(f"Wrote default config to {target}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="session-collector",
        description="Collect AI coding assistant sessions from Claude Code, Gemini CLI and Amazon Q",
    )
    parser.add_argument("--config", "-c", help="Config file path")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", "-v", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    collect_parser = subparsers.add_parser("collect", help="Collect sessions")
    group = collect_parser.add_mutually_exclusive_group()
    group.add_argument("--all", "-a", action="store_true", help="Collect from every source")
    group.add_argument("--sources", "-s", help="Comma-separated sources (claude_code,gemini_cli,amazon_q)")
    collect_parser.add_argument("--from", dest="date_from", help="Start date (YYYY-MM-DD)")
    collect_parser.add_argument("--to", dest="date_to", help="End date, inclusive (YYYY-MM-DD)")
    collect_parser.add_argument("--include-files", action="store_true", help="Keep file references")
    collect_parser.add_argument("--include-commands", action="store_true", help="Keep executed commands")
    collect_parser.add_argument("--output", "-o", help="Snapshot directory")
    collect_parser.add_argument("--no-save", action="store_true", help="Do not write a snapshot")

    sources_parser = subparsers.add_parser("sources", help="List sources")
    sources_parser.add_argument("--status", action="store_true", help="Show paths and availability")

    config_parser = subparsers.add_parser("config", help="Show or create the config file")
    config_parser.add_argument("action", choices=["show", "init"], help="Config action")
    config_parser.add_argument("--path", default="configs/collector.yaml", help="Where `init` writes")
    config_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    args = parser.parse_args(argv)

    if args.version:
        from . import __version__
        print(f"session-collector {__version__}")
        return 0

    try:
        config = load_config(args.config)
        setup_logging(config.log_level, args.verbose)

        if args.command == "collect":
            cmd_collect(args, config)
        elif args.command == "sources":
            cmd_sources(args, config)
        elif args.command == "config":
            cmd_config(args, config)
        else:
            parser.print_help()
    except (CollectorError, argparse.ArgumentTypeError) as e:
        console.print(f"[red]error:[/red] {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
