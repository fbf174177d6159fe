from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from queue import Empty
from typing import Optional, Sequence

from rich.console import Console
from rich.prompt import Prompt

from . import __version__
from .config import ConfigStore, config_to_dict, default_config_path, validate_config_data
from .errors import ConfigError, FolderWatchError, ModeError, OrganizeError, WatchSetupError
from .logging_utils import configure_logging
from .models import OrganizationMode
from .service import FolderWatchService
from .summary_table import SummaryTableRenderer
from .utils import env_bool

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="folderwatch",
        description="Watch a folder and sort new files into place using ordered rules.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the JSON configuration file (default: per-user config location)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    watch = subparsers.add_parser("watch", help="Watch a folder until interrupted")
    watch.add_argument("folder", nargs="?", type=Path, help="Folder to watch (default: configured folder)")
    watch.add_argument(
        "--settle-delay",
        type=float,
        default=None,
        help="Seconds to wait before handling a new file",
    )
    watch.add_argument(
        "--review",
        action="store_true",
        help="After stopping, ask where each file queued for review should go",
    )

    config = subparsers.add_parser("config", help="Inspect the configuration")
    config.add_argument("action", choices=["show", "path", "validate"], help="What to do with the configuration")

    mode = subparsers.add_parser("mode", help="Show or change the organization mode")
    mode.add_argument("value", nargs="?", help="One of: " + ", ".join(m.value for m in OrganizationMode))

    subparsers.add_parser("rules", help="List the configured rules")

    move = subparsers.add_parser("move", help="Move one file into a folder, bypassing rules")
    move.add_argument("source", type=Path)
    move.add_argument("destination", type=Path)

    return parser


def _review_pending(service: FolderWatchService, console: Console) -> None:
    # Resolving a path clears its duplicate entries too
    for path in dict.fromkeys(entry.path for entry in service.list_pending()):
        answer = Prompt.ask(
            f"Destination for [cyan]{path}[/cyan] (blank to skip)",
            default="",
            show_default=False,
            console=console,
        ).strip()
        try:
            final_path = service.resolve_pending(path, answer or None)
        except FolderWatchError as exc:
            console.print(f"[red]✗ {exc}[/red]")
            continue
        if final_path is None:
            console.print(f"[dim]⊘ Skipped {path}[/dim]")
        else:
            console.print(f"[green]✓ Moved to {final_path}[/green]")


def _run_watch(
    service: FolderWatchService,
    folder: Optional[Path],
    console: Console,
    *,
    review: bool = False,
) -> int:
    renderer = SummaryTableRenderer(console)
    counts: Counter = Counter()
    subscription = service.subscribe()
    try:
        path = service.start_watching(folder)
    except (ConfigError, WatchSetupError) as exc:
        LOGGER.error("%s", exc)
        subscription.close()
        return EXIT_FAILURE

    console.print(f"Watching [cyan]{path}[/cyan] in [bold]{service.get_mode()}[/bold] mode. Press Ctrl+C to stop.")
    try:
        while True:
            try:
                event = subscription.get(timeout=1.0)
            except Empty:
                continue
            counts[event.kind] += 1
            console.print(renderer.render_event(event))
    except KeyboardInterrupt:
        console.print()
    finally:
        subscription.close()
        service.stop_watching()

    console.print(renderer.render_session_table(counts))
    if review:
        _review_pending(service, console)
    pending = service.list_pending()
    if pending:
        console.print(renderer.render_pending_table(pending))
    return EXIT_OK


def _run_config(store: ConfigStore, action: str, console: Console) -> int:
    if action == "path":
        console.print(str(store.path))
        return EXIT_OK
    if action == "show":
        config = store.load()
        console.print_json(json.dumps(config_to_dict(config)))
        return EXIT_OK

    if not store.path.exists():
        console.print(f"[yellow]No configuration file at {store.path}; defaults apply.[/yellow]")
        return EXIT_OK
    try:
        data = json.loads(store.path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        console.print(f"[red]✗ Could not read {store.path}: {exc}[/red]")
        return EXIT_USAGE
    problems = validate_config_data(data)
    if problems:
        for problem in problems:
            console.print(f"[red]✗ {problem}[/red]")
        return EXIT_USAGE
    console.print(f"[green]✓ {store.path} is valid[/green]")
    return EXIT_OK


def run(args: argparse.Namespace, console: Optional[Console] = None) -> int:
    console = console or Console()
    verbose = args.verbose or bool(env_bool("FOLDERWATCH_VERBOSE"))
    configure_logging(logging.DEBUG if verbose else logging.INFO, log_file=args.log_file)

    store = ConfigStore(args.config or default_config_path())
    if args.command == "config":
        return _run_config(store, args.action, console)

    settle_delay = getattr(args, "settle_delay", None)
    service = FolderWatchService(store, settle_delay=settle_delay)
    try:
        if args.command == "watch":
            return _run_watch(service, args.folder, console, review=args.review)

        if args.command == "mode":
            if args.value is None:
                console.print(service.get_mode())
                return EXIT_OK
            try:
                mode = service.set_mode(args.value)
            except ModeError as exc:
                console.print(f"[red]✗ {exc}[/red]")
                return EXIT_USAGE
            console.print(f"[green]✓ Organization mode set to {mode.value}[/green]")
            return EXIT_OK

        if args.command == "rules":
            rules = service.get_config().rules
            if not rules:
                console.print("[dim]No rules configured.[/dim]")
            else:
                console.print(SummaryTableRenderer(console).render_rules_table(rules))
            return EXIT_OK

        if args.command == "move":
            try:
                final_path = service.manual_move(args.source, args.destination)
            except OrganizeError as exc:
                console.print(f"[red]✗ {exc}[/red]")
                return EXIT_FAILURE
            console.print(f"[green]✓ Moved to {final_path}[/green]")
            return EXIT_OK
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return EXIT_USAGE
    except FolderWatchError as exc:
        LOGGER.error("%s", exc)
        return EXIT_FAILURE
    finally:
        service.close(wait=False)

    return EXIT_USAGE


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
