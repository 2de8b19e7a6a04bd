#!/usr/bin/env python3
"""CLI entry point for quartz-publish."""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table

from .core.auth import GitHubAuth
from .core.client import GitHubClient
from .core.errors import RemoteRepositoryError, ValidationError
from .core.service import PublishService
from .models.config import PublishConfig
from .models.records import (
    ConflictResolution,
    PublishableItem,
    SaveResult,
    SaveStatus,
    StatusKind,
    StatusOverview,
)

console = Console()

DEFAULT_CONFIG = "quartz-publish.yaml"

RESOLUTION_CHOICES = {
    "reload": ConflictResolution.RELOAD,
    "force": ConflictResolution.FORCE_OVERWRITE,
    "cancel": ConflictResolution.CANCEL,
}


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose)],
    )


def load_service(args: argparse.Namespace) -> PublishService | None:
    """Build the service from the config file, printing any setup error."""
    config_path = Path(args.config)
    if not config_path.exists():
        console.print(f"[red]Config not found: {config_path}")
        return None

    try:
        return PublishService.from_config_file(config_path)
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}")
        return None


def _format_time(epoch: float | None) -> str:
    if not epoch:
        return "Never"
    return datetime.fromtimestamp(epoch).strftime("%Y-%m-%d %H:%M:%S")


def cmd_verify_auth(args: argparse.Namespace) -> int:
    """Verify GitHub token and repository access."""
    console.print("Verifying GitHub credentials...", style="blue")

    config_path = Path(args.config)
    config = PublishConfig.load(config_path) if config_path.exists() else PublishConfig()

    try:
        auth = GitHubAuth(repository=config.repository or None, branch=config.branch)
        client = GitHubClient(auth)
        if client.verify_connection():
            console.print(f"[green]Authentication successful! Repository: {auth.owner}/{auth.repo}")
            limit = client.get_rate_limit()
            if limit:
                console.print(f"Rate limit: {limit.get('remaining')}/{limit.get('limit')} remaining")
            return 0
        console.print("[red]Unexpected response from repository endpoint")
    except RemoteRepositoryError as e:
        console.print(f"[red]Authentication failed: {e}")
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}")

    return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Show publish status of every note."""
    service = load_service(args)
    if service is None:
        return 1

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Computing status...", total=None)

        def on_progress(processed: int, total: int) -> None:
            progress.update(task, completed=processed, total=total)

        overview = asyncio.run(service.compute_overview(on_progress, offline=args.offline))

    _render_overview(overview, show_synced=args.all)
    return 0


def _render_overview(overview: StatusOverview, show_synced: bool = False) -> None:
    counts = overview.counts()
    console.print(
        f"\n[bold]Summary:[/bold] {counts['new']} new, {counts['modified']} modified, "
        f"{counts['synced']} synced, {counts['deleted']} pending delete"
    )

    styles = {
        StatusKind.NEW: ("New", "green"),
        StatusKind.MODIFIED: ("Modified", "yellow"),
        StatusKind.SYNCED: ("Synced", "dim"),
        StatusKind.PENDING_DELETE: ("Pending delete", "red"),
    }

    table = Table(title="\nPublish Status")
    table.add_column("Path")
    table.add_column("Status")
    table.add_column("Published At")

    rows = 0
    for kind in (StatusKind.NEW, StatusKind.MODIFIED, StatusKind.PENDING_DELETE, StatusKind.SYNCED):
        if kind == StatusKind.SYNCED and not show_synced:
            continue
        label, style = styles[kind]
        for entry in overview.bucket(kind):
            path = entry.item.path if entry.item.exists else f"{entry.item.path} (missing)"
            published = entry.record.published_at if entry.record else ""
            table.add_row(path, f"[{style}]{label}", published)
            rows += 1

    if rows:
        console.print(table)
    else:
        console.print("\n[green]Everything is up to date.")


def cmd_publish(args: argparse.Namespace) -> int:
    """Publish notes."""
    service = load_service(args)
    if service is None:
        return 1

    if args.all_changed:
        overview = asyncio.run(service.compute_overview())
        items = [e.item for e in overview.new + overview.modified]
    else:
        items = service.items_for_paths(args.paths)

    if not items:
        console.print("[yellow]Nothing to publish")
        return 0

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task = progress.add_task("Publishing...", total=len(items))

        def on_progress(current: int, total: int, item: PublishableItem) -> None:
            progress.update(task, completed=current - 1, description=f"Publishing {item.path}")

        try:
            result = asyncio.run(service.publish_batch(items, on_progress))
        except ValidationError as e:
            console.print(f"[red]{e}")
            return 1
        progress.update(task, completed=len(items), description="Done")

    if result.busy:
        console.print("[red]Another publish is already in progress")
        return 1

    for r in result.results:
        if r.success:
            console.print(f"[green]Published {r.item.path} -> {r.remote_path}")
        else:
            console.print(f"[red]FAILED: {r.item.path}[/red] ({r.error_kind})")
            console.print(f"        {r.error}")

    console.print(f"\n[bold]Summary:[/bold] {result.succeeded} published, {result.failed} failed")
    return 0 if result.failed == 0 else 1


def cmd_unpublish(args: argparse.Namespace) -> int:
    """Remove notes from the site."""
    service = load_service(args)
    if service is None:
        return 1

    if args.all_deleted:
        overview = asyncio.run(service.compute_overview())
        items = [e.item for e in overview.deleted]
    else:
        items = service.items_for_paths(args.paths)

    if not items:
        console.print("[yellow]Nothing to unpublish")
        return 0

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(description=f"Unpublishing {len(items)} notes...", total=None)
        try:
            results = asyncio.run(service.unpublish_batch(items))
        except ValidationError as e:
            console.print(f"[red]{e}")
            return 1

    failed = 0
    for r in results:
        if r.success:
            console.print(f"[green]Unpublished {r.item.path}")
        else:
            failed += 1
            console.print(f"[red]FAILED: {r.item.path}[/red] ({r.error_kind})")
            console.print(f"        {r.error}")

    console.print(f"\n[bold]Summary:[/bold] {len(results) - failed} unpublished, {failed} failed")
    return 0 if failed == 0 else 1


def cmd_cache(args: argparse.Namespace) -> int:
    """Inspect or manage the remote listing cache."""
    service = load_service(args)
    if service is None:
        return 1

    if args.cache_command == "refresh":
        result = asyncio.run(service.refresh_remote_cache())
        if not result.success:
            console.print(f"[red]Remote sync failed: {result.error}")
            return 1
        console.print(f"[green]Fetched {len(result.files)} remote files")
        return 0

    if args.cache_command == "invalidate":
        service.invalidate_remote_cache()
        console.print("[green]Remote cache invalidated")
        return 0

    status = service.remote_sync.status()
    valid = "[green]Yes" if status["valid"] else "[red]No"
    console.print(f"\n[bold]Content Path:[/bold] {status['content_path']}")
    console.print(f"[bold]Cached:[/bold] {'Yes' if status['cached'] else 'No'}")
    console.print(f"[bold]Valid:[/bold] {valid}")
    console.print(f"[bold]Fetched At:[/bold] {_format_time(status['fetched_at'])}")
    console.print(f"[bold]Valid Until:[/bold] {_format_time(status['valid_until'])}")
    console.print(f"[bold]Total Files:[/bold] {status['total_files']}")
    return 0


def cmd_records(args: argparse.Namespace) -> int:
    """Clean up publish records."""
    service = load_service(args)
    if service is None:
        return 1

    if args.remote:
        removed = asyncio.run(service.clean_up_deleted_records())
        console.print(f"Removed {removed} records no longer present on the remote")
    else:
        if args.all and not args.yes:
            confirmed = Confirm.ask(
                f"Forget all {len(service.records.get_all())} publish records? Published notes will show as new",
                console=console,
                default=False,
            )
            if not confirmed:
                console.print("Cancelled")
                return 1
        removed = service.clean_up_records(cleanup_all=args.all)
        console.print(f"Removed {removed} records")
    return 0


def cmd_site_config(args: argparse.Namespace) -> int:
    """Pull or push the shared site configuration."""
    service = load_service(args)
    if service is None:
        return 1

    try:
        if args.site_config_command == "pull":
            remote = asyncio.run(service.load_shared_resource())
            text = remote.content.decode("utf-8")
            if args.output:
                Path(args.output).write_text(text, encoding="utf-8")
                console.print(f"[green]Saved {remote.path} to {args.output}")
            else:
                console.print(text, markup=False, highlight=False)
            console.print(f"[bold]Version:[/bold] {remote.version}")
            return 0

        return _push_site_config(service, args)
    except (RemoteRepositoryError, OSError) as e:
        console.print(f"[red]Error: {e}")
        return 1


def _push_site_config(service: PublishService, args: argparse.Namespace) -> int:
    new_value = Path(args.file).read_text(encoding="utf-8")
    message = args.message or f"Update {service.config.site_config_path}"

    result = asyncio.run(service.save_shared_resource(new_value, args.baseline, message))

    while result.conflict:
        console.print(
            f"[yellow]CONFLICT: {service.config.site_config_path} changed remotely "
            f"(remote version {result.remote_version})"
        )
        choice = args.on_conflict or Prompt.ask(
            "Resolve conflict",
            choices=list(RESOLUTION_CHOICES),
            default="cancel",
            console=console,
        )
        result = asyncio.run(
            service.resolve_conflict(RESOLUTION_CHOICES[choice], result, new_value, message)
        )
        if args.on_conflict:
            break

    return _report_save(result, args)


def _report_save(result: SaveResult, args: argparse.Namespace) -> int:
    if result.status == SaveStatus.SUCCESS:
        console.print(f"[green]Saved. New version: {result.version}")
        return 0
    if result.status == SaveStatus.RELOADED:
        Path(args.file).write_text(result.value or "", encoding="utf-8")
        console.print(f"[yellow]Reloaded remote content into {args.file} (version {result.version})")
        return 1
    if result.status == SaveStatus.CANCELLED:
        console.print("[yellow]Cancelled")
        return 1
    if result.status == SaveStatus.CONFLICT:
        console.print("[red]Remote changed again, nothing saved")
        return 1
    console.print(f"[red]Save failed: {result.error}")
    return 1


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="quartz-publish",
        description="Publish notes from a local vault to a Quartz site repository on GitHub",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help=f"Config file (default: {DEFAULT_CONFIG})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # verify-auth command
    subparsers.add_parser("verify-auth", help="Verify GitHub authentication")

    # status command
    status_parser = subparsers.add_parser("status", help="Show publish status")
    status_parser.add_argument("--offline", action="store_true", help="Do not fetch the remote listing")
    status_parser.add_argument("--all", action="store_true", help="Also list synced notes")

    # publish command
    publish_parser = subparsers.add_parser("publish", help="Publish notes")
    publish_parser.add_argument("paths", nargs="*", help="Vault paths of notes to publish")
    publish_parser.add_argument("--all-changed", action="store_true", help="Publish all new and modified notes")

    # unpublish command
    unpublish_parser = subparsers.add_parser("unpublish", help="Remove notes from the site")
    unpublish_parser.add_argument("paths", nargs="*", help="Vault paths of notes to remove")
    unpublish_parser.add_argument("--all-deleted", action="store_true", help="Remove all notes pending delete")

    # cache commands
    cache_parser = subparsers.add_parser("cache", help="Remote listing cache")
    cache_subparsers = cache_parser.add_subparsers(dest="cache_command")
    cache_subparsers.add_parser("status", help="Show cache status")
    cache_subparsers.add_parser("refresh", help="Fetch the remote listing now")
    cache_subparsers.add_parser("invalidate", help="Drop the cached listing")

    # records commands
    records_parser = subparsers.add_parser("records", help="Publish record maintenance")
    records_subparsers = records_parser.add_subparsers(dest="records_command")
    records_cleanup = records_subparsers.add_parser("cleanup", help="Remove stale records")
    records_cleanup.add_argument("--all", action="store_true", help="Remove every record")
    records_cleanup.add_argument("--remote", action="store_true", help="Remove records missing from the remote")
    records_cleanup.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation for --all")

    # site-config commands
    site_parser = subparsers.add_parser("site-config", help="Shared site configuration")
    site_subparsers = site_parser.add_subparsers(dest="site_config_command")

    site_pull = site_subparsers.add_parser("pull", help="Download the site configuration")
    site_pull.add_argument("--output", help="Write to this file instead of stdout")

    site_push = site_subparsers.add_parser("push", help="Upload an edited site configuration")
    site_push.add_argument("file", help="Edited configuration file")
    site_push.add_argument("--baseline", required=True, help="Version the edit is based on")
    site_push.add_argument("--message", help="Commit message")
    site_push.add_argument(
        "--on-conflict",
        choices=list(RESOLUTION_CHOICES),
        help="Resolve conflicts without prompting",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    if args.command == "verify-auth":
        return cmd_verify_auth(args)
    elif args.command == "status":
        return cmd_status(args)
    elif args.command == "publish":
        if not args.paths and not args.all_changed:
            publish_parser.print_help()
            return 1
        return cmd_publish(args)
    elif args.command == "unpublish":
        if not args.paths and not args.all_deleted:
            unpublish_parser.print_help()
            return 1
        return cmd_unpublish(args)
    elif args.command == "cache":
        if args.cache_command:
            return cmd_cache(args)
        else:
            cache_parser.print_help()
            return 1
    elif args.command == "records":
        if args.records_command:
            return cmd_records(args)
        else:
            records_parser.print_help()
            return 1
    elif args.command == "site-config":
        if args.site_config_command:
            return cmd_site_config(args)
        else:
            site_parser.print_help()
            return 1
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
