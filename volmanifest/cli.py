"""CLI interface for volmanifest."""

import logging
import sys
from pathlib import Path

import click

from volmanifest.config import Config
from volmanifest.database import ManifestStore
from volmanifest.duplicates import DuplicateDetector, compare_pairs
from volmanifest.errors import EngineError
from volmanifest.formatting import format_duration, format_size, truncate
from volmanifest.registry import ManifestRegistry
from volmanifest.scanner import ConsoleProgress, ContentHasher, Scanner

SIZE_COLUMN_WIDTH = 10


@click.group()
@click.option(
    "--manifest-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="VOLMANIFEST_HOME",
    help="Directory holding manifest databases",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Enable logging at this level",
)
@click.pass_context
def cli(ctx: click.Context, manifest_dir: Path | None, log_level: str | None) -> None:
    ctx.ensure_object(dict)
    config = Config()
    if manifest_dir is not None:
        config.manifest_dir = manifest_dir
    ctx.obj["config"] = config
    ctx.obj["registry"] = ManifestRegistry(config.manifest_dir)

    if log_level:
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )


@cli.command()
@click.argument("source_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--name", help="Manifest name (defaults to the last path component)")
@click.option("-f", "--force", is_flag=True, help="Re-hash every file, ignoring cached digests")
@click.option("--subtree", help="Only scan this directory relative to SOURCE_PATH (no pruning)")
@click.option("--no-prune", is_flag=True, help="Keep entries for files that no longer exist")
@click.option("--progress-interval", type=int, default=None, help="Print status every N files")
@click.pass_context
def scan(
    ctx: click.Context,
    source_path: Path,
    name: str | None,
    force: bool,
    subtree: str | None,
    no_prune: bool,
    progress_interval: int | None,
) -> None:
    """Scan a directory and update its content manifest."""
    config: Config = ctx.obj["config"]
    registry: ManifestRegistry = ctx.obj["registry"]
    name = name or registry.name_for_volume(source_path)
    interval = progress_interval or config.scanner.progress_interval

    click.echo(f"Scanning {source_path.resolve()} into manifest '{name}'")

    try:
        with registry.open(name) as store:
            scanner = Scanner(
                store,
                hasher=ContentHasher(config.scanner.chunk_size),
                batch_size=config.scanner.batch_size,
                max_path_length=config.scanner.max_path_length,
            )
            result = scanner.scan(
                source_path,
                force=force,
                progress=ConsoleProgress(interval),
                subtree=subtree,
                prune=not no_prune,
            )
            dup_stats = store.duplicate_stats()
    except EngineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)

    click.echo()
    click.echo("Scan Summary:")
    click.echo(f"  Files hashed: {result.files_hashed:,} ({format_size(result.bytes_hashed)})")
    click.echo(f"  Files unchanged: {result.files_skipped:,}")
    click.echo(f"  Errors: {result.files_errored:,}")
    click.echo(f"  Pruned: {result.files_pruned:,}")
    click.echo(f"  Duration: {format_duration(result.duration_seconds)}")

    for error in result.errors[: config.duplicates.display_limit]:
        click.echo(f"    ! {error.path}: {error.reason}", err=True)
    if result.files_errored > config.duplicates.display_limit:
        remaining = result.files_errored - config.duplicates.display_limit
        click.echo(f"    ... and {remaining:,} more errors", err=True)

    if dup_stats.duplicate_groups:
        click.echo()
        click.echo(
            f"Found {dup_stats.duplicate_groups:,} duplicate groups "
            f"({dup_stats.duplicate_files:,} files, {format_size(dup_stats.wasted_space)} wasted)"
        )
        click.echo(f"Run 'volmanifest duplicates {name}' to see details")


@cli.command()
@click.argument("manifest")
@click.pass_context
def stats(ctx: click.Context, manifest: str) -> None:
    """Show statistics for a manifest (by name or scanned path)."""
    try:
        with _open_existing(ctx, manifest) as store:
            manifest_stats = store.statistics()
            label = store.label
    except EngineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"\nManifest Stats: {label}")
    click.echo("-" * 40)
    click.echo(f"  Total files: {manifest_stats.file_count:,}")
    click.echo(f"  Total size: {format_size(manifest_stats.total_size)}")
    click.echo()
    click.echo(f"  Duplicate groups: {manifest_stats.duplicates.duplicate_groups:,}")
    click.echo(f"  Duplicate files: {manifest_stats.duplicates.duplicate_files:,}")
    click.echo(f"  Wasted space: {format_size(manifest_stats.duplicates.wasted_space)}")
    if manifest_stats.duplicates.wasted_space:
        click.echo(f"  Potential savings: {manifest_stats.savings_percentage:.1f}%")


@cli.command()
@click.argument("manifest")
@click.option("--min-size", type=int, default=None, help="Minimum file size in bytes")
@click.option("--limit", type=int, default=None, help="Maximum groups to show (0 = unlimited)")
@click.pass_context
def duplicates(ctx: click.Context, manifest: str, min_size: int | None, limit: int | None) -> None:
    """List duplicate files within one manifest."""
    config: Config = ctx.obj["config"]
    min_size = config.duplicates.min_size if min_size is None else min_size
    limit = config.duplicates.display_limit if limit is None else limit

    try:
        with _open_existing(ctx, manifest) as store:
            groups = DuplicateDetector(store).find_duplicates(min_size)
    except EngineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not groups:
        click.echo("No duplicates found.")
        return

    click.echo()
    shown = groups[:limit] if limit else groups
    for i, group in enumerate(shown, start=1):
        click.echo(
            f"{i}. {format_size(group.size_each)} each, {group.count} copies, "
            f"{format_size(group.wasted_space)} wasted"
        )
        for j, file_path in enumerate(group.paths):
            marker = "*" if j == 0 else "x"
            click.echo(f"  {marker} {file_path}")
        click.echo()

    if len(groups) > len(shown):
        click.echo(f"... and {len(groups) - len(shown):,} more duplicate groups")
        click.echo()

    total_wasted = sum(group.wasted_space for group in groups)
    click.echo(f"Total duplicate groups: {len(groups):,}")
    click.echo(f"Total wasted space: {format_size(total_wasted)}")


@cli.command()
@click.argument("manifest")
@click.argument("entry_path")
@click.pass_context
def remove(ctx: click.Context, manifest: str, entry_path: str) -> None:
    """Remove ENTRY_PATH from a manifest index. The file itself is untouched."""
    try:
        with _open_existing(ctx, manifest) as store:
            removed = store.remove(entry_path)
    except EngineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if removed:
        click.echo(f"Removed entry: {entry_path}")
    else:
        click.echo(f"No entry for: {entry_path}")


@cli.command("list")
@click.pass_context
def list_manifests(ctx: click.Context) -> None:
    """List scanned manifests with their statistics."""
    registry: ManifestRegistry = ctx.obj["registry"]
    summaries = registry.collect_stats()

    if not summaries:
        click.echo("No manifests found. Run 'volmanifest scan <path>' first.")
        return

    click.echo("\nManifests:")
    click.echo("-" * 72)
    header = "Name".ljust(24) + "Files".rjust(12) + "Size".rjust(12)
    header += "Duplicates".rjust(12) + "Wasted".rjust(12)
    click.echo(header)
    click.echo("-" * 72)

    for summary in summaries:
        manifest_stats = summary.stats
        click.echo(
            f"{truncate(summary.name, 23):<24}"
            f"{manifest_stats.file_count:>12,}"
            f"{format_size(manifest_stats.total_size):>12}"
            f"{manifest_stats.duplicates.duplicate_groups:>12,}"
            f"{format_size(manifest_stats.duplicates.wasted_space):>12}"
        )


@cli.command()
@click.argument("names", nargs=-1, metavar="[MANIFEST]...")
@click.option("-l", "--list", "list_only", is_flag=True, help="List available manifests and exit")
@click.option("--min-size", type=int, default=None, help="Minimum file size in bytes")
@click.option("--limit", type=int, default=None, help="Duplicates to show per pair (0 = all)")
@click.pass_context
def compare(
    ctx: click.Context,
    names: tuple[str, ...],
    list_only: bool,
    min_size: int | None,
    limit: int | None,
) -> None:
    """Find content shared between manifests.

    Compares the named manifests pairwise, or all manifests when no names
    are given. Names are matched case-insensitively.
    """
    config: Config = ctx.obj["config"]
    registry: ManifestRegistry = ctx.obj["registry"]
    min_size = config.duplicates.cross_min_size if min_size is None else min_size
    limit = config.duplicates.compare_limit if limit is None else limit

    if list_only:
        ctx.invoke(list_manifests)
        return

    if names:
        manifests, not_found = registry.find(names)
        for name in not_found:
            click.echo(f"Warning: manifest '{name}' not found", err=True)
    else:
        manifests = registry.list()

    if len(manifests) < 2:
        click.echo("Error: at least two manifests are needed for a comparison.", err=True)
        click.echo("Run 'volmanifest scan <path>' on another volume first.", err=True)
        sys.exit(1)

    click.echo(
        f"Comparing: {', '.join(m.name for m in manifests)} (min size: {format_size(min_size)})"
    )
    click.echo()

    stores = [ManifestStore(m.path, label=m.name, read_only=True) for m in manifests]
    try:
        comparisons = compare_pairs(stores, min_size=min_size, limit=limit)
    except EngineError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    grand_count = 0
    grand_size = 0
    for comparison in comparisons:
        if not comparison.total_count:
            continue
        grand_count += comparison.total_count
        grand_size += comparison.total_size

        click.echo(f"  {comparison.source_label} (source) <-> {comparison.other_label} (also exists)")
        click.echo()
        for duplicate in comparison.duplicates:
            size = format_size(duplicate.size)
            for path in duplicate.paths_in(comparison.source_label):
                click.echo(f"    {size:>{SIZE_COLUMN_WIDTH}} {path}")
            for path in duplicate.paths_in(comparison.other_label):
                click.echo(f"    {'':>{SIZE_COLUMN_WIDTH}} -> {path}")

        hidden = comparison.total_count - len(comparison.duplicates)
        if hidden > 0:
            click.echo(f"    {'':>{SIZE_COLUMN_WIDTH}}  ... and {hidden:,} more (use --limit 0 to see all)")
        click.echo(
            f"\n    Subtotal: {comparison.total_count:,} shared groups ({format_size(comparison.total_size)})\n"
        )

    if grand_count == 0:
        click.echo("No cross-manifest duplicates found.")
        return

    click.echo(f"Total: {grand_count:,} shared groups ({format_size(grand_size)})")


def _open_existing(ctx: click.Context, manifest: str) -> ManifestStore:
    """Resolve a manifest argument (name or scanned path) without creating it."""
    registry: ManifestRegistry = ctx.obj["registry"]
    candidate = Path(manifest).expanduser()
    name = registry.name_for_volume(candidate) if candidate.is_dir() else manifest

    db_path = registry.path_for(name)
    if not db_path.exists():
        raise EngineError(f"No manifest named '{name}'. Run 'volmanifest scan <path>' first.")
    return ManifestStore(db_path, label=name)


def main() -> None:
    """Entry point for the CLI."""
    cli(standalone_mode=True)  # pylint: disable=no-value-for-parameter


if __name__ == "__main__":
    main()
