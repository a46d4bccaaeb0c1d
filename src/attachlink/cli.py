"""Command line interface for attachlink."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import click
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from attachlink.config import AttachlinkConfig, ConfigError, ConfigManager
from attachlink.errors import AttachlinkError
from attachlink.library import LOG_FILENAME, LibraryError, ReferenceLibrary
from attachlink.library.models import Item
from attachlink.logging_setup import configure_logging
from attachlink.session import AttachlinkSession

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    if summary_only and mode not in {"summary", "warning", "error"}:
        return

    console.print(message, soft_wrap=True)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Target root path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _load_config(cli_overrides: dict[str, Any] | None = None) -> AttachlinkConfig:
    manager = ConfigManager()
    try:
        return manager.load(cli_overrides=cli_overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _open_library(path: Path, config: AttachlinkConfig) -> ReferenceLibrary:
    """Open the library at ``path`` and route logs to its log file."""
    root = path.expanduser().resolve()
    try:
        library = ReferenceLibrary.open(root)
    except LibraryError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(config.logging, root / LOG_FILENAME)
    return library


def _get_item(library: ReferenceLibrary, item_id: int) -> Item:
    try:
        return library.get_item(item_id)
    except LibraryError as exc:
        raise click.ClickException(str(exc)) from exc


def _resolve_flag(ctx: click.Context, name: str, value: bool, default: bool) -> bool:
    source = ctx.get_parameter_source(name)
    if source is ParameterSource.DEFAULT:
        return default
    return value


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="attachlink")
def cli() -> None:
    """attachlink moves managed attachments into linked files that mirror your collections."""


# ---------------------------------------------------------------------- #
# Library management                                                     #
# ---------------------------------------------------------------------- #


@cli.group()
def library() -> None:
    """Create and inspect local reference libraries."""


@library.command("init")
@click.argument("path", type=click.Path(file_okay=False, path_type=Path))
def library_init(path: Path) -> None:
    """Create an empty library at PATH."""
    root = path.expanduser().resolve()
    try:
        ReferenceLibrary.create(root)
    except LibraryError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Initialized library at {root}.[/green]", soft_wrap=True)


@library.command("add-collection")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("name")
@click.option("--parent", "parent_key", type=str, help="Key of the parent collection.")
def library_add_collection(path: Path, name: str, parent_key: Optional[str]) -> None:
    """Add a collection called NAME and print its key."""
    config = _load_config()
    lib = _open_library(path, config)
    try:
        collection = lib.add_collection(name, parent_key=parent_key)
    except LibraryError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(collection.key)


@library.command("add-item")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("title")
@click.option("--collection", "collections", multiple=True, help="Collection key to file into.")
def library_add_item(path: Path, title: str, collections: tuple[str, ...]) -> None:
    """Add a regular item with TITLE and print its id."""
    config = _load_config()
    lib = _open_library(path, config)
    try:
        item = lib.add_regular_item(title, collections=collections)
    except LibraryError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(str(item.id))


@library.command("import")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--parent", "parent_id", type=int, help="Regular item that owns the attachment.")
@click.option("--collection", "collections", multiple=True, help="Collection key to file into.")
def library_import(
    path: Path,
    file: Path,
    parent_id: Optional[int],
    collections: tuple[str, ...],
) -> None:
    """Copy FILE into managed storage as an attachment and print its id."""
    config = _load_config()
    lib = _open_library(path, config)
    with AttachlinkSession(lib, config):
        try:
            item = lib.import_file(file, parent_item_id=parent_id, collections=collections)
        except LibraryError as exc:
            raise click.ClickException(str(exc)) from exc
    click.echo(str(item.id))


@library.command("show")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Emit library contents as JSON.")
def library_show(path: Path, json_output: bool) -> None:
    """Display the items and collections of a library."""
    config = _load_config()
    lib = _open_library(path, config)
    items = lib.all_items()
    collections = lib.all_collections()

    if json_output:
        console.print_json(
            data={
                "root": str(lib.root),
                "collections": [collection.model_dump(mode="json") for collection in collections],
                "items": [item.model_dump(mode="json") for item in items],
            }
        )
        return

    table = Table(title=f"Items in {lib.root}")
    table.add_column("ID", justify="right")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Parent", justify="right")
    table.add_column("Link mode")
    table.add_column("File")
    for item in items:
        file_path = lib.get_file_path(item)
        table.add_row(
            str(item.id),
            item.item_type,
            item.title,
            str(item.parent_item_id or ""),
            item.link_mode or "",
            str(file_path) if file_path else "",
        )
    console.print(table)

    if collections:
        tree = Table(title="Collections")
        tree.add_column("Key")
        tree.add_column("Name")
        tree.add_column("Parent")
        for collection in collections:
            tree.add_row(collection.key, collection.name, collection.parent_key or "")
        console.print(tree)


# ---------------------------------------------------------------------- #
# Conversion and renames                                                 #
# ---------------------------------------------------------------------- #


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--item", "item_ids", type=int, multiple=True, help="Selected item id.")
@click.option("--collection", "collection_key", type=str, help="Selected collection key.")
@click.option(
    "--base-dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Directory for linked files (overrides attachments.base_attachment_path).",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the conversion.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def convert(
    ctx: click.Context,
    path: Path,
    item_ids: tuple[int, ...],
    collection_key: Optional[str],
    base_dir: Optional[str],
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Convert to Linked File: move selected attachments under the base directory.

    Without --item, every top-level item in --collection is selected. Files land
    in a directory path built from the collection's ancestor chain.
    """
    config = _load_config()
    quiet_enabled = _resolve_flag(ctx, "quiet", quiet, config.cli.quiet_default)
    summary_only = _resolve_flag(ctx, "summary_mode", summary_mode, config.cli.summary_default)
    if json_output and quiet_enabled:
        raise click.ClickException("--json cannot be combined with --quiet.")

    lib = _open_library(path, config)
    try:
        collection = lib.get_collection(collection_key) if collection_key else None
        if item_ids:
            selection = lib.get_items(item_ids)
        elif collection is not None:
            selection = lib.items_in_collection(collection.key)
        else:
            raise click.ClickException(
                "Select items with --item or a collection with --collection."
            )
    except LibraryError as exc:
        _handle_cli_error(str(exc), code="not_found", json_output=json_output, original=exc)
        return

    with AttachlinkSession(lib, config) as session:
        try:
            report = session.convert(selection, collection, base_dir=base_dir)
        except AttachlinkError as exc:
            _handle_cli_error(
                str(exc),
                code="conversion_error",
                json_output=json_output,
                details={"exception": type(exc).__name__},
                original=exc,
            )
            return

    counts = report.counts()
    if json_output:
        console.print_json(
            data={
                "context": {
                    "library": str(lib.root),
                    "base_dir": report.base_dir,
                    "collection_path": report.collection_path,
                },
                "counts": counts,
                "results": [result.model_dump(mode="json") for result in report.results],
            }
        )
        return

    for result in report.results:
        if result.status.value == "converted":
            _emit_message(
                f"[cyan]Item {result.item_id}: {result.source} -> {result.destination}[/cyan]",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        elif result.status.value == "skipped":
            _emit_message(
                f"[yellow]Item {result.item_id} skipped: {result.message}[/yellow]",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        else:
            _emit_message(
                f"[red]Item {result.item_id} failed: {result.message}[/red]",
                mode="error",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )

    _emit_message(
        _format_summary_line("Convert", report.base_dir, counts),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("item_id", type=int)
@click.argument("new_name")
@click.option("--overwrite", is_flag=True, help="Replace an existing file with the same name.")
@click.option("--unique", is_flag=True, help="Pick a free name when NEW_NAME is taken.")
def rename(path: Path, item_id: int, new_name: str, overwrite: bool, unique: bool) -> None:
    """Rename the file of attachment ITEM_ID to NEW_NAME, syncing its title."""
    config = _load_config()
    lib = _open_library(path, config)
    item = _get_item(lib, item_id)
    if not item.is_attachment():
        raise click.ClickException(f"Item {item_id} is not an attachment.")

    with AttachlinkSession(lib, config):
        result = lib.rename_attachment_file(item, new_name, overwrite=overwrite, unique=unique)

    if result == -1:
        raise click.ClickException(f"A file named {new_name} already exists.")
    if result is not True:
        raise click.ClickException(f"Could not rename the file of item {item_id}.")

    updated = lib.get_item(item_id)
    console.print(
        f"[green]Renamed item {item_id} to {updated.attachment_filename} "
        f"(title: {updated.title}).[/green]",
        soft_wrap=True,
    )


@cli.command("sync-titles")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("item_ids", type=int, nargs=-1)
def sync_titles(path: Path, item_ids: tuple[int, ...]) -> None:
    """Re-check attachment titles against filenames (all attachments by default)."""
    config = _load_config()
    lib = _open_library(path, config)
    targets = (
        [_get_item(lib, item_id) for item_id in item_ids]
        if item_ids
        else [item for item in lib.all_items() if item.is_attachment()]
    )
    before = {item.id: item.title for item in targets}

    with AttachlinkSession(lib, config) as session:
        session.refresh(before)

    updated = sum(1 for item_id, title in before.items() if lib.get_item(item_id).title != title)
    console.print(
        _format_summary_line(
            "Sync titles", lib.root, {"checked": len(before), "updated": updated}
        ),
        soft_wrap=True,
    )


# ---------------------------------------------------------------------- #
# Settings                                                               #
# ---------------------------------------------------------------------- #


@cli.group()
def config() -> None:
    """Inspect and change attachlink settings."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore ATTACHLINK__ environment overrides.")
@click.option("--json", "json_output", is_flag=True, help="Emit settings as JSON.")
def config_view(no_env: bool, json_output: bool) -> None:
    """Show every setting, its effective value and where the value comes from."""
    manager = ConfigManager()
    manager.ensure_exists()
    try:
        rows = manager.describe(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if json_output:
        console.print_json(
            data={
                "path": str(manager.config_path),
                "settings": [row._asdict() for row in rows],
            }
        )
        return

    table = Table(title=f"Settings in {manager.config_path}")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_column("Source")
    for row in rows:
        value = "[dim]unset[/dim]" if row.value is None else escape(str(row.value))
        table.add_row(row.key, value, row.source)
    console.print(table)


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Store VALUE for the SECTION.FIELD setting KEY.

    VALUE is read as YAML, so `true`, `42` and `null` keep their types.
    attachments.base_attachment_path must name an existing directory.
    """
    manager = ConfigManager()
    try:
        previous, current = manager.set_value(key, value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if previous == current:
        console.print(
            f"[yellow]{escape(key)} is already {escape(repr(current))}; nothing changed.[/yellow]",
            soft_wrap=True,
        )
        return
    console.print(
        f"[green]{escape(key)}: {escape(repr(previous))} -> {escape(repr(current))}[/green]",
        soft_wrap=True,
    )


@config.command("edit")
def config_edit() -> None:
    """Edit the settings file in $EDITOR; the result is validated before saving."""
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")
    if edited is None or edited == original:
        console.print("[yellow]No changes applied.[/yellow]")
        return

    try:
        manager.replace_text(edited)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Settings updated in {manager.config_path}.[/green]", soft_wrap=True)


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
