"""CLI entrypoint for vaultkeep."""

import logging
import sys
from pathlib import Path
from typing import Any, Callable

import click
from rich.logging import RichHandler

from . import __version__
from .errors import VaultkeepError

VAULT_MARKERS = (".vaultkeep", ".obsidian")


def _auto_detect_vault(start: Path) -> Path | None:
    """Find the nearest folder holding .vaultkeep/ or .obsidian/, walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if any((p / marker).is_dir() for marker in VAULT_MARKERS):
            return p
    return None


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False, markup=False)],
        force=True,
    )


def _invoke(fn: Callable[..., int], *args: Any, **kwargs: Any) -> None:
    """Run a command implementation and exit with its code."""
    try:
        exit_code = fn(*args, **kwargs)
    except VaultkeepError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


collision_option = click.option(
    "--delete-existing/--keep-existing",
    "delete_existing",
    default=None,
    help="On a name collision, delete the attachment being moved instead of renaming it (default from config)",
)
naming_option = click.option(
    "--content-addressed/--positional",
    "content_addressed",
    default=None,
    help="Name collected attachments by content hash under the note ID (default from config)",
)


@click.group()
@click.version_option(__version__, prog_name="vaultkeep")
@click.option(
    "--vault",
    "-v",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the vault root (lowercase -v; defaults to the nearest folder with .vaultkeep/ or .obsidian/)",
)
@click.option("--verbose", "-V", count=True, help="Log engine activity (uppercase -V; -VV for debug)")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, verbose: int) -> None:
    """vaultkeep - Keep vault links and attachments consistent.

    Moves attachments along with their notes, rewrites links after renames,
    deletes orphaned attachments and normalizes link syntax.
    """
    ctx.ensure_object(dict)
    _configure_logging(verbose)

    if vault is None:
        detected = _auto_detect_vault(Path.cwd())
        if detected is None:
            raise click.ClickException("Vault not found. Pass --vault /path/to/vault or run from inside one.")
        vault = detected

    if not vault.exists() or not vault.is_dir():
        raise click.BadParameter(f"Directory '{vault}' does not exist.", param_hint="--vault / -v")

    ctx.obj["vault"] = vault.resolve()


@cli.command()
@click.option("--out", type=str, default=None, help="Report path inside the vault (default from config)")
@click.option("--strict", is_flag=True, help="Exit with error if unresolved links or embeds were found")
@click.pass_context
def check(ctx: click.Context, out: str | None, strict: bool) -> None:
    """Write a consistency report of bad links and wikilink-style links."""
    from .commands.check import run_check

    _invoke(run_check, ctx.obj["vault"], out=out, strict=strict)


@cli.command()
@click.argument("note", required=False)
@click.option("--folder", is_flag=True, help="Collect for every note under NOTE's folder")
@collision_option
@naming_option
@click.pass_context
def collect(
    ctx: click.Context,
    note: str | None,
    folder: bool,
    delete_existing: bool | None,
    content_addressed: bool | None,
) -> None:
    """Move attachments into their notes' attachment folders.

    Without NOTE, every note in the vault is processed.

    Examples:

        vaultkeep collect

        vaultkeep collect Projects/plan.md --folder
    """
    from .commands.organize import run_collect

    if folder and note is None:
        raise click.UsageError("--folder needs a NOTE")

    _invoke(
        run_collect,
        ctx.obj["vault"],
        note,
        folder=folder,
        delete_existing=delete_existing,
        content_addressed=content_addressed,
    )


@cli.command()
@click.argument("target", type=click.Choice(["relative", "markdown"]))
@click.argument("note", required=False)
@click.option("--embeds-only", is_flag=True, help="Only convert embeds")
@click.option("--links-only", is_flag=True, help="Only convert links")
@click.pass_context
def convert(ctx: click.Context, target: str, note: str | None, embeds_only: bool, links_only: bool) -> None:
    """Rewrite link paths as relative, or wikilinks as Markdown links.

    Examples:

        vaultkeep convert relative

        vaultkeep convert markdown notes/today.md --embeds-only
    """
    from .commands.organize import run_convert

    _invoke(
        run_convert,
        ctx.obj["vault"],
        target,
        note,
        embeds_only=embeds_only,
        links_only=links_only,
    )


@cli.command()
@collision_option
@naming_option
@click.pass_context
def reorganize(ctx: click.Context, delete_existing: bool | None, content_addressed: bool | None) -> None:
    """Convert to Markdown links, make paths relative, collect, prune."""
    from .commands.organize import run_reorganize

    _invoke(
        run_reorganize,
        ctx.obj["vault"],
        delete_existing=delete_existing,
        content_addressed=content_addressed,
    )


@cli.command("delete-empty-folders")
@click.pass_context
def delete_empty_folders(ctx: click.Context) -> None:
    """Remove every empty folder in the vault."""
    from .commands.organize import run_delete_empty_folders

    _invoke(run_delete_empty_folders, ctx.obj["vault"])


@cli.command()
@click.argument("old")
@click.argument("new")
@click.pass_context
def mv(ctx: click.Context, old: str, new: str) -> None:
    """Rename OLD to NEW, moving its attachments and fixing every link."""
    from .commands.files_cmd import run_move

    _invoke(run_move, ctx.obj["vault"], old, new)


@cli.command()
@click.argument("path")
@click.pass_context
def rm(ctx: click.Context, path: str) -> None:
    """Delete PATH and the attachments only it referenced."""
    from .commands.files_cmd import run_remove

    _invoke(run_remove, ctx.obj["vault"], path)


@cli.command()
@click.option(
    "--auto-collect/--no-auto-collect",
    "auto_collect",
    default=None,
    help="Collect attachments of notes as they are saved (default from config)",
)
@click.pass_context
def watch(ctx: click.Context, auto_collect: bool | None) -> None:
    """Watch the vault and run cascades for outside renames and deletes.

    Runs until interrupted (Ctrl+C).
    """
    from .commands.watch_cmd import run_watch

    _invoke(run_watch, ctx.obj["vault"], auto_collect=auto_collect)


@cli.command()
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N entries")
@click.pass_context
def history(ctx: click.Context, last_n: int | None) -> None:
    """Show the audit log of state-changing operations."""
    from .commands.watch_cmd import run_history

    run_history(ctx.obj["vault"], last_n=last_n)


if __name__ == "__main__":
    cli()
