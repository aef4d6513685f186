"""CLI entry point for steamdoc."""

from pathlib import Path
from typing import Optional

import click
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table
from rich.text import Text

from steamdoc.blocks.parser import blocks_to_markdown, parse_markdown
from steamdoc.models.config import Config, default_config_path
from steamdoc.models.diff import (
    format_diff_for_display,
    generate_diff,
    generate_unified_diff,
    generate_word_diff,
)
from steamdoc.models.pending_diff import PendingDiff
from steamdoc.services.apply_engine import apply_diffs
from steamdoc.services.exceptions import BlockNotFoundError, DuplicateBlockIdError
from steamdoc.utils.ids import positional_ids
from steamdoc.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)
console = Console()
err_console = Console(stderr=True)

_diff_list = TypeAdapter(list[PendingDiff])


def load_config() -> Config:
    """
    Load configuration from ~/.config/steamdoc/config.yaml (defaults if absent).

    Raises:
        click.ClickException: If the file exists but is invalid
    """
    try:
        config = Config.load_default()
        logger.info("config_loaded", path=str(default_config_path()))
        return config
    except PermissionError as e:
        logger.error("config_permission_error", path=str(default_config_path()))
        raise click.ClickException(str(e))
    except ValueError as e:
        logger.error("config_validation_error", error=str(e))
        raise click.ClickException(f"Configuration validation failed:\n{e}")


def read_markdown(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def load_diffs(path: Path) -> list[PendingDiff]:
    """
    Load a JSON array of pending diffs.

    Raises:
        click.ClickException: If the file is not a valid diff list
    """
    try:
        return _diff_list.validate_json(path.read_bytes())
    except ValidationError as e:
        logger.error("diff_file_invalid", path=str(path), errors=e.error_count())
        raise click.ClickException(f"Invalid diff file {path}:\n{e}")


@click.group()
@click.version_option(version="0.1.0", prog_name="steamdoc")
def cli():
    """steamdoc: block-level editing core for STEAM lesson plans."""
    configure_logging()


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def blocks(file: Path):
    """
    Show the blocks a markdown file parses into.

    IDs are positional (block-0, block-1, ...), the same IDs `apply`
    resolves diffs against.
    """
    result = parse_markdown(read_markdown(file), id_factory=positional_ids())
    logger.info("blocks_command", path=str(file), blocks=len(result.blocks))

    table = Table(title=f"{file.name}: {len(result.blocks)} blocks")
    table.add_column("ID", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Level", justify="right")
    table.add_column("Preview")

    for block in result.blocks:
        level = "" if block.level is None else str(block.level)
        table.add_row(block.id, block.type, level, Text(block.preview()))

    console.print(table)


@cli.command()
@click.argument("old", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--words", "mode", flag_value="words", help="Word-level diff")
@click.option("--unified", "mode", flag_value="unified", help="Unified patch output")
def diff(old: Path, new: Path, mode: Optional[str]):
    """
    Compare two markdown files.

    Examples:
        steamdoc diff before.md after.md
        steamdoc diff before.md after.md --words
        steamdoc diff before.md after.md --unified > lesson.patch
    """
    old_text = read_markdown(old)
    new_text = read_markdown(new)
    logger.info("diff_command", old=str(old), new=str(new), mode=mode or "lines")

    if mode == "unified":
        click.echo(generate_unified_diff(old_text, new_text, fromfile=str(old), tofile=str(new)), nl=False)
        return

    if mode == "words":
        styles = {"add": "green", "remove": "red strike", "unchanged": ""}
        text = Text()
        for change in generate_word_diff(old_text, new_text):
            text.append(change.value, style=styles[change.type])
        console.print(text)
        return

    result = generate_diff(old_text, new_text)
    if not result.has_changes:
        click.echo("No differences.")
        return

    click.echo(format_diff_for_display(result))
    click.echo(f"\n{result.additions} added, {result.deletions} removed, {result.unchanged} unchanged")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("diffs_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--lang", type=click.Choice(["en", "zh"]), default=None, help="Summary language (default: config)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the result here instead of stdout")
def apply(file: Path, diffs_json: Path, lang: Optional[str], output: Optional[Path]):
    """
    Apply a JSON list of pending diffs to a markdown file.

    Diffs reference the positional block IDs shown by `steamdoc blocks`.
    The batch is all-or-nothing: if an added block's anchor cannot be
    found or its ID is already taken, nothing is written.
    """
    config = load_config()
    lang = lang or config.editor.language
    diffs = load_diffs(diffs_json)

    logger.info("apply_command_started", path=str(file), diffs=len(diffs), lang=lang)

    try:
        result = apply_diffs(read_markdown(file), diffs, lang=lang)
    except (BlockNotFoundError, DuplicateBlockIdError) as e:
        logger.error("apply_command_failed", block_id=e.block_id)
        raise click.ClickException(f"{e}. No changes were written.")

    if output is not None:
        output.write_text(result.updated_lesson + "\n", encoding="utf-8")
    else:
        click.echo(result.updated_lesson)

    err_console.print(result.summary, markup=False, highlight=False)
    for change in result.applied_changes:
        err_console.print(f"  {change}", markup=False, highlight=False)
    if result.skipped_diff_ids:
        err_console.print(
            f"Skipped (block not found): {', '.join(result.skipped_diff_ids)}", markup=False, highlight=False
        )


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--in-place", "-i", is_flag=True, help="Rewrite FILE instead of printing")
def normalize(file: Path, in_place: bool):
    """Rewrite a markdown file in the canonical block form."""
    result = parse_markdown(read_markdown(file))
    normalized = blocks_to_markdown(result.blocks)
    logger.info("normalize_command", path=str(file), blocks=len(result.blocks), in_place=in_place)

    if in_place:
        file.write_text(normalized + "\n", encoding="utf-8")
        click.echo(f"Normalized {file} ({len(result.blocks)} blocks)")
    else:
        click.echo(normalized)


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
