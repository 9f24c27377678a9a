"""CLI entry point for the audiobook organizer."""

import os
import sys
from pathlib import Path

import click
from loguru import logger
from pydantic import ValidationError

from .config import FieldMapping, OrganizerConfig
from .errors import OrganizerError
from .models import Layout, SeriesFormat
from .organizer import Organizer

log = logger.bind(stage="cli")


def _find_config_file() -> Path | None:
    """Look for .env next to the package or in cwd."""
    pkg_dir = Path(__file__).resolve().parent
    for candidate in [
        pkg_dir.parent.parent / ".env",  # dev: src/../.env
        Path.cwd() / ".env",
    ]:
        if candidate.is_file():
            return candidate
    return None


def _parse_env_line(line: str) -> tuple[str, str] | None:
    """KEY=value from one .env line; None for comments, blanks, and ${...} expansions."""
    line = line.strip()
    if line.startswith("#") or "=" not in line:
        return None
    key, _, value = line.removeprefix("export ").partition("=")
    value = value.strip()
    if value[:1] in ("'", '"') and value.endswith(value[0]) and len(value) > 1:
        value = value[1:-1]
    if "${" in value:
        return None
    return key.strip(), value


def _load_env_file(env_file: Path) -> None:
    """Fill os.environ from an .env file. Variables already set win."""
    pairs = filter(None, map(_parse_env_line, env_file.read_text().splitlines()))
    for key, value in pairs:
        os.environ.setdefault(key, value)


def _field_mapping(
    title_field: str | None,
    series_field: str | None,
    author_fields: str | None,
    track_field: str | None,
) -> FieldMapping | None:
    """Build a FieldMapping from the mapping flags, or None if none were given."""
    if not any((title_field, series_field, author_fields, track_field)):
        return None
    updates: dict[str, object] = {}
    if title_field:
        updates["title_field"] = title_field
    if series_field:
        updates["series_field"] = series_field
    if author_fields:
        fields = tuple(f.strip() for f in author_fields.split(",") if f.strip())
        if fields:
            updates["author_fields"] = fields
    if track_field:
        updates["track_field"] = track_field
    return FieldMapping(**updates)


@click.command()
@click.option(
    "--dir", "--input", "base_dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Base directory (or single file) to organize.",
)
@click.option(
    "--out", "--output", "output_dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Output root. Defaults to the base directory.",
)
@click.option(
    "--layout",
    type=click.Choice([layout.value for layout in Layout]),
    default=None,
    help="Directory layout for organized books.",
)
@click.option(
    "--series-format",
    type=click.Choice([fmt.value for fmt in SeriesFormat]),
    default=None,
    help="Series number style in numbered layouts.",
)
@click.option("--series-padding", type=int, default=None, help="Zero padding for bracket numbers.")
@click.option("--replace-space", default=None, help="Replace spaces in path components with this.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--dry-run", is_flag=True, help="Show what would happen without doing it.")
@click.option("--undo", is_flag=True, help="Restore files from the last run's journal.")
@click.option("--prompt", is_flag=True, help="Confirm each move interactively.")
@click.option("--remove-empty", is_flag=True, help="Remove empty directories after moving.")
@click.option("--flat", is_flag=True, help="Treat each file on its own (implies --use-embedded-metadata).")
@click.option("--use-embedded-metadata", is_flag=True, help="Read EPUB and audio tags.")
@click.option("--title-field", default=None, help="Raw field used as the title.")
@click.option("--series-field", default=None, help="Raw field used as the series.")
@click.option("--author-fields", default=None, help="Comma-separated raw fields used as authors.")
@click.option("--track-field", default=None, help="Raw field used as the track number.")
@click.option(
    "--plan-script",
    type=click.Path(path_type=Path),
    default=None,
    help="With --dry-run, write the planned moves as a bash script.",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    default=None,
    help="Path to .env config file.",
)
def main(
    base_dir: Path | None,
    output_dir: Path | None,
    layout: str | None,
    series_format: str | None,
    series_padding: int | None,
    replace_space: str | None,
    verbose: bool,
    dry_run: bool,
    undo: bool,
    prompt: bool,
    remove_empty: bool,
    flat: bool,
    use_embedded_metadata: bool,
    title_field: str | None,
    series_field: str | None,
    author_fields: str | None,
    track_field: str | None,
    plan_script: Path | None,
    config_file: str | None,
) -> None:
    """Organize audiobooks into Author/Series/Title directories."""
    # Load .env into environment before OrganizerConfig reads env vars
    env_file = Path(config_file) if config_file else _find_config_file()
    if env_file and env_file.is_file():
        _load_env_file(env_file)
        log.debug(f"Loaded env from {env_file}")
    else:
        log.debug("No .env found")

    if plan_script and not dry_run:
        raise click.UsageError("--plan-script requires --dry-run.")

    # Pass CLI flags as kwargs to avoid env pollution; unset flags defer to env
    config_kwargs: dict[str, object] = {}
    for key, value in (
        ("base_dir", base_dir),
        ("output_dir", output_dir),
        ("layout", layout),
        ("series_format", series_format),
        ("series_padding", series_padding),
        ("replace_space", replace_space),
        ("plan_script", plan_script),
    ):
        if value is not None:
            config_kwargs[key] = value
    for key, flag in (
        ("verbose", verbose),
        ("dry_run", dry_run),
        ("undo", undo),
        ("prompt", prompt),
        ("remove_empty", remove_empty),
        ("flat", flat),
        ("use_embedded_metadata", use_embedded_metadata or flat),
    ):
        if flag:
            config_kwargs[key] = True
    mapping = _field_mapping(title_field, series_field, author_fields, track_field)
    if mapping is not None:
        config_kwargs["field_mapping"] = mapping

    try:
        config = OrganizerConfig(**config_kwargs)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise click.UsageError(str(exc)) from exc
    config.setup_logging()

    log.info(
        f"Starting organizer: base_dir={config.base_dir} layout={config.layout} "
        f"dry_run={config.dry_run} undo={config.undo}"
    )
    try:
        summary = Organizer(config).run()
    except OrganizerError as exc:
        log.error(str(exc))
        click.echo(f"ERROR: {exc}", err=True)
        sys.exit(1)

    if summary.errors:
        log.warning(f"Run finished with {len(summary.errors)} error(s)")
