"""Interactive y/N confirmations. Anything but "y"/"yes" means no."""

from pathlib import Path

import click

from .models import Metadata


def ask_yes_no(question: str) -> bool:
    try:
        response = click.prompt(
            question, default="", show_default=False, prompt_suffix=" "
        )
    except click.Abort:
        return False
    return response.strip().lower() in ("y", "yes")


def confirm_move(metadata: Metadata, source: Path, target: Path) -> bool:
    click.echo("\nBook found:")
    click.echo(f"  Title: {metadata.title}")
    click.echo(f"  Authors: {', '.join(metadata.authors)}")
    series = metadata.valid_series()
    if series:
        click.echo(f"  Series: {series}")
    click.echo("\nProposed move:")
    click.echo(f"  From: {source}")
    click.echo(f"  To: {target}")
    return ask_yes_no("\nProceed with move? [y/N]")


def confirm_remove_dir(directory: Path) -> bool:
    click.echo("\nEmpty directory found:")
    click.echo(f"  Path: {directory}")
    return ask_yes_no("\nRemove empty directory? [y/N]")
