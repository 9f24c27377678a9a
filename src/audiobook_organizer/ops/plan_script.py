"""Write a dry-run move plan as a reviewable bash script."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from ..models import Metadata

log = logger.bind(stage="plan")

_HEADER = """\
#!/bin/bash
#
# Audiobook Organizer - Move Plan Script
# Generated: {generated}
# Source Directory: {base_dir}
{output_line}# Total Moves: {total}
#
# Review this script before running!
# Run with: bash {script_name}
#

set -e  # Exit on error
set -u  # Exit on undefined variable

# Set DRY_RUN=1 to preview without moving
DRY_RUN=${{DRY_RUN:-0}}

move_file() {{
    local src="$1"
    local dst="$2"
    local dst_dir
    dst_dir=$(dirname "$dst")

    if [[ $DRY_RUN -eq 1 ]]; then
        echo "[DRY-RUN] Would move: $src -> $dst"
    else
        mkdir -p "$dst_dir"
        mv "$src" "$dst"
        echo "Moved: $src -> $dst"
    fi
}}

# ============================================
# FILE MOVES
# ============================================
"""


@dataclass
class PlannedMove:
    source: Path
    target: Path
    metadata: Metadata | None = None


class PlanScriptWriter:
    """Collect planned moves during a dry run and write them as a script."""

    def __init__(self, script_path: Path, base_dir: Path, output_dir: Path | None = None) -> None:
        self.script_path = script_path
        self.base_dir = base_dir
        self.output_dir = output_dir
        self.moves: list[PlannedMove] = []

    def add_move(self, source: Path, target: Path, metadata: Metadata | None = None) -> None:
        self.moves.append(PlannedMove(source, target, metadata))

    def render(self) -> str:
        output_line = (
            f"# Output Directory: {self.output_dir}\n" if self.output_dir else ""
        )
        lines = [
            _HEADER.format(
                generated=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                base_dir=self.base_dir,
                output_line=output_line,
                total=len(self.moves),
                script_name=self.script_path.name,
            )
        ]

        current_book = None
        for move in self.moves:
            if move.metadata is not None:
                author = move.metadata.first_author("Unknown Author")
                book_id = (author, move.metadata.title)
                if book_id != current_book:
                    current_book = book_id
                    lines.append("")
                    lines.append("# --------------------------------------------")
                    lines.append(f"# Book: {move.metadata.title}")
                    lines.append(f"# Author: {author}")
                    series = move.metadata.valid_series()
                    if series:
                        lines.append(f"# Series: {series}")
                    lines.append("# --------------------------------------------")
            lines.append(
                f"move_file {shlex.quote(str(move.source))} {shlex.quote(str(move.target))}"
            )

        lines.append("")
        lines.append("# ============================================")
        lines.append("# SUMMARY")
        lines.append("# ============================================")
        lines.append('echo ""')
        lines.append(f'echo "Plan complete: {len(self.moves)} files processed"')
        return "\n".join(lines) + "\n"

    def write(self) -> Path:
        """Write the script and mark it executable."""
        self.script_path.parent.mkdir(parents=True, exist_ok=True)
        self.script_path.write_text(self.render(), encoding="utf-8")
        self.script_path.chmod(0o755)
        log.info(f"Plan script written to {self.script_path} ({len(self.moves)} moves)")
        return self.script_path
