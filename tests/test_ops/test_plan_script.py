"""Tests for ops/plan_script.py -- dry-run plan scripts."""

import os
from pathlib import Path

from audiobook_organizer.models import Metadata
from audiobook_organizer.ops.plan_script import PlanScriptWriter


def _metadata() -> Metadata:
    return Metadata(title="The Final Empire", authors=["Brandon Sanderson"], series=["Mistborn #1"])


class TestPlanScriptWriter:
    def test_render(self, tmp_path):
        writer = PlanScriptWriter(tmp_path / "plan.sh", Path("/in"), Path("/out"))
        writer.add_move(Path("/in/a b.mp3"), Path("/out/A/a b.mp3"), _metadata())
        writer.add_move(Path("/in/c.mp3"), Path("/out/A/c.mp3"), _metadata())
        script = writer.render()
        assert script.startswith("#!/bin/bash")
        assert "# Output Directory: /out" in script
        assert "# Total Moves: 2" in script
        assert "move_file '/in/a b.mp3' '/out/A/a b.mp3'" in script
        assert script.count("# Book: The Final Empire") == 1
        assert "# Series: Mistborn" in script
        assert "DRY_RUN=${DRY_RUN:-0}" in script

    def test_no_output_line_without_output_dir(self, tmp_path):
        script = PlanScriptWriter(tmp_path / "plan.sh", Path("/in")).render()
        assert "Output Directory" not in script
        assert "Plan complete: 0 files processed" in script

    def test_write_is_executable(self, tmp_path):
        writer = PlanScriptWriter(tmp_path / "sub" / "plan.sh", tmp_path)
        path = writer.write()
        assert path.exists()
        assert os.access(path, os.X_OK)
