"""Filesystem operations: moves, the undo journal, empty-dir pruning, plan scripts."""
