"""Audiobook Organizer -- move audiobook and ebook folders into Author/Series/Title trees.

Core modules:
    config     -- Organizer configuration via pydantic-settings (AO_* env vars, .env)
    cli        -- Click CLI entry point. CLI flags passed as kwargs to OrganizerConfig
                  (no env pollution).
    organizer  -- Run state machine: resolve paths, then undo or scan (hierarchical
                  or flat), journaling every moved unit
    layout     -- Target directory and filename calculation per layout policy
    grouping   -- Album detection for directories of loose audio files
    sanitize   -- Path-component sanitization and series-name helpers
    prompt     -- Interactive y/N confirmations
    models     -- Enums, canonical Metadata, album groups, journal entries, summary
    errors     -- Exception hierarchy

Subpackages:
    metadata   -- Sidecar, EPUB, and audio-tag readers plus the resolver
    ops        -- Moves with cross-device fallback, undo journal, empty-dir cleanup,
                  dry-run plan scripts
"""

__version__ = "0.4.0"
