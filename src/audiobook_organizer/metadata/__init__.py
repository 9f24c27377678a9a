"""Metadata sources and the resolver that unifies them.

Modules:
    sidecar   -- metadata.json reader
    epub      -- EPUB reader (ebooklib + raw OPF for series refinements)
    audio     -- Audio tag reader (mutagen)
    series    -- Series candidate validation and free-text series patterns
    resolver  -- MetadataResolver, field mapping, directory resolution order
"""

from .resolver import MetadataResolver, apply_field_mapping

__all__ = ["MetadataResolver", "apply_field_mapping"]
