"""Organizer configuration via pydantic-settings (.env + AO_* env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import PathResolutionError
from .models import JOURNAL_FILENAME, Layout, SeriesFormat
from .sanitize import WINDOWS_RESERVED, reserved_chars

LOG_FORMAT = "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | {extra[stage]:<12} | {message}"


def _with_stage(record) -> bool:
    record["extra"].setdefault("stage", "")
    return True


class FieldMapping(BaseModel):
    """Which raw metadata keys populate the canonical fields.

    ``authors`` in author_fields means "keep the authors the source already
    extracted"; any other name is looked up in the record's raw data.
    """

    model_config = ConfigDict(frozen=True)

    title_field: str = "title"
    series_field: str = "series"
    author_fields: tuple[str, ...] = ("authors",)
    track_field: str = "track"

    @classmethod
    def for_audio(cls) -> "FieldMapping":
        """Album as series, artist then album artist as authors."""
        return cls(
            series_field="album",
            author_fields=("artist", "album_artist"),
        )

    @classmethod
    def for_epub(cls) -> "FieldMapping":
        return cls()

    def is_default(self) -> bool:
        return self == FieldMapping()


class OrganizerConfig(BaseSettings):
    """All organizer configuration with layered resolution:
    .env file < environment variables (AO_*) < constructor kwargs.

    Immutable for the duration of one run.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AO_",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # -- Directories --
    base_dir: Path = Field(
        default=Path("."),
        validation_alias=AliasChoices("AO_BASE_DIR", "AO_DIR", "AO_INPUT"),
    )
    output_dir: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("AO_OUTPUT_DIR", "AO_OUT", "AO_OUTPUT"),
    )

    # -- Layout --
    layout: Layout = Layout.AUTHOR_SERIES_TITLE
    series_format: SeriesFormat = SeriesFormat.BRACKET
    series_padding: int = 2
    replace_space: str = ""
    field_mapping: FieldMapping = FieldMapping()

    # -- Behavior --
    dry_run: bool = False
    undo: bool = False
    prompt: bool = False
    remove_empty: bool = False
    flat: bool = False  # implies use_embedded_metadata
    use_embedded_metadata: bool = False
    plan_script: Path | None = None

    # -- Logging --
    verbose: bool = False
    log_level: str = "INFO"
    log_file: Path | None = None

    @field_validator("layout", mode="before")
    @classmethod
    def _parse_layout(cls, value):
        if isinstance(value, Layout):
            return value
        return Layout.parse(str(value) if value is not None else "")

    @field_validator("series_format", mode="before")
    @classmethod
    def _parse_series_format(cls, value):
        if isinstance(value, SeriesFormat):
            return value
        return SeriesFormat.parse(str(value) if value is not None else "")

    @field_validator("series_padding")
    @classmethod
    def _default_padding(cls, value: int) -> int:
        return value if value > 0 else 2

    @field_validator("replace_space")
    @classmethod
    def _check_replace_space(cls, value: str) -> str:
        reserved = dict.fromkeys(WINDOWS_RESERVED + reserved_chars())
        bad = [c for c in reserved if c in value]
        if bad:
            raise ValueError(f"replace_space cannot contain {''.join(bad)!r}")
        return value

    @property
    def embedded_metadata(self) -> bool:
        """Embedded metadata is read when requested or when running flat."""
        return self.use_embedded_metadata or self.flat

    @property
    def effective_output_dir(self) -> Path:
        """Root that organized paths and the journal live under."""
        return self.output_dir if self.output_dir else self.base_dir

    @property
    def journal_path(self) -> Path:
        return self.effective_output_dir / JOURNAL_FILENAME

    def with_resolved_paths(self) -> "OrganizerConfig":
        """Copy with base and output dirs expanded and symlinks resolved.

        Raises PathResolutionError if the base directory is missing or
        cannot be resolved. The output directory need not exist yet.
        """
        base = self.base_dir.expanduser()
        if not base.exists():
            raise PathResolutionError(base, "no such file or directory")
        try:
            base = base.resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            raise PathResolutionError(base, str(exc)) from exc

        output = self.output_dir
        if output is not None:
            try:
                output = output.expanduser().resolve()
            except (OSError, RuntimeError) as exc:
                raise PathResolutionError(output, str(exc)) from exc

        return self.model_copy(update={"base_dir": base, "output_dir": output})

    def setup_logging(self) -> None:
        """Send loguru output to stderr and, when log_file is set, a rotated file.

        Console level follows log_level (DEBUG with verbose); the file always
        records DEBUG.
        """
        logger.remove()
        sinks: list[tuple[object, str, dict]] = [
            (sys.stderr, "DEBUG" if self.verbose else self.log_level.upper(), {}),
        ]
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            sinks.append(
                (str(self.log_file), "DEBUG", {"rotation": "10 MB", "retention": "30 days"})
            )
        for sink, level, extra in sinks:
            logger.add(sink, format=LOG_FORMAT, level=level, filter=_with_stage, **extra)
