from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from beartype import beartype
from dotenv import load_dotenv

# Premiere Pro expresses every timeline position in ticks
TICKS_PER_SECOND = 254016000000

# Fallback when the sequence reports neither a frame rate nor a timebase
DEFAULT_FRAME_RATE = 30

# Frames of silence placed BEFORE a clip unless a {GAP:n} directive overrides it
DEFAULT_GAP_FRAMES = 6

# Upper bound for an open-ended scene range
DEFAULT_SCENE_END = 999

AUDIO_EXTENSIONS: tuple[str, ...] = (".wav", ".mp3", ".aac", ".flac", ".m4a", ".ogg")

# Subdirectory of the output folder that a full cleanup never touches
RESERVED_SUBDIR = "original"

MAPPING_FILENAME = "clip_mapping.json"
ENCODE_QUEUE_FILENAME = "encode_queue.json"

VOICEOVERS_DIR = "voiceovers"
SUBTITLES_DIR = "subtitles"


class ClipsyncError(Exception):
    """Base class for errors raised by clipsync."""


class ConfigurationError(ClipsyncError):
    """A run cannot start: missing timeline, clips, or a required path."""


@dataclass
class ExportSettings:
    """Everything a single export run needs to know, passed explicitly."""

    preset_path: str = ""
    project_root: Path | None = None
    locale: str = "zh"
    subproject: str = ""
    sequence_name: str = "processed"
    sequence_index: int = 0
    output_dir: Path | None = None
    subtitle_path: Path | None = None
    standalone: bool = False
    default_gap_frames: int = DEFAULT_GAP_FRAMES
    zero_pad: bool = True

    # Scene mode (highest priority)
    scenes: list[int] = field(default_factory=list)
    scene_start: int | None = None
    scene_end: int | None = None

    # Source mode
    source_indices: list[int] = field(default_factory=list)
    source_start: int | None = None
    source_end: int | None = None

    sync_mapping_only: bool = False

    @beartype
    def resolve_output_dir(self) -> Path:
        """Directory the encoded clips and the mapping file are written to."""
        if self.standalone and self.output_dir is not None:
            return self.output_dir
        if self.output_dir is not None and self.project_root is None:
            return self.output_dir
        return resource_dir(self._require_root(), VOICEOVERS_DIR, self.locale, self.subproject)

    @beartype
    def resolve_subtitle_path(self) -> Path | None:
        """Annotation file for the active locale, or None when there is none to read."""
        if self.subtitle_path is not None:
            return self.subtitle_path
        if self.standalone or self.project_root is None:
            return None
        return subtitle_file(self.project_root, self.locale, self.subproject)

    def _require_root(self) -> Path:
        if self.project_root is None:
            raise ConfigurationError("project root not configured")
        return self.project_root


@beartype
def resource_dir(project_root: Path, kind: str, locale: str, subproject: str = "") -> Path:
    """Build ``{root}/{kind}/[{subproject}/]{locale}``."""
    base = project_root / kind
    if subproject:
        base = base / subproject
    return base / locale


@beartype
def subtitle_file(project_root: Path, locale: str, subproject: str = "") -> Path:
    """Build ``{root}/subtitles/[{subproject}/]{locale}.txt``."""
    base = project_root / SUBTITLES_DIR
    if subproject:
        base = base / subproject
    return base / f"{locale}.txt"


def _env_str(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _env_int(name: str) -> int | None:
    raw = _env_str(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_int_list(name: str) -> list[int]:
    raw = _env_str(name)
    if not raw:
        return []
    try:
        return [int(part) for part in raw.replace(";", ",").split(",") if part.strip()]
    except ValueError:
        raise ValueError(f"{name} must be a comma separated list of integers, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name).lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_path(name: str) -> Path | None:
    raw = _env_str(name)
    return Path(raw) if raw else None


@beartype
def load_settings(env_file: Path | None = None) -> ExportSettings:
    """Load export settings from the environment (and a .env file if present).

    Args:
        env_file: Optional explicit .env path; the default search is used otherwise

    Returns:
        Settings populated from ``CLIPSYNC_*`` variables
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    output_dir = _env_path("CLIPSYNC_OUTPUT_DIR")
    gap = _env_int("CLIPSYNC_DEFAULT_GAP_FRAMES")

    return ExportSettings(
        preset_path=_env_str("CLIPSYNC_PRESET_PATH"),
        project_root=_env_path("CLIPSYNC_PROJECT_ROOT"),
        locale=_env_str("CLIPSYNC_LOCALE", "zh") or "zh",
        subproject=_env_str("CLIPSYNC_SUBPROJECT"),
        sequence_name=_env_str("CLIPSYNC_SEQUENCE_NAME") or "processed",
        output_dir=output_dir,
        subtitle_path=_env_path("CLIPSYNC_SUBTITLE_PATH"),
        standalone=_env_bool("CLIPSYNC_STANDALONE", output_dir is not None),
        default_gap_frames=DEFAULT_GAP_FRAMES if gap is None else gap,
        zero_pad=_env_bool("CLIPSYNC_ZERO_PAD", True),
        scenes=_env_int_list("CLIPSYNC_SCENES"),
        scene_start=_env_int("CLIPSYNC_SCENE_START"),
        scene_end=_env_int("CLIPSYNC_SCENE_END"),
        source_indices=_env_int_list("CLIPSYNC_SOURCE_INDICES"),
        source_start=_env_int("CLIPSYNC_SOURCE_START"),
        source_end=_env_int("CLIPSYNC_SOURCE_END"),
        sync_mapping_only=_env_bool("CLIPSYNC_SYNC_MAPPING_ONLY", False),
    )
