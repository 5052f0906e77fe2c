"""clipsync - Incremental clip export and clip mapping for narration timelines."""

from __future__ import annotations

from .annotations import (
    AnnotationLine,
    ContinuityViolation,
    SceneContinuityError,
    parse_annotations,
    parse_gap_directive,
    parse_scene_markers,
    should_skip_line,
    validate_scene_continuity,
)
from .cleanup import CleanupMode, execute_cleanup, plan_cleanup
from .clips import Clip, extract_source_index, make_clip, output_basename
from .config import ConfigurationError, ExportSettings, load_settings
from .encoding import EncodeQueue, ManifestEncodeQueue
from .export import ExportResult, export_clips
from .main import main
from .mapping import MappingArtifact, build_mapping, write_mapping
from .selection import (
    SelectionConfig,
    SelectionCriterion,
    resolve_selection,
    target_scenes,
)
from .timeline import find_clip_track, load_project_snapshot, select_sequence
from .timing import TimingRecord, resolve_frame_rate, resolve_timing, ticks_to_frame

__all__ = [
    # annotations
    "AnnotationLine",
    "ContinuityViolation",
    "SceneContinuityError",
    "parse_annotations",
    "parse_gap_directive",
    "parse_scene_markers",
    "should_skip_line",
    "validate_scene_continuity",
    # cleanup
    "CleanupMode",
    "execute_cleanup",
    "plan_cleanup",
    # clips
    "Clip",
    "extract_source_index",
    "make_clip",
    "output_basename",
    # config
    "ConfigurationError",
    "ExportSettings",
    "load_settings",
    # encoding
    "EncodeQueue",
    "ManifestEncodeQueue",
    # export
    "ExportResult",
    "export_clips",
    # main
    "main",
    # mapping
    "MappingArtifact",
    "build_mapping",
    "write_mapping",
    # selection
    "SelectionConfig",
    "SelectionCriterion",
    "resolve_selection",
    "target_scenes",
    # timeline
    "find_clip_track",
    "load_project_snapshot",
    "select_sequence",
    # timing
    "TimingRecord",
    "resolve_frame_rate",
    "resolve_timing",
    "ticks_to_frame",
]
