from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from beartype import beartype

from .annotations import SceneContinuityError, parse_annotations
from .cleanup import CleanupMode, execute_cleanup, plan_cleanup
from .clips import Clip, output_basename
from .config import ConfigurationError, ExportSettings
from .encoding import EncodeQueue, ManifestEncodeQueue
from .mapping import build_mapping, write_mapping
from .selection import CriterionKind, SelectionConfig, resolve_selection
from .timeline import SequenceInfo, find_clip_track, select_sequence
from .timing import resolve_timing

_log = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """Outcome of one run; returned instead of raised."""

    success: bool = False
    message: str = ""
    exported: int = 0
    skipped: int = 0
    scanned: int = 0
    errors: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@beartype
def selection_config(settings: ExportSettings) -> SelectionConfig:
    return SelectionConfig(
        scenes=list(settings.scenes),
        scene_start=settings.scene_start,
        scene_end=settings.scene_end,
        source_indices=list(settings.source_indices),
        source_start=settings.source_start,
        source_end=settings.source_end,
    )


@beartype
def read_annotation_text(path: Path | None) -> str | None:
    """Annotation file content, or None when there is no file to read."""
    if path is None or not path.is_file():
        return None
    with path.open("r", encoding="utf-8-sig") as f:
        return f.read()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _finish_timing(result: ExportResult, start_ms: int) -> None:
    end_ms = _now_ms()
    result.details["timing"] = {"startTime": start_ms, "endTime": end_ms, "durationMs": end_ms - start_ms}


@beartype
def export_clips(
    settings: ExportSettings,
    sequences: list[SequenceInfo],
    encoder: EncodeQueue | None = None,
    logger: logging.Logger | None = None,
) -> ExportResult:
    """Run one incremental export pass.

    Selects the clips to (re-)export, removes their stale outputs, queues
    them for encoding and writes clip_mapping.json for every clip on the
    track.

    Args:
        settings: Explicit run configuration
        sequences: Sequences of the host project
        encoder: Sink for accepted clips; a manifest queue in the output
            directory is used if omitted
        logger: Optional logger; the module logger is used otherwise

    Returns:
        A structured result; configuration problems yield success=False

    Raises:
        SceneContinuityError: If scene markers skip numbers. Raised before
            any file is deleted or any clip is queued.
    """
    log = logger or _log
    start_ms = _now_ms()
    result = ExportResult()

    try:
        _run(settings, sequences, encoder, log, result)
    except SceneContinuityError:
        raise
    except ConfigurationError as e:
        result.success = False
        result.message = str(e)
        log.error("Export failed", extra={"reason": str(e)})
    except Exception as e:
        result.success = False
        result.message = f"Export failed: {e}"
        log.exception("Export failed unexpectedly")

    _finish_timing(result, start_ms)
    return result


def _run(
    settings: ExportSettings,
    sequences: list[SequenceInfo],
    encoder: EncodeQueue | None,
    log: logging.Logger,
    result: ExportResult,
) -> None:
    sync_only = settings.sync_mapping_only
    if not sync_only and not settings.preset_path:
        raise ConfigurationError("Encoder preset path not configured")

    output_dir = settings.resolve_output_dir()
    sequence = select_sequence(
        sequences,
        settings.sequence_name,
        settings.locale,
        settings.subproject,
        settings.sequence_index,
        logger=log,
    )
    track = find_clip_track(sequence)
    clips = track.clips
    frame_rate = sequence.resolved_frame_rate

    result.details.update(
        {
            "sequenceName": sequence.name,
            "trackType": track.track_type,
            "trackIndex": track.track_index,
            "totalClips": len(clips),
            "frameRate": frame_rate,
            "outputDir": str(output_dir),
            "syncMappingOnly": sync_only,
        }
    )
    log.info(
        "Export track found",
        extra={"sequence_name": sequence.name, "track_type": track.track_type, "total_clips": len(clips)},
    )

    subtitle_path = settings.resolve_subtitle_path()
    annotation_text = read_annotation_text(subtitle_path)
    source_label = str(subtitle_path) if subtitle_path is not None else ""

    # Continuity violations surface here, before anything is deleted
    selection = resolve_selection(
        clips,
        selection_config(settings),
        scene_text=annotation_text,
        scene_source=source_label,
        logger=log,
    )
    criterion = selection.criterion
    result.details["exportMode"] = {"type": criterion.kind.value, "description": criterion.describe()}
    if criterion.kind is CriterionKind.SCENES:
        result.details["sceneMode"] = {
            "scenes": list(criterion.scenes),
            "sourceIndices": selection.source_indices,
            "sceneMapping": {str(k): v for k, v in (selection.scene_table or {}).items()},
        }

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Cannot create output directory {output_dir}: {e}") from e

    if not sync_only:
        mode = CleanupMode.FULL if criterion.is_full else CleanupMode.TARGETED
        candidates = plan_cleanup(output_dir, mode, clips, selection.decision, zero_pad=settings.zero_pad)
        report = execute_cleanup(candidates, logger=log)
        result.details["cleanup"] = {
            "mode": mode.value,
            "deleted": len(report.deleted),
            "failed": len(report.failed),
        }
        result.errors.extend(f"Cleanup failed for {msg}" for msg in report.errors)

    queue = encoder if encoder is not None else ManifestEncodeQueue(output_dir, settings.preset_path, logger=log)
    if not sync_only:
        try:
            queue.discard_pending()
        except OSError as e:
            result.errors.append(f"Failed to discard previous encode batch: {e}")
            log.error("Stale encode batch could not be removed", extra={"error": str(e)})
    clip_details: list[dict[str, Any]] = []

    for clip, included in zip(clips, selection.decision):
        basename = output_basename(clip.index, settings.zero_pad)
        clip_details.append(
            {
                "index": clip.index,
                "name": clip.name,
                "sourceIndex": clip.source_index,
                "sourceName": clip.source_name,
                "outputFilename": basename,
            }
        )
        result.scanned += 1

        if sync_only:
            continue
        if not included:
            result.skipped += 1
            log.info(
                "Skipping clip outside selection",
                extra={"clip_index": clip.index, "source_index": clip.source_index},
            )
            continue

        try:
            queue.enqueue(clip, output_dir / basename)
        except Exception as e:
            result.errors.append(f"Failed to process clip: {clip.name} - {e}")
            log.error("Clip processing failed", extra={"clip_index": clip.index, "error": str(e)})
            continue
        result.exported += 1

    result.details["clips"] = clip_details

    if not sync_only and result.exported > 0:
        try:
            queue.start_batch()
        except Exception as e:
            result.errors.append(f"Failed to start encode batch: {e}")
            log.error("Encode batch failed to start", extra={"error": str(e)})

    result.success = True
    result.message = _summary(result, criterion.kind, list(criterion.scenes), sync_only)

    _write_mapping(settings, sequence.name, clips, frame_rate, annotation_text, source_label, output_dir, log, result)


def _write_mapping(
    settings: ExportSettings,
    sequence_name: str,
    clips: list[Clip],
    frame_rate: float,
    annotation_text: str | None,
    source_label: str,
    output_dir: Path,
    log: logging.Logger,
    result: ExportResult,
) -> None:
    annotations = parse_annotations(annotation_text or "", settings.default_gap_frames)
    if annotation_text is None:
        log.warning(
            "Subtitle file not found, GAP markers ignored; all clips use the default gap",
            extra={"subtitle_path": source_label, "default_gap": settings.default_gap_frames},
        )
    elif not annotations:
        log.warning(
            "Subtitle file empty, GAP markers ignored; all clips use the default gap",
            extra={"subtitle_path": source_label, "default_gap": settings.default_gap_frames},
        )

    try:
        timing = resolve_timing(clips, frame_rate, annotations, settings.default_gap_frames, logger=log)
        artifact = build_mapping(clips, timing, settings.locale, sequence_name)
        mapping_path = write_mapping(artifact, output_dir, logger=log)
    except Exception as e:
        result.details["mappingGenerated"] = False
        result.details["mappingError"] = str(e)
        log.warning("Mapping file generation failed", extra={"error": str(e)}, exc_info=True)
        return

    result.details["mappingGenerated"] = True
    result.details["mappingFile"] = str(mapping_path)


def _summary(result: ExportResult, kind: CriterionKind, scenes: list[int], sync_only: bool) -> str:
    if sync_only:
        message = f"Mapping synced ({result.scanned} clips scanned, none exported)"
    elif kind is CriterionKind.SCENES:
        message = f"Exported {result.exported} clips (scenes {scenes}, skipped {result.skipped})"
    elif kind is CriterionKind.ALL:
        message = f"Exported {result.exported} clips"
    else:
        message = f"Exported {result.exported} clips (skipped {result.skipped})"
    if result.errors:
        message += f" ({len(result.errors)} errors)"
    return message
