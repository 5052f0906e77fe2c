from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from beartype import beartype

from .clips import Clip
from .config import MAPPING_FILENAME
from .timing import TimingRecord

_log = logging.getLogger(__name__)


@dataclass
class MappingArtifact:
    """clip_mapping.json content consumed by the downstream assembly step."""

    generated_at: datetime
    locale: str
    sequence_name: str
    total_clips: int
    source_to_clips: dict[int, list[int]] = field(default_factory=dict)
    clip_to_source: dict[int, int] = field(default_factory=dict)
    clip_durations: dict[int, float] = field(default_factory=dict)
    clip_start_frames_native: dict[int, int] = field(default_factory=dict)
    clip_start_frames: dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serializable form with the key order and numeric key sorting downstream expects."""
        return {
            "generatedAt": self.generated_at.strftime("%Y-%m-%dT%H:%M:%S"),
            "locale": self.locale,
            "sequenceName": self.sequence_name,
            "totalClips": self.total_clips,
            "sourceToClips": _numeric_keys(self.source_to_clips),
            "clipToSource": _numeric_keys(self.clip_to_source),
            "clipDurations": _numeric_keys(self.clip_durations),
            "clipStartFramesPR": _numeric_keys(self.clip_start_frames_native),
            "clipStartFrames": _numeric_keys(self.clip_start_frames),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def _numeric_keys(table: dict[int, Any]) -> dict[str, Any]:
    # "10" must follow "9", so sort before keys become strings
    return {str(key): table[key] for key in sorted(table)}


@beartype
def build_mapping(
    clips: Sequence[Clip],
    timing: Sequence[TimingRecord],
    locale: str,
    sequence_name: str,
    generated_at: datetime | None = None,
) -> MappingArtifact:
    """Aggregate every scanned clip into a fresh mapping artifact.

    Inclusion decisions play no part here: every clip is recorded, and clips
    without a source index are only left out of the source tables.

    Args:
        clips: All clips of the export track, in index order
        timing: Timing records aligned with ``clips``
        locale: Resolved locale of this run
        sequence_name: Name of the sequence the clips come from
        generated_at: Timestamp to stamp; now() if omitted

    Returns:
        The populated MappingArtifact
    """
    if len(timing) != len(clips):
        raise ValueError(f"{len(timing)} timing records for {len(clips)} clips")

    artifact = MappingArtifact(
        generated_at=generated_at or datetime.now(),
        locale=locale,
        sequence_name=sequence_name,
        total_clips=len(clips),
    )

    for clip, record in zip(clips, timing):
        artifact.clip_durations[clip.index] = record.duration_seconds
        artifact.clip_start_frames_native[clip.index] = record.native_start_frame
        artifact.clip_start_frames[clip.index] = record.gap_adjusted_start_frame

        if clip.source_index is None:
            continue
        artifact.source_to_clips.setdefault(clip.source_index, []).append(clip.index)
        artifact.clip_to_source[clip.index] = clip.source_index

    return artifact


@beartype
def write_mapping(
    artifact: MappingArtifact,
    output_dir: Path,
    logger: logging.Logger | None = None,
) -> Path:
    """Write the artifact to ``output_dir/clip_mapping.json``, replacing any earlier one."""
    log = logger or _log
    output_path = output_dir / MAPPING_FILENAME
    with output_path.open("w", encoding="utf-8") as f:
        f.write(artifact.to_json())

    log.info(
        "Mapping file written",
        extra={
            "path": str(output_path),
            "source_count": len(artifact.source_to_clips),
            "clip_count": len(artifact.clip_to_source),
        },
    )
    return output_path
