from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from fractions import Fraction
from typing import Union

from beartype import beartype

from .annotations import AnnotationLine
from .clips import Clip
from .config import DEFAULT_FRAME_RATE, DEFAULT_GAP_FRAMES, TICKS_PER_SECOND

_log = logging.getLogger(__name__)

Number = Union[int, float]


@dataclass(frozen=True)
class TimingRecord:
    clip_index: int
    duration_seconds: float  # 3 decimals
    native_start_frame: int  # position in the source sequence, no gaps
    gap_adjusted_start_frame: int  # position after inserting annotation gaps


def _round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def _as_fraction(value: Number) -> Fraction:
    return Fraction(value)


@beartype
def resolve_frame_rate(
    frame_rate: Number | None = None,
    timebase: Number | str | None = None,
) -> float:
    """Frame rate of a sequence, with fallbacks.

    The host may not report a frame rate; it is then derived from the
    timebase (ticks per frame). If that is also unusable the default applies.
    """
    if frame_rate is not None and math.isfinite(frame_rate) and frame_rate > 0:
        return float(frame_rate)

    if timebase is not None:
        try:
            ticks_per_frame = int(timebase)
        except (ValueError, OverflowError):
            ticks_per_frame = 0
        if ticks_per_frame > 0:
            return TICKS_PER_SECOND / ticks_per_frame

    return float(DEFAULT_FRAME_RATE)


@beartype
def ticks_to_frame(ticks: int, frame_rate: Number) -> int:
    """Nearest frame for a tick position: round(ticks / TICKS_PER_SECOND * fps).

    Computed on exact rationals so tick positions that land on a frame
    boundary never drift by one.
    """
    return _round_half_up(Fraction(ticks, TICKS_PER_SECOND) * _as_fraction(frame_rate))


def _duration_millis(clip: Clip) -> int:
    return _round_half_up(Fraction(clip.duration_ticks * 1000, TICKS_PER_SECOND))


@beartype
def gap_for_position(
    position: int,
    annotations: Sequence[AnnotationLine],
    default_gap_frames: int = DEFAULT_GAP_FRAMES,
) -> int:
    """Gap preceding the clip at 1-based ``position``.

    Positions past the end of the annotation list use the default gap.
    """
    if 1 <= position <= len(annotations):
        return annotations[position - 1].gap_frames
    return default_gap_frames


@beartype
def resolve_timing(
    clips: Sequence[Clip],
    frame_rate: Number,
    annotations: Sequence[AnnotationLine] = (),
    default_gap_frames: int = DEFAULT_GAP_FRAMES,
    logger: logging.Logger | None = None,
) -> list[TimingRecord]:
    """Compute durations and both timelines for every clip.

    The native start frame depends only on the clip's own position. The
    gap-adjusted start frame is a running cursor: before each clip except
    the first, the gap of its annotation line is added; after recording the
    start, the clip's rounded duration in frames is added.

    Args:
        clips: Clips in index order
        frame_rate: Sequence frame rate
        annotations: Content lines aligned 1:1 with clips by position
        default_gap_frames: Gap for clips without an annotation line
        logger: Optional logger; the module logger is used otherwise

    Returns:
        One TimingRecord per clip, in the same order
    """
    log = logger or _log
    if not math.isfinite(frame_rate) or frame_rate <= 0:
        raise ValueError(f"frame rate must be positive and finite, got {frame_rate}")

    fps = _as_fraction(frame_rate)
    records: list[TimingRecord] = []
    cursor = 0

    for position, clip in enumerate(clips, start=1):
        millis = _duration_millis(clip)

        if position > 1:
            cursor += gap_for_position(position, annotations, default_gap_frames)

        records.append(
            TimingRecord(
                clip_index=clip.index,
                duration_seconds=millis / 1000,
                native_start_frame=ticks_to_frame(clip.start_ticks, frame_rate),
                gap_adjusted_start_frame=cursor,
            )
        )
        cursor += _round_half_up(Fraction(millis, 1000) * fps)

    if len(annotations) < len(clips):
        log.debug(
            "Fewer annotation lines than clips, default gap used for the rest",
            extra={
                "annotation_lines": len(annotations),
                "clips": len(clips),
                "default_gap": default_gap_frames,
            },
        )

    if records:
        log.info(
            "Start frames with gaps calculated",
            extra={
                "first_clip_start": records[0].gap_adjusted_start_frame,
                "last_clip_start": records[-1].gap_adjusted_start_frame,
                "total_frames": cursor,
            },
        )
    return records
