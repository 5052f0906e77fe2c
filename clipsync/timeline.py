from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from beartype import beartype

from .clips import Clip, make_clip
from .config import ConfigurationError
from .timing import resolve_frame_rate

_log = logging.getLogger(__name__)


@dataclass
class SequenceInfo:
    """A sequence of the host project as captured in a project snapshot."""

    name: str
    tree_path: str = ""
    frame_rate: float | None = None
    timebase: str | None = None
    video_tracks: list[list[dict[str, Any]]] = field(default_factory=list)
    audio_tracks: list[list[dict[str, Any]]] = field(default_factory=list)

    @property
    def resolved_frame_rate(self) -> float:
        return resolve_frame_rate(self.frame_rate, self.timebase)


@dataclass
class ClipTrack:
    track_type: str  # "video" or "audio"
    track_index: int
    clips: list[Clip]


@beartype
def load_project_snapshot(snapshot_path: Path) -> list[SequenceInfo]:
    """Load the sequences of a host project from a JSON snapshot.

    Args:
        snapshot_path: JSON file with a top-level "sequences" list

    Returns:
        Sequences in project order
    """
    if not snapshot_path.exists():
        raise FileNotFoundError(f"Project snapshot not found: {snapshot_path}")

    with snapshot_path.open("r", encoding="utf-8") as f:
        data: dict[str, Any] = json.load(f)

    sequences: list[SequenceInfo] = []
    for raw in data.get("sequences", []):
        frame_rate = raw.get("frameRate")
        timebase = raw.get("timebase")
        sequences.append(
            SequenceInfo(
                name=str(raw.get("name", "")),
                tree_path=str(raw.get("treePath") or ""),
                frame_rate=float(frame_rate) if frame_rate is not None else None,
                timebase=str(timebase) if timebase is not None else None,
                video_tracks=list(raw.get("videoTracks", [])),
                audio_tracks=list(raw.get("audioTracks", [])),
            )
        )
    return sequences


def _path_has_segment(path: str, segment: str) -> bool:
    return f"/{segment}/" in path or f"\\{segment}\\" in path


@beartype
def path_matches_locale(tree_path: str, locale: str) -> bool:
    """Whether a bin path places the sequence under the locale folder."""
    if not locale:
        return False
    return _path_has_segment(tree_path, locale) or tree_path.endswith(f"/{locale}")


@beartype
def sequence_match_score(tree_path: str, locale: str, subproject: str = "") -> int:
    """Rank a same-named sequence by its bin path.

    3 = subproject and locale, 2 = subproject only, 1 = locale only (counted
    only when no subproject is configured), 0 = no match.
    """
    matches_subproject = bool(subproject) and _path_has_segment(tree_path, subproject)
    matches_locale = path_matches_locale(tree_path, locale)

    if matches_subproject and matches_locale:
        return 3
    if matches_subproject:
        return 2
    if matches_locale and not subproject:
        return 1
    return 0


@beartype
def select_sequence(
    sequences: list[SequenceInfo],
    name: str,
    locale: str,
    subproject: str = "",
    index: int = 0,
    logger: logging.Logger | None = None,
) -> SequenceInfo:
    """Pick the sequence to export from.

    Several sequences may share a name (one per locale folder), so candidates
    are ranked by their bin path. Without a name, ``index`` is used.

    Raises:
        ConfigurationError: If no sequence can be chosen
    """
    log = logger or _log
    if not sequences:
        raise ConfigurationError("No project or sequence is open")

    if not name:
        if not 0 <= index < len(sequences):
            raise ConfigurationError(
                f"Sequence index {index} out of range ({len(sequences)} sequences)"
            )
        return sequences[index]

    candidates = [seq for seq in sequences if seq.name == name]
    if not candidates:
        available = [seq.name for seq in sequences]
        log.error("Target sequence not found", extra={"search_name": name, "available": available})
        raise ConfigurationError(f"Cannot find sequence named '{name}'")

    scored = sorted(
        candidates,
        key=lambda seq: sequence_match_score(seq.tree_path, locale, subproject),
        reverse=True,
    )
    best = scored[0]
    score = sequence_match_score(best.tree_path, locale, subproject)
    if score > 0:
        log.info(
            "Selected best matching sequence",
            extra={"sequence_name": best.name, "tree_path": best.tree_path, "match_score": score},
        )
        return best

    log.warning(
        "No sequence matches the locale folder, using the first candidate",
        extra={"sequence_name": candidates[0].name, "locale": locale},
    )
    return candidates[0]


def _clips_from_items(items: list[dict[str, Any]]) -> list[Clip]:
    return [
        make_clip(
            index=position,
            name=str(item.get("name", "")),
            source_name=item.get("sourceName"),
            start_ticks=item["startTicks"],
            end_ticks=item["endTicks"],
        )
        for position, item in enumerate(items, start=1)
    ]


@beartype
def find_clip_track(sequence: SequenceInfo) -> ClipTrack:
    """First video track holding clips, else the first such audio track.

    Raises:
        ConfigurationError: If the sequence has no clips at all
    """
    for track_type, tracks in (("video", sequence.video_tracks), ("audio", sequence.audio_tracks)):
        for track_index, items in enumerate(tracks):
            if items:
                return ClipTrack(track_type, track_index, _clips_from_items(items))
    raise ConfigurationError(f"Sequence '{sequence.name}' has no clips to export")
