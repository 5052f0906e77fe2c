from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from beartype import beartype

from .clips import Clip, output_basename
from .config import AUDIO_EXTENSIONS, RESERVED_SUBDIR

_log = logging.getLogger(__name__)


class CleanupMode(str, Enum):
    FULL = "full"  # wipe every audio file in the output directory
    TARGETED = "targeted"  # only the filename slots of included clips


@dataclass
class CleanupReport:
    deleted: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@beartype
def is_audio_file(name: str) -> bool:
    return Path(name).suffix.lower() in AUDIO_EXTENSIONS


def _list_entries(output_dir: Path) -> list[Path]:
    if not output_dir.is_dir():
        return []
    return sorted(output_dir.iterdir())


@beartype
def plan_cleanup(
    output_dir: Path,
    mode: CleanupMode,
    clips: Sequence[Clip],
    decision: Sequence[bool],
    existing: Sequence[Path] | None = None,
    zero_pad: bool = True,
) -> list[Path]:
    """List the previously produced files to delete before re-exporting.

    Must run before any new encode is requested so that files written by
    this run are never candidates.

    Args:
        output_dir: Directory holding earlier exports
        mode: FULL removes every audio file; TARGETED removes only the
            outputs of clips inside the current selection
        clips: Clips of the export track, in index order
        decision: Inclusion flag per clip, aligned with ``clips``
        existing: Snapshot of the directory entries; listed from disk if omitted
        zero_pad: Whether output filenames are zero padded

    Returns:
        Files to delete, in directory listing order
    """
    if len(decision) != len(clips):
        raise ValueError(f"decision has {len(decision)} entries for {len(clips)} clips")

    entries = list(existing) if existing is not None else _list_entries(output_dir)
    files = [
        entry for entry in entries
        if entry.name.lower() != RESERVED_SUBDIR and not entry.is_dir()
    ]

    if mode is CleanupMode.FULL:
        return [entry for entry in files if is_audio_file(entry.name)]

    slots = {
        f"{output_basename(clip.index, zero_pad)}{ext}"
        for clip, included in zip(clips, decision)
        if included
        for ext in AUDIO_EXTENSIONS
    }
    return [entry for entry in files if entry.name.lower() in slots]


@beartype
def execute_cleanup(candidates: Sequence[Path], logger: logging.Logger | None = None) -> CleanupReport:
    """Delete each candidate independently; a failure never stops the rest."""
    log = logger or _log
    report = CleanupReport()

    for path in candidates:
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        except OSError as e:
            report.failed.append(path)
            report.errors.append(f"{path.name}: {e}")
            log.warning("Could not delete file", extra={"file_name": path.name, "error": str(e)})
            continue
        report.deleted.append(path)
        log.info("Deleted old audio file", extra={"file_name": path.name})

    log.info(
        "Cleanup finished",
        extra={"deleted_count": len(report.deleted), "failed_count": len(report.failed)},
    )
    return report
