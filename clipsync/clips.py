from __future__ import annotations

import re
from dataclasses import dataclass

from beartype import beartype

_LEADING_DIGITS = re.compile(r"^([0-9]+)")


@dataclass(frozen=True)
class Clip:
    """One clip on the export track, as read from the timeline."""

    index: int  # 1-based position in the track
    name: str
    source_name: str
    source_index: int | None
    start_ticks: int
    end_ticks: int

    @property
    def duration_ticks(self) -> int:
        return self.end_ticks - self.start_ticks


@beartype
def extract_source_index(source_name: str | None) -> int | None:
    """Extract the source material index from an asset name.

    Args:
        source_name: Name of the asset the clip was cut from, e.g. "48_intro.wav"

    Returns:
        The leading integer (48), or None when the name has no leading digits
    """
    if not source_name:
        return None
    match = _LEADING_DIGITS.match(source_name)
    if match is None:
        return None
    return int(match.group(1))


@beartype
def parse_ticks(value: int | float | str) -> int:
    """Normalize a tick value reported by the host (number or numeric string)."""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("empty tick value")
        return int(value) if value.lstrip("-").isdigit() else int(float(value))
    return int(value)


@beartype
def make_clip(
    index: int,
    name: str,
    source_name: str | None,
    start_ticks: int | float | str,
    end_ticks: int | float | str,
) -> Clip:
    """Build a Clip, deriving its source index from the source asset name."""
    if index < 1:
        raise ValueError(f"clip index must be 1-based, got {index}")
    start = parse_ticks(start_ticks)
    end = parse_ticks(end_ticks)
    if end < start:
        raise ValueError(f"clip {index} ends before it starts ({start} > {end})")
    return Clip(
        index=index,
        name=name,
        source_name=source_name or "",
        source_index=extract_source_index(source_name),
        start_ticks=start,
        end_ticks=end,
    )


@beartype
def output_basename(clip_index: int, zero_pad: bool = True, width: int = 2) -> str:
    """Output filename (without extension) for a clip position: 5 -> "05"."""
    if zero_pad:
        return str(clip_index).zfill(width)
    return str(clip_index)
