from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from fractions import Fraction

import pytest

from clipsync.clips import Clip, make_clip
from clipsync.config import TICKS_PER_SECOND


def seconds_to_ticks(seconds: float) -> int:
    return int(Fraction(str(seconds)) * TICKS_PER_SECOND)


@pytest.fixture(autouse=True)
def _isolate_clipsync_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("CLIPSYNC_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def track_factory() -> Callable[..., list[Clip]]:
    """Build back-to-back clips from durations (seconds) and source asset names."""

    def build(
        durations: Sequence[float],
        source_names: Sequence[str | None] | None = None,
    ) -> list[Clip]:
        names = list(source_names) if source_names is not None else [None] * len(durations)
        clips: list[Clip] = []
        cursor = 0
        for position, (duration, source_name) in enumerate(zip(durations, names), start=1):
            end = cursor + seconds_to_ticks(duration)
            clips.append(
                make_clip(
                    index=position,
                    name=f"clip {position}",
                    source_name=source_name,
                    start_ticks=cursor,
                    end_ticks=end,
                )
            )
            cursor = end
        return clips

    return build


def snapshot_items(durations: Sequence[float], source_names: Sequence[str | None]) -> list[dict]:
    """Track items in the project snapshot format, ticks as strings like the host reports."""
    items: list[dict] = []
    cursor = 0
    for position, (duration, source_name) in enumerate(zip(durations, source_names), start=1):
        end = cursor + seconds_to_ticks(duration)
        items.append(
            {
                "name": f"clip {position}",
                "sourceName": source_name,
                "startTicks": str(cursor),
                "endTicks": str(end),
            }
        )
        cursor = end
    return items
