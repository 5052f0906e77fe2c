from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from beartype import beartype

from .annotations import parse_scene_markers
from .clips import Clip
from .config import DEFAULT_SCENE_END

_log = logging.getLogger(__name__)


class CriterionKind(str, Enum):
    ALL = "all"
    SOURCE_INDICES = "source_indices"
    SOURCE_RANGE = "source_range"
    SCENES = "scenes"


@dataclass(frozen=True)
class SelectionCriterion:
    """The single active rule deciding which clips are (re-)exported."""

    kind: CriterionKind
    indices: frozenset[int] = frozenset()
    start: int | None = None
    end: int | None = None
    scenes: tuple[int, ...] = ()

    @classmethod
    def all(cls) -> SelectionCriterion:
        return cls(CriterionKind.ALL)

    @classmethod
    def source_indices(cls, indices: Sequence[int]) -> SelectionCriterion:
        return cls(CriterionKind.SOURCE_INDICES, indices=frozenset(indices))

    @classmethod
    def source_range(cls, start: int | None, end: int | None) -> SelectionCriterion:
        return cls(CriterionKind.SOURCE_RANGE, start=1 if start is None else start, end=end)

    @classmethod
    def scenes_resolved(cls, scenes: Sequence[int], indices: Sequence[int]) -> SelectionCriterion:
        return cls(CriterionKind.SCENES, indices=frozenset(indices), scenes=tuple(scenes))

    @property
    def is_full(self) -> bool:
        return self.kind is CriterionKind.ALL

    def includes(self, source_index: int | None) -> bool:
        """Whether a clip with this source index belongs to the selection.

        Clips without a source index are always included.
        """
        if source_index is None:
            return True
        if self.kind is CriterionKind.ALL:
            return True
        if self.kind in (CriterionKind.SOURCE_INDICES, CriterionKind.SCENES):
            return source_index in self.indices
        start = 1 if self.start is None else self.start
        if source_index < start:
            return False
        return self.end is None or source_index <= self.end

    def describe(self) -> str:
        if self.kind is CriterionKind.ALL:
            return "Export all clips"
        if self.kind is CriterionKind.SOURCE_INDICES:
            return f"Source indices: {sorted(self.indices)}"
        if self.kind is CriterionKind.SCENES:
            return f"Scenes: {list(self.scenes)} -> Source indices: {sorted(self.indices)}"
        end = "end" if self.end is None else self.end
        return f"Source range: {self.start} to {end}"


@dataclass
class SelectionConfig:
    """Raw user selection settings; at most one criterion ends up active."""

    scenes: list[int] = field(default_factory=list)
    scene_start: int | None = None
    scene_end: int | None = None
    source_indices: list[int] = field(default_factory=list)
    source_start: int | None = None
    source_end: int | None = None


@dataclass
class SelectionResult:
    decision: list[bool]
    criterion: SelectionCriterion
    source_indices: list[int] | None = None  # as parsed in scene mode, encounter order
    scene_table: dict[int, list[int]] | None = None

    @property
    def included_count(self) -> int:
        return sum(self.decision)


@beartype
def target_scenes(config: SelectionConfig) -> list[int] | None:
    """Scenes requested by the config, or None when scene mode is not configured.

    A discrete list wins over a range; a half-open range defaults to 1..999.
    """
    if config.scenes:
        return list(config.scenes)
    if config.scene_start is None and config.scene_end is None:
        return None
    start = 1 if config.scene_start is None else config.scene_start
    end = DEFAULT_SCENE_END if config.scene_end is None else config.scene_end
    return list(range(start, end + 1))


@beartype
def source_criterion(config: SelectionConfig) -> SelectionCriterion:
    """Criterion from the source-mode settings alone (no scene mode)."""
    if config.source_indices:
        return SelectionCriterion.source_indices(config.source_indices)
    if config.source_start is None and config.source_end is None:
        return SelectionCriterion.all()
    return SelectionCriterion.source_range(config.source_start, config.source_end)


@beartype
def resolve_selection(
    clips: Sequence[Clip],
    config: SelectionConfig,
    scene_text: str | None = None,
    scene_source: str = "",
    logger: logging.Logger | None = None,
) -> SelectionResult:
    """Decide which clips are included in this run.

    Scene mode takes precedence; when it yields nothing (no annotation text,
    no markers under the requested scenes) the source-mode settings apply.

    Args:
        clips: Clips of the export track, in index order
        config: Selection settings
        scene_text: Content of the scene-annotated file, None if unavailable
        scene_source: Where scene_text came from, used in messages
        logger: Optional logger; the module logger is used otherwise

    Returns:
        Per-clip decision aligned with ``clips`` and the active criterion

    Raises:
        SceneContinuityError: If a requested scene skips index numbers
    """
    log = logger or _log
    criterion: SelectionCriterion | None = None
    parsed_indices: list[int] | None = None
    scene_table: dict[int, list[int]] | None = None

    scenes = target_scenes(config)
    if scenes is not None:
        parsed = None
        if scene_text is None:
            log.warning("Scene annotation file unavailable", extra={"annotation_source": scene_source})
        else:
            parsed = parse_scene_markers(scene_text, scenes, source=scene_source, logger=log)

        if parsed is None:
            log.warning("Scene mode resolved nothing, falling back to source mode")
        else:
            parsed_indices = parsed.source_indices
            scene_table = parsed.scene_table
            criterion = SelectionCriterion.scenes_resolved(scenes, parsed.source_indices)

    if criterion is None:
        criterion = source_criterion(config)

    decision = [criterion.includes(clip.source_index) for clip in clips]
    log.info(
        "Selection resolved",
        extra={
            "mode": criterion.kind.value,
            "description": criterion.describe(),
            "included": sum(decision),
            "total": len(clips),
        },
    )
    return SelectionResult(
        decision=decision,
        criterion=criterion,
        source_indices=parsed_indices,
        scene_table=scene_table,
    )
