"""Parsers for the narration annotation (subtitle) files.

Two independent grammars run over the same kind of text:

- the gap grammar: every content line aligns 1:1 with a clip and may start
  with a ``{GAP:n}`` directive giving the frames of lead before that clip;
- the scene grammar: ``[scNN]`` markers open a scene and ``[NN]`` markers
  list the source material indices recorded under it.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from beartype import beartype

from .config import DEFAULT_GAP_FRAMES, ClipsyncError

_log = logging.getLogger(__name__)

GAP_DIRECTIVE = re.compile(r"^\{GAP:([0-9]+)\}")
_BRACKETED = re.compile(r"^\[.*\]$")
_FULLWIDTH_COMMENT = re.compile(r"【.*】")
_SCENE_MARKER = re.compile(r"^\[sc([0-9]+)\]$")
_SOURCE_MARKER = re.compile(r"^\[([0-9]+)\]$")


@dataclass(frozen=True)
class AnnotationLine:
    """A content line of the annotation file and the gap that precedes its clip."""

    text: str
    gap_frames: int
    is_custom_gap: bool


@dataclass(frozen=True)
class ContinuityViolation:
    scene: int
    actual: list[int]
    missing: list[int]

    def describe(self) -> str:
        return (
            f"Scene {self.scene}:\n"
            f"  Actual: {self.actual}\n"
            f"  Missing: {self.missing}"
        )


class SceneContinuityError(ClipsyncError):
    """Source indices under one or more scenes skip numbers."""

    def __init__(self, violations: list[ContinuityViolation], source: str = "") -> None:
        self.violations = violations
        self.source = source
        details = "\n\n".join(v.describe() for v in violations)
        message = f"Scene index discontinuity:\n\n{details}"
        if source:
            message += f"\n\nPlease check the [number] markers in: {source}"
        super().__init__(message)


@dataclass
class SceneParseResult:
    """Source indices found under the requested scenes."""

    source_indices: list[int]  # encounter order, duplicates kept
    scene_table: dict[int, list[int]] = field(default_factory=dict)


def _split_lines(text: str) -> list[str]:
    return re.split(r"\r?\n", text)


@beartype
def should_skip_line(line: str) -> bool:
    """Check whether an annotation line carries no narration.

    Skips empty lines, fully bracketed markers ([0:00-0:15], [sc3], [12])
    and lines holding a full-width bracket comment (【Pause】).
    """
    trimmed = line.strip()
    if not trimmed:
        return True
    if _BRACKETED.match(trimmed):
        return True
    return _FULLWIDTH_COMMENT.search(trimmed) is not None


@beartype
def parse_gap_directive(line: str, default_gap_frames: int = DEFAULT_GAP_FRAMES) -> AnnotationLine:
    """Split a trimmed content line into display text and its gap.

    Example:
        ``"{GAP:10}Hello"`` -> AnnotationLine("Hello", 10, True)
        ``"Hello"`` -> AnnotationLine("Hello", default_gap_frames, False)
    """
    match = GAP_DIRECTIVE.match(line)
    if match is None:
        return AnnotationLine(text=line, gap_frames=default_gap_frames, is_custom_gap=False)
    text = line[match.end():].lstrip()
    return AnnotationLine(text=text, gap_frames=int(match.group(1)), is_custom_gap=True)


@beartype
def parse_annotations(text: str, default_gap_frames: int = DEFAULT_GAP_FRAMES) -> list[AnnotationLine]:
    """Parse annotation text into content lines, index-aligned with clip order.

    Args:
        text: Raw UTF-8 annotation file content
        default_gap_frames: Gap used for lines without a {GAP:n} directive

    Returns:
        One AnnotationLine per content line, in file order
    """
    return [
        parse_gap_directive(line.strip(), default_gap_frames)
        for line in _split_lines(text)
        if not should_skip_line(line)
    ]


@beartype
def find_missing_indices(indices: Iterable[int]) -> list[int]:
    """Numbers absent from the sorted run of indices, e.g. [10, 11, 13] -> [12]."""
    ordered = sorted(indices)
    missing: list[int] = []
    for current, following in zip(ordered, ordered[1:]):
        missing.extend(range(current + 1, following))
    return missing


@beartype
def validate_scene_continuity(scene_table: dict[int, list[int]]) -> list[ContinuityViolation]:
    """Report scenes whose source indices are not a contiguous run.

    Scenes with fewer than two indices are never reported.
    """
    violations: list[ContinuityViolation] = []
    for scene, indices in scene_table.items():
        if len(indices) < 2:
            continue
        missing = find_missing_indices(indices)
        if missing:
            violations.append(
                ContinuityViolation(scene=scene, actual=sorted(indices), missing=missing)
            )
    return violations


@beartype
def parse_scene_markers(
    text: str,
    target_scenes: Iterable[int],
    source: str = "",
    logger: logging.Logger | None = None,
) -> SceneParseResult | None:
    """Collect the source indices listed under the target scenes.

    Args:
        text: Raw annotation file content
        target_scenes: Scene numbers to collect
        source: Where the text came from, used in messages
        logger: Optional logger; the module logger is used otherwise

    Returns:
        The flat index list and per-scene table, or None if nothing was found

    Raises:
        SceneContinuityError: If any target scene skips index numbers
    """
    log = logger or _log
    targets = set(target_scenes)
    if not targets:
        return None

    current_scene: int | None = None
    source_indices: list[int] = []
    scene_table: dict[int, list[int]] = {}

    for raw in _split_lines(text):
        line = raw.strip()

        scene_match = _SCENE_MARKER.match(line)
        if scene_match:
            current_scene = int(scene_match.group(1))
            continue

        source_match = _SOURCE_MARKER.match(line)
        if source_match and current_scene in targets:
            index = int(source_match.group(1))
            source_indices.append(index)
            scene_table.setdefault(current_scene, []).append(index)

    if not source_indices:
        log.warning(
            "No source indices found for target scenes",
            extra={"target_scenes": sorted(targets), "annotation_source": source},
        )
        return None

    violations = validate_scene_continuity(scene_table)
    if violations:
        log.error(
            "Scene index discontinuity",
            extra={
                "violations": [v.describe() for v in violations],
                "scene_table": scene_table,
            },
        )
        raise SceneContinuityError(violations, source)

    log.info(
        "Scene markers parsed",
        extra={"source_indices": source_indices, "scene_table": scene_table},
    )
    return SceneParseResult(source_indices=source_indices, scene_table=scene_table)
