import pytest

from clipsync.annotations import SceneContinuityError
from clipsync.selection import (
    CriterionKind,
    SelectionConfig,
    SelectionCriterion,
    resolve_selection,
    target_scenes,
)

SCENE_TEXT = "[sc1]\n[44]\n[45]\n[sc2]\n[48]\n[49]\n[50]\n"


@pytest.fixture
def clips(track_factory):
    return track_factory(
        [1.0, 1.0, 1.0, 1.0, 1.0],
        ["44_a.wav", "45_b.wav", "48_c.wav", "51_d.wav", "music.wav"],
    )


def test_source_range_selection(clips):
    result = resolve_selection(clips, SelectionConfig(source_start=45, source_end=50))

    assert result.criterion.kind is CriterionKind.SOURCE_RANGE
    assert result.decision == [False, True, True, False, True]
    assert result.included_count == 3


def test_source_indices_selection(clips):
    result = resolve_selection(clips, SelectionConfig(source_indices=[44, 51]))

    assert result.criterion.kind is CriterionKind.SOURCE_INDICES
    assert result.decision == [True, False, False, True, True]


def test_source_indices_win_over_range(clips):
    config = SelectionConfig(source_indices=[48], source_start=1, source_end=100)

    result = resolve_selection(clips, config)

    assert result.criterion.kind is CriterionKind.SOURCE_INDICES
    assert result.decision == [False, False, True, False, True]


def test_open_ended_ranges(clips):
    from_start = resolve_selection(clips, SelectionConfig(source_end=45))
    to_end = resolve_selection(clips, SelectionConfig(source_start=48))

    assert from_start.decision == [True, True, False, False, True]
    assert to_end.decision == [False, False, True, True, True]


def test_no_criterion_selects_all(clips):
    result = resolve_selection(clips, SelectionConfig())

    assert result.criterion.is_full
    assert result.decision == [True] * 5


def test_clip_without_source_index_always_included():
    criterion = SelectionCriterion.source_indices([1])
    assert criterion.includes(None) is True
    assert criterion.includes(2) is False


def test_scene_mode_matches_equivalent_indices(clips):
    by_scene = resolve_selection(clips, SelectionConfig(scenes=[2]), scene_text=SCENE_TEXT)
    by_index = resolve_selection(clips, SelectionConfig(source_indices=[48, 49, 50]))

    assert by_scene.criterion.kind is CriterionKind.SCENES
    assert by_scene.decision == by_index.decision
    assert by_scene.source_indices == [48, 49, 50]
    assert by_scene.scene_table == {2: [48, 49, 50]}


def test_scene_mode_wins_over_source_mode(clips):
    config = SelectionConfig(scenes=[1], source_indices=[51])

    result = resolve_selection(clips, config, scene_text=SCENE_TEXT)

    assert result.criterion.kind is CriterionKind.SCENES
    assert result.decision == [True, True, False, False, True]


def test_scene_mode_falls_back_when_nothing_found(clips):
    config = SelectionConfig(scenes=[9], source_indices=[51])

    result = resolve_selection(clips, config, scene_text=SCENE_TEXT)

    assert result.criterion.kind is CriterionKind.SOURCE_INDICES
    assert result.decision == [False, False, False, True, True]
    assert result.source_indices is None


def test_scene_mode_falls_back_without_annotation_text(clips):
    result = resolve_selection(clips, SelectionConfig(scenes=[1]), scene_text=None)

    assert result.criterion.kind is CriterionKind.ALL


def test_scene_discontinuity_propagates(clips):
    text = "[sc5]\n[10]\n[11]\n[13]\n"

    with pytest.raises(SceneContinuityError):
        resolve_selection(clips, SelectionConfig(scenes=[5]), scene_text=text)


def test_target_scenes():
    assert target_scenes(SelectionConfig()) is None
    assert target_scenes(SelectionConfig(scenes=[16, 25], scene_start=1, scene_end=3)) == [16, 25]
    assert target_scenes(SelectionConfig(scene_start=3, scene_end=5)) == [3, 4, 5]
    assert target_scenes(SelectionConfig(scene_end=2)) == [1, 2]

    open_end = target_scenes(SelectionConfig(scene_start=998))
    assert open_end == [998, 999]


def test_describe():
    assert SelectionCriterion.all().describe() == "Export all clips"
    assert SelectionCriterion.source_range(45, None).describe() == "Source range: 45 to end"
    assert SelectionCriterion.source_indices([52, 48]).describe() == "Source indices: [48, 52]"


def test_full_width_digits_are_not_a_source_index(track_factory):
    clips = track_factory([1.0, 1.0], ["５_旁白.wav", "6_b.wav"])

    result = resolve_selection(clips, SelectionConfig(source_indices=[5]))

    assert clips[0].source_index is None
    assert result.decision == [True, False]
