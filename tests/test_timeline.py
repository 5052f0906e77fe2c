import json

import pytest

from clipsync.config import TICKS_PER_SECOND, ConfigurationError
from clipsync.timeline import (
    SequenceInfo,
    find_clip_track,
    load_project_snapshot,
    path_matches_locale,
    select_sequence,
    sequence_match_score,
)


def _item(name, source_name, start_seconds, end_seconds):
    return {
        "name": name,
        "sourceName": source_name,
        "startTicks": str(start_seconds * TICKS_PER_SECOND),
        "endTicks": str(end_seconds * TICKS_PER_SECOND),
    }


@pytest.mark.parametrize(
    "tree_path, locale, subproject, expected",
    [
        ("/project/hook/zh/processed", "zh", "hook", 3),
        ("/project/hook/en/processed", "zh", "hook", 2),
        ("/project/zh/processed", "zh", "hook", 0),
        ("/project/zh/processed", "zh", "", 1),
        ("/project/zh", "zh", "", 1),
        ("\\project\\zh\\processed", "zh", "", 1),
        ("/project/en/processed", "zh", "", 0),
        ("/project/zhx/processed", "zh", "", 0),
    ],
)
def test_sequence_match_score(tree_path, locale, subproject, expected):
    assert sequence_match_score(tree_path, locale, subproject) == expected


def test_path_matches_locale_requires_locale():
    assert path_matches_locale("/a/zh/b", "") is False


def test_select_sequence_prefers_best_score():
    sequences = [
        SequenceInfo("processed", "/p/en/processed"),
        SequenceInfo("processed", "/p/zh/processed"),
        SequenceInfo("other", "/p/zh/other"),
    ]

    chosen = select_sequence(sequences, "processed", "zh")

    assert chosen is sequences[1]


def test_select_sequence_subproject_beats_locale_only():
    sequences = [
        SequenceInfo("processed", "/p/hook/en/processed"),
        SequenceInfo("processed", "/p/hook/zh/processed"),
    ]

    assert select_sequence(sequences, "processed", "zh", "hook") is sequences[1]
    assert select_sequence(sequences, "processed", "fr", "hook") is sequences[0]


def test_select_sequence_falls_back_to_first_candidate():
    sequences = [
        SequenceInfo("other", "/p/zh/other"),
        SequenceInfo("processed", "/p/a/processed"),
        SequenceInfo("processed", "/p/b/processed"),
    ]

    assert select_sequence(sequences, "processed", "zh") is sequences[1]


def test_select_sequence_not_found():
    with pytest.raises(ConfigurationError, match="Cannot find sequence named 'processed'"):
        select_sequence([SequenceInfo("other")], "processed", "zh")


def test_select_sequence_nothing_open():
    with pytest.raises(ConfigurationError, match="No project or sequence is open"):
        select_sequence([], "processed", "zh")


def test_select_sequence_by_index():
    sequences = [SequenceInfo("a"), SequenceInfo("b")]

    assert select_sequence(sequences, "", "zh", index=1) is sequences[1]
    with pytest.raises(ConfigurationError):
        select_sequence(sequences, "", "zh", index=2)


def test_find_clip_track_prefers_video():
    sequence = SequenceInfo(
        "processed",
        video_tracks=[[], [_item("v1", "1_a.wav", 0, 2)]],
        audio_tracks=[[_item("a1", "9_z.wav", 0, 1)]],
    )

    track = find_clip_track(sequence)

    assert track.track_type == "video"
    assert track.track_index == 1
    assert [clip.name for clip in track.clips] == ["v1"]
    assert track.clips[0].source_index == 1


def test_find_clip_track_falls_back_to_audio():
    sequence = SequenceInfo(
        "processed",
        video_tracks=[[]],
        audio_tracks=[[_item("a1", "9_z.wav", 0, 1), _item("a2", None, 1, 3)]],
    )

    track = find_clip_track(sequence)

    assert track.track_type == "audio"
    assert track.track_index == 0
    assert [clip.index for clip in track.clips] == [1, 2]
    assert track.clips[1].source_index is None
    assert track.clips[1].source_name == ""


def test_find_clip_track_no_clips():
    with pytest.raises(ConfigurationError, match="has no clips"):
        find_clip_track(SequenceInfo("empty", video_tracks=[[]], audio_tracks=[]))


def test_load_project_snapshot(tmp_path):
    snapshot = {
        "sequences": [
            {
                "name": "processed",
                "treePath": "/p/zh/processed",
                "timebase": "8467200000",
                "videoTracks": [[_item("c1", "48_a.wav", 0, 2)]],
                "audioTracks": [],
            },
            {"name": "rough", "frameRate": 25},
        ]
    }
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot), encoding="utf-8")

    sequences = load_project_snapshot(path)

    assert [seq.name for seq in sequences] == ["processed", "rough"]
    first, second = sequences
    assert first.tree_path == "/p/zh/processed"
    assert first.frame_rate is None
    assert first.resolved_frame_rate == pytest.approx(30.0)
    assert second.resolved_frame_rate == 25.0
    assert second.tree_path == ""

    clip = find_clip_track(first).clips[0]
    assert clip.start_ticks == 0
    assert clip.end_ticks == 2 * TICKS_PER_SECOND


def test_load_project_snapshot_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_project_snapshot(tmp_path / "missing.json")
