import json

import pytest

from clipsync.main import main
from conftest import snapshot_items


@pytest.fixture
def workspace(tmp_path):
    root = tmp_path / "project"
    (root / "subtitles").mkdir(parents=True)
    (root / "subtitles" / "zh.txt").write_text("[sc1]\n[44]\n[46]\nFirst\nSecond\n", encoding="utf-8")

    snapshot = tmp_path / "snapshot.json"
    sequence = {
        "name": "processed",
        "treePath": "/p/zh/processed",
        "frameRate": 30,
        "videoTracks": [snapshot_items([2.0, 1.5], ["44_a.wav", "45_b.wav"])],
        "audioTracks": [],
    }
    snapshot.write_text(json.dumps({"sequences": [sequence]}), encoding="utf-8")

    env_file = tmp_path / ".env"
    env_file.write_text("CLIPSYNC_PRESET_PATH=presets/wav.epr\n", encoding="utf-8")
    return root, snapshot, env_file


def test_main_exports_and_prints_result(workspace, capsys):
    root, snapshot, env_file = workspace

    code = main([str(snapshot), "--env-file", str(env_file), "--project-root", str(root), "--source-indices", "45"])

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["success"] is True
    assert result["exported"] == 1
    assert result["skipped"] == 1

    output = root / "voiceovers" / "zh"
    with (output / "encode_queue.json").open(encoding="utf-8") as f:
        assert [job["clipIndex"] for job in json.load(f)["jobs"]] == [2]
    with (output / "clip_mapping.json").open(encoding="utf-8") as f:
        assert json.load(f)["clipStartFrames"] == {"1": 0, "2": 66}


def test_main_configuration_failure(workspace, capsys):
    root, snapshot, env_file = workspace

    code = main([str(snapshot), "--env-file", str(env_file), "--project-root", str(root), "--sequence", "final"])

    assert code == 1
    assert json.loads(capsys.readouterr().out)["success"] is False


def test_main_scene_discontinuity(workspace, capsys):
    root, snapshot, env_file = workspace

    code = main([str(snapshot), "--env-file", str(env_file), "--project-root", str(root), "--scenes", "1"])

    assert code == 3
    assert "Missing: [45]" in capsys.readouterr().err


def test_main_missing_snapshot(tmp_path, capsys):
    code = main([str(tmp_path / "missing.json"), "--env-file", str(tmp_path / "none.env")])

    assert code == 2
    assert "Cannot read project snapshot" in capsys.readouterr().err
