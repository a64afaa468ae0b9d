import json

import pytest

from reelmetrics.errors import StorageError
from reelmetrics.models import LikesTotals, PostRecord, RunOutput
from reelmetrics.storage import load_previous, write_run_output


def _run():
    return RunOutput(
        updatedAt="2026-01-02T03:04:05Z",
        videos=[
            PostRecord(id=1, title="lycée agricole d'Yvetot", url="https://www.facebook.com/reel/1", likes=227),
            PostRecord(id=2, title="B", url="https://www.facebook.com/reel/2", likes=None),
        ],
        totals=LikesTotals(likes=227),
    )


def test_write_then_load(tmp_path):
    path = tmp_path / "metrics.json"
    write_run_output(path, _run())

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["updatedAt"] == "2026-01-02T03:04:05Z"
    assert raw["videos"][0]["title"] == "lycée agricole d'Yvetot"
    assert raw["totals"] == {"likes": 227}
    assert "lycée" in path.read_text(encoding="utf-8")

    assert load_previous(path) == _run()
    assert not (tmp_path / "metrics.json.tmp").exists()


def test_load_missing_file(tmp_path):
    assert load_previous(tmp_path / "nope.json") is None


def test_load_corrupt_file(tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_previous(path) is None


def test_load_non_object(tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert load_previous(path) is None


def test_load_drops_unusable_likes(tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text(json.dumps({
        "updatedAt": "x",
        "videos": [
            {"id": 1, "title": "A", "url": "u1", "likes": "12"},
            {"id": 2, "title": "B", "url": "u2", "likes": -3},
            {"id": 3, "title": "C", "url": "u3", "likes": True},
            {"id": 4, "title": "D", "url": "u4", "likes": 9},
        ],
        "totals": {"likes": "lots"},
    }), encoding="utf-8")

    prior = load_previous(path)

    assert prior is not None
    assert [v.likes for v in prior.videos] == [None, None, None, 9]
    assert prior.totals.likes == 9


def test_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "file.txt"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(StorageError):
        write_run_output(blocker / "metrics.json", _run())


def test_load_keeps_good_entries_when_one_is_incomplete(tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text(json.dumps({
        "updatedAt": "x",
        "videos": [
            {"id": 1, "title": "A", "url": "u1", "likes": 300},
            {"id": 2, "url": "u2", "likes": 5},
            {"title": "no url", "likes": 7},
            "junk",
        ],
    }), encoding="utf-8")

    prior = load_previous(path)

    assert prior is not None
    assert [(v.url, v.likes) for v in prior.videos] == [("u1", 300), ("u2", 5)]
    assert prior.videos[1].title == ""
    assert prior.totals.likes == 305


@pytest.mark.parametrize("videos", [7, "abc", {"url": "u1"}, None])
def test_load_non_list_videos_reads_as_empty(tmp_path, videos):
    path = tmp_path / "metrics.json"
    path.write_text(json.dumps({"updatedAt": "x", "videos": videos}), encoding="utf-8")

    prior = load_previous(path)

    assert prior is not None
    assert prior.videos == []
    assert prior.totals.likes == 0
