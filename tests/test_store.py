import json

import pytest

from factories import make_activity
from watts_happening.errors import FilesystemError
from watts_happening.models import ActivityStreams, ActivityWithStreams
from watts_happening.store import ActivityFileStore, ActivityIndexStore


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


def test_load_missing_index_returns_empty(data_dir):
    store = ActivityIndexStore(data_dir)

    index = store.load()

    assert index.last_updated == ""
    assert index.activities == []
    assert store.known_ids() == set()


def test_load_corrupt_index_returns_empty(data_dir):
    data_dir.mkdir()
    (data_dir / "index.json").write_text("{not json", encoding="utf-8")

    index = ActivityIndexStore(data_dir).load()

    assert index.activities == []


def test_load_index_with_invalid_utf8_returns_empty(data_dir):
    data_dir.mkdir()
    (data_dir / "index.json").write_bytes(b'{"last_updated": "\xff\xfe", "activities": []}')

    store = ActivityIndexStore(data_dir)
    index = store.load()

    assert index.last_updated == ""
    assert index.activities == []
    assert store.known_ids() == set()


def test_load_index_with_wrong_shape_returns_empty(data_dir):
    data_dir.mkdir()
    (data_dir / "index.json").write_text(json.dumps({"activities": [{"id": "x"}]}), encoding="utf-8")

    assert ActivityIndexStore(data_dir).load().activities == []


def test_add_activity_keeps_newest_first(data_dir):
    store = ActivityIndexStore(data_dir)
    store.load()

    store.add_activity(make_activity(1, start_date="2024-03-02T10:00:00Z"))
    store.add_activity(make_activity(2, start_date="2024-03-05T10:00:00Z"))
    store.add_activity(make_activity(3, start_date="2024-03-01T10:00:00Z"))
    store.add_activity(make_activity(4, start_date="2024-03-03T10:00:00Z"))

    dates = [summary.start_date for summary in store.index.activities]
    assert dates == sorted(dates, reverse=True)
    assert [summary.id for summary in store.index.activities] == [2, 4, 1, 3]
    assert store.known_ids() == {1, 2, 3, 4}


def test_add_activity_projects_summary(data_dir):
    store = ActivityIndexStore(data_dir)
    store.add_activity(make_activity(7, average_watts=None, average_heartrate=151.5))

    summary = store.index.activities[0]
    assert summary.model_dump() == {
        "id": 7,
        "name": "Zwift ride 7",
        "start_date": "2024-03-08T18:00:00Z",
        "distance": 20000.0,
        "moving_time": 3600,
        "average_watts": None,
        "average_heartrate": 151.5,
    }


def test_save_and_reload_round_trip(data_dir):
    store = ActivityIndexStore(data_dir)
    store.load()
    store.add_activity(make_activity(10))
    store.index.last_updated = "2024-03-20T10:00:00+00:00"

    store.save()

    payload = json.loads((data_dir / "index.json").read_text(encoding="utf-8"))
    assert payload["last_updated"] == "2024-03-20T10:00:00+00:00"
    assert [a["id"] for a in payload["activities"]] == [10]
    assert not (data_dir / "index.json.tmp").exists()

    reloaded = ActivityIndexStore(data_dir)
    assert reloaded.load() == store.index


def test_save_raises_filesystem_error_when_data_dir_is_a_file(tmp_path):
    blocker = tmp_path / "data"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(FilesystemError):
        ActivityIndexStore(blocker).save()


def test_failed_rename_removes_temp_file(data_dir, mocker):
    mocker.patch("watts_happening.store.os.replace", side_effect=OSError("disk full"))
    store = ActivityIndexStore(data_dir)
    store.add_activity(make_activity(10))

    with pytest.raises(FilesystemError):
        store.save()

    assert not (data_dir / "index.json.tmp").exists()
    assert not (data_dir / "index.json").exists()


def test_activity_file_store_writes_flattened_record(data_dir):
    file_store = ActivityFileStore(data_dir)
    record = ActivityWithStreams.from_activity(
        make_activity(42), ActivityStreams(time=[0, 1], watts=[200.0, 210.0])
    )

    path = file_store.save(record)

    assert path == data_dir / "activities" / "42.json"
    assert file_store.exists(42)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["id"] == 42
    assert payload["type"] == "VirtualRide"
    assert "activity_type" not in payload
    assert payload["streams"]["time"] == [0, 1]
    assert payload["streams"]["heartrate"] is None
    assert file_store.load(42) == record


def test_activity_file_store_writes_null_streams(data_dir):
    file_store = ActivityFileStore(data_dir)

    path = file_store.save(ActivityWithStreams.from_activity(make_activity(43)))

    assert json.loads(path.read_text(encoding="utf-8"))["streams"] is None


def test_iter_records_skips_unreadable_files(data_dir):
    file_store = ActivityFileStore(data_dir)
    file_store.save(ActivityWithStreams.from_activity(make_activity(1)))
    (data_dir / "activities" / "2.json").write_text("{broken", encoding="utf-8")

    records = list(file_store.iter_records())

    assert [record.id for record in records] == [1]


def test_iter_records_without_directory(data_dir):
    assert list(ActivityFileStore(data_dir).iter_records()) == []


def test_iter_records_skips_invalid_utf8_files(data_dir):
    file_store = ActivityFileStore(data_dir)
    file_store.save(ActivityWithStreams.from_activity(make_activity(1)))
    (data_dir / "activities" / "2.json").write_bytes(b'{"id": 2, "name": "\xff"}')

    assert [record.id for record in file_store.iter_records()] == [1]
