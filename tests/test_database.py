from timetracker.data.database import (
    StorageRecord,
    clear_all,
    delete_blob,
    dump_all,
    list_keys,
    load_raw,
    read_blob,
    write_blob,
)


def test_blob_overwrite(storage):
    assert read_blob("settings", default={}) == {}
    assert write_blob("settings", {"a": 1})
    assert write_blob("settings", {"b": 2})
    assert read_blob("settings") == {"b": 2}
    assert StorageRecord.select().count() == 1


def test_unserializable_value_is_not_written(storage):
    assert write_blob("bad", {"when": object()}) is False
    assert read_blob("bad") is None


def test_malformed_json_reads_as_default(storage):
    StorageRecord.create(key="broken", value="{not json")
    assert read_blob("broken", default="fallback") == "fallback"


def test_keys_dump_and_raw_load(storage):
    write_blob("b", [1, 2])
    write_blob("a", "text")
    assert list_keys() == ["a", "b"]
    dump = dump_all()
    assert dump == {"a": '"text"', "b": "[1, 2]"}

    assert delete_blob("a")
    assert not delete_blob("a")
    assert clear_all() == 1
    assert list_keys() == []

    assert load_raw(dump) == 2
    assert read_blob("b") == [1, 2]
