import json

import pytest

from catalog_api.errors import MetadataStoreError
from catalog_api.schemas import Record
from catalog_api.store.metadata import MetadataStore
from tests.consts import TEST_METADATA_FILENAME


def make_record(record_id="20240101_000000_aaaaaaaa", name="a.txt", size=5, content_type="text/plain"):
    return Record(id=record_id, name=name, content_type=content_type, size=size)


def test_load_creates_empty_file_when_missing(metadata_store: MetadataStore):
    assert not metadata_store.path.exists()

    assert metadata_store.load() == {}
    assert metadata_store.path.exists()
    assert json.loads(metadata_store.path.read_text()) == {}


def test_put_writes_name_type_and_stringified_size(metadata_store: MetadataStore):
    metadata_store.put(make_record(size=13))

    on_disk = json.loads(metadata_store.path.read_text())
    assert on_disk == {
        "20240101_000000_aaaaaaaa": {"name": "a.txt", "type": "text/plain", "size": "13"}
    }
    assert metadata_store.get("20240101_000000_aaaaaaaa").size == 13


def test_save_keeps_existing_entries(metadata_store: MetadataStore):
    first = make_record("20240101_000000_aaaaaaaa", "a.txt")
    second = make_record("20240102_000000_bbbbbbbb", "b.txt")

    metadata_store.save({first.id: first})
    metadata_store.save({second.id: second})

    assert metadata_store.load() == {first.id: first, second.id: second}


def test_save_new_entry_wins_on_conflict(metadata_store: MetadataStore):
    metadata_store.put(make_record(name="old.txt"))
    metadata_store.put(make_record(name="new.txt"))

    assert [r.name for r in metadata_store.list()] == ["new.txt"]


def test_save_survives_entries_written_by_another_store(upload_dir):
    store_a = MetadataStore(upload_dir, TEST_METADATA_FILENAME)
    store_b = MetadataStore(upload_dir, TEST_METADATA_FILENAME)

    store_a.put(make_record("20240101_000000_aaaaaaaa", "a.txt"))
    store_b.put(make_record("20240102_000000_bbbbbbbb", "b.txt"))

    assert sorted(store_a.load()) == ["20240101_000000_aaaaaaaa", "20240102_000000_bbbbbbbb"]


def test_stores_for_the_same_file_share_a_lock(upload_dir):
    assert MetadataStore(upload_dir, "x.json").lock is MetadataStore(upload_dir, "x.json").lock
    assert MetadataStore(upload_dir, "x.json").lock is not MetadataStore(upload_dir, "y.json").lock


def test_load_accepts_integer_sizes(metadata_store: MetadataStore):
    metadata_store.upload_dir.mkdir(parents=True)
    metadata_store.path.write_text(json.dumps({"id1": {"name": "a.txt", "type": "text/plain", "size": 7}}))

    assert metadata_store.get("id1") == Record(id="id1", name="a.txt", content_type="text/plain", size=7)


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[1, 2, 3]",
        json.dumps({"id1": "a.txt"}),
        json.dumps({"id1": {"type": "text/plain", "size": "1"}}),
        json.dumps({"id1": {"name": "a.txt", "type": "text/plain", "size": "many"}}),
    ],
)
def test_load_rejects_corrupt_file(metadata_store: MetadataStore, content):
    metadata_store.upload_dir.mkdir(parents=True)
    metadata_store.path.write_text(content)

    with pytest.raises(MetadataStoreError):
        metadata_store.load()
    assert metadata_store.load_or_empty() == {}


def test_remove(metadata_store: MetadataStore):
    keep = make_record("20240101_000000_aaaaaaaa", "a.txt")
    drop = make_record("20240102_000000_bbbbbbbb", "b.txt")
    metadata_store.save({keep.id: keep, drop.id: drop})

    assert metadata_store.remove(drop.id) is True
    assert metadata_store.get(drop.id) is None
    assert metadata_store.get(keep.id) == keep


def test_remove_unknown_id_leaves_file_untouched(metadata_store: MetadataStore):
    metadata_store.put(make_record())
    before = metadata_store.path.read_text()

    assert metadata_store.remove("nope") is False
    assert metadata_store.path.read_text() == before


def test_list_is_ordered_by_id(metadata_store: MetadataStore):
    later = make_record("20240301_000000_cccccccc", "c.txt")
    earlier = make_record("20240101_000000_aaaaaaaa", "a.txt")
    metadata_store.save({later.id: later, earlier.id: earlier})

    assert [r.id for r in metadata_store.list()] == [earlier.id, later.id]


def test_find_by_name(metadata_store: MetadataStore):
    metadata_store.put(make_record("20240101_000000_aaaaaaaa", "a.txt"))
    metadata_store.put(make_record("20240102_000000_bbbbbbbb", "b.txt"))

    assert [r.id for r in metadata_store.find_by_name("b.txt")] == ["20240102_000000_bbbbbbbb"]
    assert metadata_store.find_by_name("c.txt") == []


def test_save_leaves_no_temp_files(metadata_store: MetadataStore):
    metadata_store.put(make_record())

    assert [p.name for p in metadata_store.upload_dir.iterdir()] == [TEST_METADATA_FILENAME]


def test_raw_returns_file_text(metadata_store: MetadataStore):
    assert json.loads(metadata_store.raw()) == {}

    metadata_store.put(make_record())
    assert metadata_store.raw() == metadata_store.path.read_text()
