import pytest

from catalog_api.errors import FileMissingError, InvalidFileNameError, StorageError
from catalog_api.store.files import FileStore
from tests.consts import TEST_FILE_CONTENT, TEST_FILE_NAME


def test_write_creates_directory_and_file(file_store: FileStore):
    assert not file_store.upload_dir.exists()

    path = file_store.write(TEST_FILE_NAME, TEST_FILE_CONTENT)

    assert path == file_store.resolve(TEST_FILE_NAME)
    assert path.read_bytes() == TEST_FILE_CONTENT
    assert file_store.exists(TEST_FILE_NAME)


def test_read_and_open(file_store: FileStore):
    file_store.write(TEST_FILE_NAME, TEST_FILE_CONTENT)

    assert file_store.read(TEST_FILE_NAME) == TEST_FILE_CONTENT
    with file_store.open(TEST_FILE_NAME) as f:
        assert f.read() == TEST_FILE_CONTENT


def test_read_missing_file(file_store: FileStore):
    file_store.ensure_dir()

    with pytest.raises(FileMissingError):
        file_store.read("missing.txt")
    with pytest.raises(FileMissingError):
        file_store.open("missing.txt")


def test_delete(file_store: FileStore):
    file_store.write(TEST_FILE_NAME, TEST_FILE_CONTENT)

    assert file_store.delete(TEST_FILE_NAME) is True
    assert not file_store.exists(TEST_FILE_NAME)
    assert file_store.delete(TEST_FILE_NAME) is False


def test_names_with_unicode_and_spaces_are_allowed(file_store: FileStore):
    name = "红楼梦 第一卷.epub"
    file_store.write(name, b"x")

    assert file_store.resolve(name).parent == file_store.resolve(TEST_FILE_NAME).parent
    assert file_store.read(name) == b"x"


@pytest.mark.parametrize(
    "name",
    ["", "   ", ".", "..", "../escape.txt", "nested/file.txt", "..\\escape.txt", "/etc/passwd", "a\x00b"],
)
def test_resolve_rejects_unsafe_names(file_store: FileStore, name):
    with pytest.raises(InvalidFileNameError):
        file_store.resolve(name)


def test_write_rejects_unsafe_name_without_touching_disk(file_store: FileStore, tmp_path):
    with pytest.raises(InvalidFileNameError):
        file_store.write("../escape.txt", b"x")

    assert not (tmp_path / "escape.txt").exists()


def test_ensure_dir_fails_when_a_file_is_in_the_way(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(StorageError):
        FileStore(blocker / "uploads").ensure_dir()


def test_reserved_names_are_rejected(upload_dir):
    file_store = FileStore(upload_dir, reserved_names={"metadata.json"})

    for name in ("metadata.json", ".metadata.json.k2j3.tmp"):
        with pytest.raises(InvalidFileNameError):
            file_store.write(name, b"{}")
    assert file_store.resolve("metadata.json.bak").name == "metadata.json.bak"
    assert not upload_dir.exists()
