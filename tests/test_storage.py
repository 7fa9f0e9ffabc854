"""
Attachment blob storage tests.
"""
import pytest

from scoreboard.core.exceptions import NotFoundError, StorageError
from scoreboard.services.storage import attachment_path


def test_save_read_delete(storage):
    storage.save("schedules/1/report.pdf", b"content")

    assert storage.exists("schedules/1/report.pdf")
    assert storage.read("schedules/1/report.pdf") == b"content"
    assert storage.delete("schedules/1/report.pdf") is True
    assert not storage.exists("schedules/1/report.pdf")


def test_delete_missing_file_is_not_an_error(storage):
    assert storage.delete("schedules/9/gone.txt") is False


def test_read_missing_file(storage):
    with pytest.raises(NotFoundError):
        storage.read("schedules/9/gone.txt")


@pytest.mark.parametrize("path", ["/etc/passwd", "../outside.txt", "schedules/../../x", ""])
def test_paths_outside_root_rejected(storage, path):
    with pytest.raises(StorageError):
        storage.save(path, b"x")


def test_attachment_paths_are_unique_and_safe():
    first = attachment_path(3, "../../시험 안내.pdf")
    second = attachment_path(3, "../../시험 안내.pdf")

    assert first != second
    assert first.startswith("schedules/3/")
    assert ".." not in first
    assert first.endswith("시험_안내.pdf")
