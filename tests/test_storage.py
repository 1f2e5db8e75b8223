import re

import pytest

import storage
from errors import StorageError


def test_safe_filename_shape():
    name = storage.safe_filename("pot hole  photo.jpg")
    assert re.fullmatch(r"\d+-\d+-pot_hole_photo\.jpg", name)


@pytest.mark.parametrize("original", ["../../etc/passwd", "..\\win\\evil.exe", "a/b/../c.png"])
def test_safe_filename_strips_directories(original):
    name = storage.safe_filename(original)
    assert "/" not in name and "\\" not in name
    assert ".." not in name


def test_safe_filename_without_usable_name():
    assert storage.safe_filename("").endswith("-upload")


def test_save_image_writes_into_upload_dir(upload_dir):
    stored = storage.save_image("road.png", b"data")
    assert (upload_dir / stored).read_bytes() == b"data"


def test_save_image_failure(tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file")
    monkeypatch.setattr(storage.config, "UPLOAD_DIR", blocker)
    with pytest.raises(StorageError):
        storage.save_image("road.png", b"data")


def test_public_url():
    assert storage.public_url("http://host:5000/", "x.png") == "http://host:5000/uploads/x.png"
    assert storage.public_url("http://host:5000", "x.png") == "http://host:5000/uploads/x.png"
