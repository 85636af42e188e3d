# tests/test_paths.py
import pytest

from stretchfs_storage.storage import paths


@pytest.mark.parametrize(
    "raw, expected",
    [("/a//b/", "a/b"), ("a/b", "a/b"), ("/", ""), ("", "")],
)
def test_normalize(raw, expected):
    assert paths.normalize(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("docs/report.pdf", ("/docs", "report.pdf")),
        ("/report.pdf", ("/", "report.pdf")),
        ("/", ("/", "")),
    ],
)
def test_split(raw, expected):
    assert paths.split(raw) == expected


def test_parent_and_is_within():
    assert paths.parent("b/d/e.txt") == "b/d"
    assert paths.parent("a.txt") == ""
    assert paths.is_within("b/d/e.txt", "/b/")
    assert not paths.is_within("bb/c.txt", "b")
    assert paths.is_within("anything", "")


def test_guess_mime_type_falls_back_to_octet_stream():
    assert paths.guess_mime_type("photo.png") == "image/png"
    assert paths.guess_mime_type("LICENSE") == paths.DEFAULT_MIME_TYPE
