import asyncio

import pytest

from app.services.attachment_storage import (
    StoredFile,
    discard_uploads,
    organize_item_files,
    store_upload,
    store_uploads,
)


def _file(field_name, name="receipt.pdf"):
    return StoredFile(
        field_name=field_name,
        original_name=name,
        path=f"/tmp/{name}",
        size=128,
        content_type="application/pdf",
    )


def test_files_are_grouped_by_item_index():
    files = [
        _file("item_1_attachments", "taxi.pdf"),
        _file("item_0_attachments", "lunch.jpg"),
        _file("item_1_attachments", "train.pdf"),
    ]

    mapping = organize_item_files(files)

    assert set(mapping) == {0, 1}
    assert [f.original_name for f in mapping[0]] == ["lunch.jpg"]
    # upload order is kept within an item
    assert [f.original_name for f in mapping[1]] == ["taxi.pdf", "train.pdf"]


def test_multi_digit_index():
    mapping = organize_item_files([_file("item_12_attachments")])
    assert list(mapping) == [12]


def test_non_conforming_field_names_are_dropped():
    files = [
        _file("receipt"),
        _file("item_x_attachments"),
        _file("item_1_attachment"),
        _file("prefix_item_1_attachments"),
        _file("item_1_attachments_extra"),
        _file("item_-1_attachments"),
        _file("item_2_attachments", "kept.pdf"),
    ]

    mapping = organize_item_files(files)

    assert list(mapping) == [2]
    assert [f.original_name for f in mapping[2]] == ["kept.pdf"]


def test_empty_or_missing_batch_gives_empty_mapping():
    assert organize_item_files([]) == {}
    assert organize_item_files(None) == {}


def test_discard_uploads_removes_files_and_ignores_missing(tmp_path):
    existing = tmp_path / "stored.pdf"
    existing.write_bytes(b"%PDF")
    files = [
        StoredFile("item_0_attachments", "stored.pdf", str(existing), 4, "application/pdf"),
        StoredFile("item_0_attachments", "gone.pdf", str(tmp_path / "gone.pdf"), 4, "application/pdf"),
    ]

    discard_uploads(files)

    assert not existing.exists()


class _Upload:
    """Minimal stand-in for UploadFile: yields the given chunks, then raises if asked to."""

    def __init__(self, filename, chunks, error=None):
        self.filename = filename
        self.content_type = "application/pdf"
        self._chunks = list(chunks)
        self._error = error

    async def read(self, size=-1):
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        return b""


def test_store_upload_writes_file_under_unique_name(tmp_path):
    upload = _Upload("Lunch.PDF", [b"%PDF", b"-1.4"])

    stored = asyncio.run(store_upload("item_0_attachments", upload, str(tmp_path)))

    assert stored.original_name == "Lunch.PDF"
    assert stored.size == 8
    assert stored.path.endswith(".pdf")
    with open(stored.path, "rb") as fh:
        assert fh.read() == b"%PDF-1.4"


def test_write_error_removes_partial_file(tmp_path):
    upload = _Upload("receipt.pdf", [b"partial"], error=OSError("No space left on device"))

    with pytest.raises(OSError):
        asyncio.run(store_upload("item_0_attachments", upload, str(tmp_path)))

    assert list(tmp_path.iterdir()) == []


def test_write_error_discards_files_already_stored(tmp_path):
    parts = [
        ("item_0_attachments", _Upload("first.pdf", [b"%PDF"])),
        ("item_1_attachments", _Upload("second.pdf", [b"%PD"], error=OSError("disk full"))),
    ]

    with pytest.raises(OSError):
        asyncio.run(store_uploads(parts, str(tmp_path)))

    assert list(tmp_path.iterdir()) == []
