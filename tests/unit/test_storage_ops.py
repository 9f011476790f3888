from pathlib import Path

import pytest

from src.core import storage_ops


def test_save_and_resolve_artifact(tmp_path, png):
    upload_dir = str(tmp_path / "uploads")

    filename = storage_ops.save_removed_background(upload_dir, png)

    assert filename.startswith("removed_") and filename.endswith(".png")
    assert storage_ops.generate_public_url(filename) == f"/uploads/{filename}"
    path = storage_ops.resolve_artifact(upload_dir, filename)
    assert path is not None
    assert path.read_bytes() == png


def test_save_uses_unique_names(tmp_path, png):
    upload_dir = str(tmp_path)

    first = storage_ops.save_removed_background(upload_dir, png)
    second = storage_ops.save_removed_background(upload_dir, png)

    assert first != second


def test_resolve_rejects_traversal_and_missing(tmp_path):
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    (tmp_path / "secret.txt").write_text("nope")

    assert storage_ops.resolve_artifact(str(upload_dir), "../secret.txt") is None
    assert storage_ops.resolve_artifact(str(upload_dir), "..") is None
    assert storage_ops.resolve_artifact(str(upload_dir), "") is None
    assert storage_ops.resolve_artifact(str(upload_dir), "removed_missing.png") is None


def test_delete_file(tmp_path, png):
    upload_dir = str(tmp_path)
    filename = storage_ops.save_removed_background(upload_dir, png)

    assert storage_ops.delete_file(upload_dir, filename) is True
    assert storage_ops.resolve_artifact(upload_dir, filename) is None
    assert storage_ops.delete_file(upload_dir, filename) is False


def test_failed_write_leaves_no_partial_file(tmp_path, png, monkeypatch):
    def partial_write(self, data):
        with open(self, "wb") as fh:
            fh.write(data[:5])
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(Path, "write_bytes", partial_write)

    with pytest.raises(OSError):
        storage_ops.save_removed_background(str(tmp_path), png)

    assert list(tmp_path.iterdir()) == []
