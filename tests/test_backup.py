from datetime import datetime

import pytest

from joyorder.file.backup import BackupError, backup_path_for, create_backup, scoped_write

NOW = datetime(2024, 3, 9, 18, 5, 7)


def test_backup_name_is_timestamped_sibling(tmp_path):
    path = tmp_path / "devices.txt"
    assert backup_path_for(path, NOW) == tmp_path / "devices.txt.backup_20240309_180507"


def test_create_backup_copies_content(tmp_path):
    path = tmp_path / "devices.txt"
    path.write_text("configId,guid,model|\n", encoding="utf-8")

    backup = create_backup(path, NOW)

    assert backup.name == "devices.txt.backup_20240309_180507"
    assert backup.read_text(encoding="utf-8") == "configId,guid,model|\n"


def test_create_backup_requires_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        create_backup(tmp_path / "nope.txt", NOW)


def test_same_second_backup_is_not_overwritten(tmp_path):
    path = tmp_path / "current.map"
    path.write_text("first", encoding="utf-8")
    backup = create_backup(path, NOW)

    path.write_text("second", encoding="utf-8")
    assert create_backup(path, NOW) is None
    assert backup.read_text(encoding="utf-8") == "first"


def test_scoped_write_backs_up_before_writing(tmp_path):
    path = tmp_path / "current.map"
    path.write_text("old", encoding="utf-8")

    backup = scoped_write(path, "new")

    assert path.read_text(encoding="utf-8") == "new"
    assert backup.read_text(encoding="utf-8") == "old"


def test_failed_backup_prevents_write(tmp_path):
    path = tmp_path / "current.map"
    path.write_text("old", encoding="utf-8")

    def failing_backup(p):
        raise BackupError("disk full")

    with pytest.raises(BackupError):
        scoped_write(path, "new", backup=failing_backup)
    assert path.read_text(encoding="utf-8") == "old"


def test_scoped_write_on_missing_file_writes_nothing(tmp_path):
    with pytest.raises(FileNotFoundError):
        scoped_write(tmp_path / "devices.txt", "content")
    assert not (tmp_path / "devices.txt").exists()


def test_failed_copy_raises_backup_error_and_leaves_no_partial_backup(tmp_path, monkeypatch):
    path = tmp_path / "devices.txt"
    path.write_text("old", encoding="utf-8")

    def disk_full(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr("shutil.copyfileobj", disk_full)

    with pytest.raises(BackupError):
        scoped_write(path, "new")
    assert path.read_text(encoding="utf-8") == "old"
    assert [p.name for p in tmp_path.iterdir()] == ["devices.txt"]
