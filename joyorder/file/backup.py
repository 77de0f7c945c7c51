"""
backup.py - Timestamped sibling backups and backup-then-write mutation.

Backup name: <file>.backup_YYYYMMDD_HHMMSS (same folder as the original).
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class BackupError(OSError):
    """The pre-write copy could not be made; the write must not happen."""


def backup_path_for(path, now: Optional[datetime] = None) -> Path:
    now = now or datetime.now()
    path = Path(path)
    return path.with_name(f"{path.name}.backup_{now.strftime(BACKUP_TIMESTAMP_FORMAT)}")


def create_backup(path, now: Optional[datetime] = None) -> Optional[Path]:
    """Copy `path` next to itself. Returns the backup path, or None when a
    backup with the same timestamp already exists (nothing to do)."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Cannot backup non-existent file: {path}")

    target = backup_path_for(path, now)
    try:
        # "x" never clobbers an existing backup
        with path.open("rb") as src, target.open("xb") as dst:
            shutil.copyfileobj(src, dst)
        shutil.copystat(path, target)
    except FileExistsError:
        return None
    except OSError as e:
        target.unlink(missing_ok=True)
        raise BackupError(f"Backup of {path} failed: {e}") from e
    return target


def scoped_write(path, content: str, log=None,
                 backup: Callable = create_backup) -> Optional[Path]:
    """Back up `path`, then replace its content. Raises before writing if the
    backup step fails. Returns the backup path (None if one already existed)."""
    path = Path(path)
    backup_file = backup(path)
    if log:
        if backup_file:
            log.info(f"[BACKUP] {path.name} -> {backup_file.name}")
        else:
            log.debug(f"[BACKUP] {path.name}: backup for this second already exists")
    with path.open("w", encoding="utf-8") as f:
        f.write(content)
    return backup_file
