from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from .errors import BackupError


@dataclass(frozen=True)
class FileBackup:
    filename: str
    contents: bytes


def backup_files(config_dir: Path) -> List[FileBackup]:
    try:
        entries = sorted(config_dir.iterdir())
    except OSError as exc:
        raise BackupError(f"Failed to read files in directory `{config_dir}`:\n{exc}") from exc

    backups: List[FileBackup] = []
    for entry in entries:
        if not entry.is_file():
            logging.debug("Not backing up %s, it is not a regular file", entry)
            continue
        try:
            contents = entry.read_bytes()
        except OSError as exc:
            raise BackupError(
                f"failed to backup patchy config file {entry.name}:\n{exc}"
            ) from exc
        backups.append(FileBackup(filename=entry.name, contents=contents))
    logging.debug("Backed up %d file(s) from %s", len(backups), config_dir)
    return backups


def restore_files(backups: Sequence[FileBackup], config_dir: Path) -> None:
    for backup in backups:
        path = config_dir / backup.filename
        try:
            path.write_bytes(backup.contents)
        except OSError as exc:
            raise BackupError(f"failed to restore backup {path}:\n{exc}") from exc
    logging.debug("Restored %d file(s) into %s", len(backups), config_dir)
