"""
File-level backups taken before a candidate mutates the working tree.

Each backup lives in its own directory, keyed by timestamp and candidate
id, and holds a copy of every file about to be touched plus the
serialized candidate. Restoring is a direct copy-back, independent of
version control.

    <backup_dir>/backup-<millis>-<candidate id>/
        metadata.json
        files/<project-relative path>
"""

from __future__ import annotations

import json
import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, List

from ..models.removal import RemovalCandidate


class BackupError(Exception):
    """A backup could not be written or restored."""


class BackupStore:
    """
    Explicit handle on the backup directory.

    Args:
        project_root: Root that backed-up paths are relative to
        backup_dir: Directory holding backups (relative paths resolve against project_root)
    """

    METADATA_FILE = 'metadata.json'
    FILES_DIR = 'files'

    def __init__(self, project_root: Path, backup_dir: Path) -> None:
        self.project_root = Path(project_root)
        backup_dir = Path(backup_dir)
        self.backup_dir = backup_dir if backup_dir.is_absolute() else self.project_root / backup_dir

    def path_for(self, backup_id: str) -> Path:
        return self.backup_dir / backup_id

    def create(self, candidate: RemovalCandidate, files: Iterable[str]) -> str:
        """
        Copy every listed file and write the candidate metadata.

        Files that do not exist yet are recorded as missing so a restore
        deletes whatever was created in their place.

        Returns:
            The backup id
        """
        backup_id = f"backup-{int(time.time() * 1000)}-{candidate.id}"
        root = self.path_for(backup_id)
        files = list(dict.fromkeys(files))

        saved, missing = [], []
        try:
            (root / self.FILES_DIR).mkdir(parents=True, exist_ok=False)
            for rel in files:
                source = self.project_root / rel
                if not source.exists():
                    missing.append(rel)
                    continue
                target = root / self.FILES_DIR / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, target)
                saved.append(rel)

            metadata = {
                'backup_id': backup_id,
                'created_at': datetime.now().isoformat(),
                'candidate': candidate.model_dump(mode='json'),
                'files': saved,
                'missing': missing,
            }
            (root / self.METADATA_FILE).write_text(json.dumps(metadata, indent=2), encoding='utf-8')
        except OSError as e:
            raise BackupError(f"Could not create backup {backup_id}: {e}") from e

        return backup_id

    def metadata(self, backup_id: str) -> dict:
        path = self.path_for(backup_id) / self.METADATA_FILE
        try:
            return json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise BackupError(f"Unreadable backup metadata for {backup_id}: {e}") from e

    def restore(self, backup_id: str) -> List[str]:
        """
        Copy every backed-up file back into the project.

        Returns:
            Project-relative paths that were restored or removed
        """
        metadata = self.metadata(backup_id)
        root = self.path_for(backup_id) / self.FILES_DIR
        touched = []
        try:
            for rel in metadata.get('files', []):
                target = self.project_root / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(root / rel, target)
                touched.append(rel)
            for rel in metadata.get('missing', []):
                target = self.project_root / rel
                if target.exists():
                    target.unlink()
                    touched.append(rel)
        except OSError as e:
            raise BackupError(f"Could not restore backup {backup_id}: {e}") from e
        return touched

    def changed_files(self, backup_id: str) -> List[str]:
        """Backed-up paths whose current state differs from the backup."""
        metadata = self.metadata(backup_id)
        root = self.path_for(backup_id) / self.FILES_DIR
        changed = []
        try:
            for rel in metadata.get('files', []):
                current = self.project_root / rel
                if not current.is_file() or current.read_bytes() != (root / rel).read_bytes():
                    changed.append(rel)
        except OSError as e:
            raise BackupError(f"Could not compare backup {backup_id}: {e}") from e
        changed.extend(rel for rel in metadata.get('missing', []) if (self.project_root / rel).exists())
        return changed

    def list_backups(self) -> List[str]:
        if not self.backup_dir.is_dir():
            return []
        return sorted(p.name for p in self.backup_dir.iterdir() if (p / self.METADATA_FILE).exists())
