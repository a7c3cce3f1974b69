"""Full-state JSON backups and restores."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .models import Backup
from .results import Err, ErrorKind, Ok, Result, not_found
from .state import StateSnapshot, find_by_id

if TYPE_CHECKING:
    from .store import CRMStore

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("donors", "donations")


def parse_snapshot(json_text: str | bytes) -> Result[StateSnapshot]:
    """Validate a backup document without touching any store."""
    try:
        payload = json.loads(json_text)
    except (TypeError, ValueError, RecursionError):
        return Err(ErrorKind.PARSE_ERROR, "Failed to parse backup file.")

    if not isinstance(payload, dict) or any(key not in payload for key in REQUIRED_KEYS):
        return Err(ErrorKind.INVALID_BACKUP, "Invalid backup file format.")

    try:
        snapshot = StateSnapshot.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        return Err(
            ErrorKind.INVALID_BACKUP,
            f"Invalid backup file format: {exc.error_count()} problem(s), first at {location}: {first['msg']}",
        )
    return Ok(snapshot)


class BackupManager:
    """Creates, restores, and deletes snapshots of a store's collections."""

    def __init__(self, store: CRMStore) -> None:
        self.store = store

    def list_backups(self) -> list[Backup]:
        return list(self.store.state.backups)

    def get_backup(self, backup_id: str) -> Backup | None:
        return find_by_id(self.store.state.backups, backup_id)

    def export_state(self) -> str:
        snapshot = self.store.state.snapshot()
        return json.dumps(snapshot.to_json_dict(), indent=self.store.config.backup_indent)

    def create_backup(self) -> Result[Backup]:
        data = self.export_state()
        backup = Backup(
            id=self.store.new_id("backup"),
            date=self.store.clock.now(),
            size=len(data.encode("utf-8")),
            data=data,
        )
        state = self.store.state
        state.backups = [backup, *state.backups]
        logger.info("Created backup %s (%d bytes)", backup.id, backup.size)
        return Ok(backup)

    def restore_backup(self, backup_id: str) -> Result[Backup]:
        backup = self.get_backup(backup_id)
        if backup is None:
            return not_found("Backup", backup_id)

        parsed = parse_snapshot(backup.data)
        if not parsed.ok:
            logger.warning("Backup %s could not be restored: %s", backup_id, parsed.message)
            return parsed
        self.store.state.restore(parsed.value)
        logger.info("Restored backup %s", backup_id)
        return Ok(backup)

    def restore_from_file(self, json_text: str | bytes) -> Result[None]:
        parsed = parse_snapshot(json_text)
        if not parsed.ok:
            logger.warning("Rejected backup file: %s", parsed.message)
            return parsed
        self.store.state.restore(parsed.value)
        logger.info("Restored state from backup file")
        return Ok(None)

    def delete_backup(self, backup_id: str) -> Result[Backup]:
        backup = self.get_backup(backup_id)
        if backup is None:
            return not_found("Backup", backup_id)
        state = self.store.state
        state.backups = [existing for existing in state.backups if existing.id != backup_id]
        return Ok(backup)
