"""
Checkpoint stores for the migration driver.

The checkpoint is the only durable cross-run state: the set of user IDs
already attempted. It is rewritten wholesale on every save, so a reader
always sees a complete set.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError
from structlog import get_logger

from entitlements.models.api import CheckpointDocument

logger = get_logger(__name__)


class CheckpointStore(Protocol):
    """Durable record of processed subjects."""

    def load(self) -> set[str]:
        """Return the processed user IDs (empty when nothing was saved)."""
        ...

    def save(self, processed_user_ids: set[str]) -> None:
        """Replace the stored set."""
        ...


class FileCheckpointStore:
    """
    JSON checkpoint file: {"processedUserIds": [...]}.

    Reads are permissive (missing or corrupt file means empty set). Writes go
    to a temp file in the same directory, are fsynced, then renamed over the
    target so a crash never leaves a half-written checkpoint.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> set[str]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return set()
        except OSError as exc:
            logger.warning("checkpoint_unreadable", path=str(self.path), error=str(exc))
            return set()

        try:
            document = CheckpointDocument.model_validate_json(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValidationError) as exc:
            logger.warning("checkpoint_unparsable", path=str(self.path), error=str(exc))
            return set()

        processed = set(document.processed_user_ids)
        logger.info("checkpoint_loaded", path=str(self.path), processed=len(processed))
        return processed

    def save(self, processed_user_ids: set[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = CheckpointDocument(processed_user_ids=sorted(processed_user_ids))
        payload = json.dumps(document.model_dump(by_alias=True), indent=2)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class InMemoryCheckpointStore:
    """Checkpoint held in memory; substitutes for the file store in tests."""

    def __init__(self, processed_user_ids: set[str] | None = None) -> None:
        self.processed_user_ids = set(processed_user_ids or ())
        self.save_count = 0

    def load(self) -> set[str]:
        return set(self.processed_user_ids)

    def save(self, processed_user_ids: set[str]) -> None:
        self.processed_user_ids = set(processed_user_ids)
        self.save_count += 1
