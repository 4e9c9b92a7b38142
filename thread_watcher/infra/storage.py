"""JSON file storage for the fingerprint record carried between runs."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from threading import Lock

from ..engine.diff import strip_to_fingerprints
from ..engine.models import FingerprintRecord, Window
from ..errors import RecordNotFound, StorageReadFailure, StorageWriteFailure


class FingerprintStore:
    """Load and atomically replace the persisted fingerprint record."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = Lock()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> FingerprintRecord:
        with self._lock:
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError as exc:
                raise RecordNotFound(f"Fingerprint record not found: {self.path}") from exc
            except (OSError, UnicodeDecodeError) as exc:
                raise StorageReadFailure(f"Cannot read {self.path}: {exc}") from exc
        try:
            return FingerprintRecord.from_payload(json.loads(raw))
        except (ValueError, TypeError) as exc:
            raise StorageReadFailure(f"Corrupt fingerprint record {self.path}: {exc}") from exc

    def load_or_empty(self) -> FingerprintRecord | None:
        """Return the stored record, or ``None`` on a cold start."""

        try:
            return self.load()
        except RecordNotFound:
            return None

    def save(self, record: FingerprintRecord) -> None:
        payload = json.dumps(record.to_payload(), ensure_ascii=False, indent=2)
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
                )
            except OSError as exc:
                raise StorageWriteFailure(f"Cannot write {self.path}: {exc}") from exc
            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as stream:
                    stream.write(payload)
                    stream.flush()
                    os.fsync(stream.fileno())
                os.replace(tmp_path, self.path)
            except OSError as exc:
                tmp_path.unlink(missing_ok=True)
                raise StorageWriteFailure(f"Cannot write {self.path}: {exc}") from exc

    def reset(self) -> bool:
        with self._lock:
            if self.path.exists():
                self.path.unlink()
                return True
            return False

    @staticmethod
    def strip_to_fingerprints(window: Window) -> FingerprintRecord:
        return strip_to_fingerprints(window)


__all__ = ["FingerprintStore"]
