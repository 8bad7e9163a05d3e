from __future__ import annotations

import csv
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List

from .models import SessionResult

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["created_at", "coverage_pct", "z_coverage", "wpm_effective", "test_id"]


class HistoryStoreError(RuntimeError):
    """Raised when the session history cannot be read."""


class SessionStore(ABC):
    """Append-only session history, newest first."""

    @abstractmethod
    def save(self, result: SessionResult) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[SessionResult]:
        """Return every stored session, most recent first."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    def latest(self) -> SessionResult | None:
        sessions = self.list_all()
        return sessions[0] if sessions else None


class InMemorySessionStore(SessionStore):
    def __init__(self, sessions: Iterable[SessionResult] | None = None) -> None:
        self._sessions: List[SessionResult] = list(sessions or [])

    def save(self, result: SessionResult) -> None:
        self._sessions.insert(0, result)

    def list_all(self) -> List[SessionResult]:
        return list(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()


class JsonSessionStore(SessionStore):
    """Session history persisted as a JSON list in a single file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def save(self, result: SessionResult) -> None:
        payload = [result.to_dict()] + [s.to_dict() for s in self.list_all()]
        self._replace_contents(json.dumps(payload, indent=2))
        logger.debug("Saved session %s to %s", result.session_id, self.path)

    def list_all(self) -> List[SessionResult]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except json.JSONDecodeError as exc:
            raise HistoryStoreError(f"History file is not valid JSON: {self.path}") from exc
        if not isinstance(raw, list):
            raise HistoryStoreError(f"History file must hold a JSON list: {self.path}")
        try:
            return [SessionResult.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            raise HistoryStoreError(f"Malformed session entry in {self.path}") from exc

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def _replace_contents(self, text: str) -> None:
        """Write to a sibling temp file and atomically swap it into place."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def export_history_csv(sessions: Iterable[SessionResult], destination: str | Path) -> int:
    """Write a CSV summary of the sessions and return the number of rows written."""
    dest = Path(destination)
    dest.parent.mkdir(parents=True, exist_ok=True)
    rows = 0
    with dest.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(CSV_COLUMNS)
        for session in sessions:
            writer.writerow(
                [
                    session.created_at.isoformat(),
                    session.coverage_pct,
                    session.z_coverage,
                    session.wpm_effective,
                    session.test_id,
                ]
            )
            rows += 1
    return rows
