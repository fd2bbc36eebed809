"""Upload session records and the registry that tracks them between calls."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


class DuplicateSessionError(ValueError):
    """Raised when a session is registered under an upload id already in use."""


@dataclass(frozen=True, slots=True)
class UploadSession:
    """One in-flight multipart upload.

    ``object_key`` is computed once when the upload starts; part URLs and the
    completion request always reuse it.
    """

    upload_id: str
    object_key: str
    bucket: str
    file_name: str
    content_type: str
    created_at: datetime


class SessionRegistry(Protocol):
    """Storage for live upload sessions, keyed by upload id."""

    def put(self, session: UploadSession) -> None: ...

    def get(self, upload_id: str) -> UploadSession | None: ...

    def delete(self, upload_id: str) -> bool: ...

    def list_expired(self, cutoff: datetime) -> list[UploadSession]: ...

    def __len__(self) -> int: ...


class InMemorySessionRegistry:
    """Process-local registry safe for use from concurrent request threads.

    The lock only guards dictionary access; callers must not hold it across
    storage calls. Sessions are lost on restart.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, UploadSession] = {}
        self._lock = threading.Lock()

    def put(self, session: UploadSession) -> None:
        with self._lock:
            if session.upload_id in self._sessions:
                raise DuplicateSessionError(
                    f"Upload session {session.upload_id!r} already exists"
                )
            self._sessions[session.upload_id] = session

    def get(self, upload_id: str) -> UploadSession | None:
        with self._lock:
            return self._sessions.get(upload_id)

    def delete(self, upload_id: str) -> bool:
        """Remove a session; returns False when it was already gone."""
        with self._lock:
            return self._sessions.pop(upload_id, None) is not None

    def list_expired(self, cutoff: datetime) -> list[UploadSession]:
        with self._lock:
            return [s for s in self._sessions.values() if s.created_at <= cutoff]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
