"""Durable persistence of workflow sessions and the active-session pointer."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from pydantic import ValidationError

from constants.keys import StorageKeys
from core.errors import PersistenceWriteFailure, SessionNotFoundError
from models.session import Session, utc_now

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal string-keyed store that survives a full reload."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> Iterable[str]: ...


class InMemoryKeyValueStore:
    """Process-local store used for ephemeral runs and tests."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.RLock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


class JsonFileKeyValueStore:
    """Store every key as its own file below ``root``.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so a reader sees either the old or the new
    value and never a partial one.
    """

    _SUFFIX = ".json"

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._lock = threading.RLock()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._root / f"{key}{self._SUFFIX}"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        with self._lock:
            try:
                return path.read_text(encoding="utf-8")
            except FileNotFoundError:
                return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self._root)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def delete(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        with self._lock:
            if not self._root.is_dir():
                return []
            return sorted(
                path.name[: -len(self._SUFFIX)]
                for path in self._root.iterdir()
                if path.is_file() and path.name.endswith(self._SUFFIX) and not path.name.startswith(".")
            )


class SessionStore:
    """Read and write :class:`Session` records through a :class:`KeyValueStore`."""

    def __init__(self, backend: KeyValueStore) -> None:
        self._backend = backend

    @property
    def backend(self) -> KeyValueStore:
        return self._backend

    def _write(self, key: str, value: str) -> None:
        try:
            self._backend.set(key, value)
        except (OSError, ValueError, TypeError) as exc:
            raise PersistenceWriteFailure(f"Could not write '{key}': {exc}") from exc

    def _write_session(self, session: Session) -> None:
        self._write(StorageKeys.session(session.session_id), json.dumps(session.to_record(), ensure_ascii=False))

    def _read_session(self, session_id: str) -> Session | None:
        try:
            raw = self._backend.get(StorageKeys.session(session_id))
        except ValueError as exc:
            logger.warning("Ignoring invalid session id '%s': %s", session_id, exc)
            return None
        if raw is None:
            return None
        try:
            return Session.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Discarding unreadable session record '%s': %s", session_id, exc)
            return None

    def create(self, session_id: str, initial_config: Mapping[str, Any]) -> Session:
        """Write a new session and mark it as the active one."""

        now = utc_now()
        session = Session(
            session_id=session_id,
            config=deepcopy(dict(initial_config)),
            created_at=now,
            last_modified=now,
        )
        self._write_session(session)
        self.set_active(session_id)
        logger.info("Created session '%s'", session_id)
        return session

    def persist(self, session_id: str, config: Mapping[str, Any]) -> Session:
        """Upsert ``config`` for ``session_id`` and bump ``lastModified``."""

        existing = self._read_session(session_id)
        now = utc_now()
        if existing is None:
            session = Session(session_id=session_id, config=deepcopy(dict(config)), created_at=now, last_modified=now)
        else:
            session = existing.model_copy(update={"config": deepcopy(dict(config)), "last_modified": now})
        self._write_session(session)
        return session

    def load(self, session_id: str) -> Session:
        session = self._read_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def exists(self, session_id: str) -> bool:
        return self._read_session(session_id) is not None

    def active_session_id(self) -> str | None:
        raw = self._backend.get(StorageKeys.ACTIVE_SESSION)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    def set_active(self, session_id: str) -> None:
        self._write(StorageKeys.ACTIVE_SESSION, json.dumps(session_id))

    def delete(self, session_id: str) -> None:
        """Remove a session and clear the active pointer when it referenced it."""

        self._backend.delete(StorageKeys.session(session_id))
        if self.active_session_id() == session_id:
            self._backend.delete(StorageKeys.ACTIVE_SESSION)

    def list_sessions(self) -> list[Session]:
        """Return every readable session, most recently modified first."""

        sessions: list[Session] = []
        for key in self._backend.keys():
            if not key.startswith(StorageKeys.SESSION_PREFIX):
                continue
            session = self._read_session(key[len(StorageKeys.SESSION_PREFIX) :])
            if session is not None:
                sessions.append(session)
        sessions.sort(key=lambda item: item.last_modified, reverse=True)
        return sessions


def default_session_store(storage_dir: str | Path | None = None) -> SessionStore:
    """Return a file-backed store rooted at ``storage_dir`` or the configured default."""

    if storage_dir is None:
        from config import STORAGE_DIR

        storage_dir = STORAGE_DIR
    return SessionStore(JsonFileKeyValueStore(storage_dir))


__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "SessionStore",
    "default_session_store",
]
