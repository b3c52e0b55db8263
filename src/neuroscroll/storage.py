# neuroscroll/storage.py
"""
Storage collaborator.

The core only needs async get/set over a key-value store. ``StorageManager``
layers session bookkeeping (insert/replace, retention, settings) on top of
any ``KeyValueBackend``.

Design principles:
- Async-native: all I/O operations are async
- Never raises to callers: failures are logged and reported as None/False
- Stored values are JSON-compatible camelCase shapes
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

from neuroscroll.config import DEFAULT_MAX_SESSIONS
from neuroscroll.exceptions import StorageError
from neuroscroll.models.session import ViewingSession
from neuroscroll.models.settings import UserSettings
from neuroscroll.timeutil import Clock, now_ms

logger = logging.getLogger(__name__)

SESSIONS_KEY = "neuroscroll-sessions"
SETTINGS_KEY = "neuroscroll-settings"

MS_PER_DAY = 24 * 60 * 60 * 1000


class KeyValueBackend(Protocol):
    """Protocol for key-value storage backends."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self) -> None: ...


class InMemoryBackend(BaseModel):
    """
    Simple in-memory backend for testing/development.

    Values are stored as JSON text so reads return fresh copies.
    Not persistent - data is lost when the process exits.
    """

    data: dict[str, str] = Field(default_factory=dict)

    async def get(self, key: str) -> Any | None:
        raw = self.data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        try:
            self.data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON serializable: {e}") from e

    async def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None

    async def clear(self) -> None:
        self.data.clear()


class JsonFileBackend:
    """One JSON file per key inside a directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.directory / f"{safe}.json"

    async def get(self, key: str) -> Any | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
            return json.loads(text)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    async def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            text = json.dumps(value)
            tmp = path.with_suffix(".json.tmp")
            await asyncio.to_thread(tmp.write_text, text, encoding="utf-8")
            await asyncio.to_thread(tmp.replace, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    async def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.exists():
            return False
        path.unlink()
        return True

    async def clear(self) -> None:
        for path in self.directory.glob("*.json"):
            path.unlink()


class StorageManager:
    """Session and settings persistence over a key-value backend."""

    def __init__(
        self,
        backend: KeyValueBackend | None = None,
        clock: Clock = now_ms,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        self.backend = backend if backend is not None else InMemoryBackend()
        self._clock = clock
        self.max_sessions = max_sessions
        self._lock = asyncio.Lock()

    # --- Raw access ---

    async def get(self, key: str) -> Any | None:
        try:
            return await self.backend.get(key)
        except Exception as e:
            logger.error(f"Failed to get storage key {key}: {e}")
            return None

    async def set(self, key: str, value: Any) -> bool:
        try:
            await self.backend.set(key, value)
            return True
        except Exception as e:
            logger.error(f"Failed to set storage key {key}: {e}")
            return False

    # --- Sessions ---

    async def get_sessions(self) -> list[ViewingSession]:
        """Load stored sessions, skipping entries that no longer validate."""
        raw = await self.get(SESSIONS_KEY)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.error("Stored sessions data is corrupted, ignoring it")
            return []

        sessions: list[ViewingSession] = []
        for item in raw:
            session = ViewingSession.coerce(item)
            if session is None:
                logger.warning("Skipping unreadable stored session")
                continue
            sessions.append(session)
        return sessions

    async def _write_sessions(self, sessions: list[ViewingSession]) -> bool:
        settings = await self.get_settings()
        kept = self.apply_retention_policy(sessions, settings.data_retention_days)
        return await self.set(SESSIONS_KEY, [s.to_storage() for s in kept])

    async def save_session(self, session: ViewingSession) -> bool:
        """Insert the session, or replace the stored one with the same id."""
        if not session.id:
            logger.error("Invalid session data for saving: missing id")
            return False

        async with self._lock:
            sessions = await self.get_sessions()
            stored = session.model_copy(deep=True)
            for index, existing in enumerate(sessions):
                if existing.id == session.id:
                    sessions[index] = stored
                    break
            else:
                sessions.append(stored)
            return await self._write_sessions(sessions)

    async def add_session(self, session: ViewingSession) -> bool:
        """Append a session without checking for an existing id."""
        async with self._lock:
            sessions = await self.get_sessions()
            sessions.append(session.model_copy(deep=True))
            return await self._write_sessions(sessions)

    async def update_session(self, session_id: str, updates: dict[str, Any]) -> bool:
        """Merge field updates (snake_case or camelCase) into a stored session."""
        async with self._lock:
            sessions = await self.get_sessions()
            for index, existing in enumerate(sessions):
                if existing.id == session_id:
                    break
            else:
                logger.error(f"Session {session_id} not found")
                return False

            merged = existing.model_dump()
            for key, value in updates.items():
                merged[ViewingSession.field_name(key) or key] = value
            try:
                sessions[index] = ViewingSession.model_validate(merged)
            except ValidationError as e:
                logger.error(f"Invalid update for session {session_id}: {e}")
                return False
            return await self.set(SESSIONS_KEY, [s.to_storage() for s in sessions])

    async def get_session(self, session_id: str) -> ViewingSession | None:
        for session in await self.get_sessions():
            if session.id == session_id:
                return session
        return None

    def apply_retention_policy(
        self,
        sessions: list[ViewingSession],
        retention_days: int,
    ) -> list[ViewingSession]:
        """Drop sessions older than the retention window and keep the newest N."""
        cutoff = self._clock() - retention_days * MS_PER_DAY
        kept = [s for s in sessions if s.start_time > cutoff]
        if len(kept) > self.max_sessions:
            kept = sorted(kept, key=lambda s: s.start_time, reverse=True)[: self.max_sessions]
        return kept

    # --- Settings ---

    async def get_settings(self) -> UserSettings:
        raw = await self.get(SETTINGS_KEY)
        if raw is None:
            return UserSettings()
        try:
            return UserSettings.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Stored settings are invalid, using defaults: {e.error_count()} errors")
            return UserSettings()

    async def save_settings(self, settings: UserSettings) -> bool:
        return await self.set(SETTINGS_KEY, settings.to_storage())

    async def clear_all_data(self) -> bool:
        try:
            await self.backend.clear()
            return True
        except Exception as e:
            logger.error(f"Failed to clear storage: {e}")
            return False
