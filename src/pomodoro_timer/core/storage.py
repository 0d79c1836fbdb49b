"""Key-value persistence for the timer state."""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import ContextManager, Iterator, Optional, Protocol

from pomodoro_timer.core.timer import (
    DEFAULT_DURATIONS,
    SessionState,
    TimerMode,
    coerce_mode,
    default_duration,
)

KEY_MODE = "mode"
KEY_REMAINING_SECONDS = "remaining_seconds"
KEY_RUNNING = "running"
KEY_COMPLETED_WORK_SESSIONS = "completed_work_sessions"
KEY_SAVED_DURATIONS = "saved_durations"

STATE_KEYS = (
    KEY_MODE,
    KEY_REMAINING_SECONDS,
    KEY_RUNNING,
    KEY_COMPLETED_WORK_SESSIONS,
    KEY_SAVED_DURATIONS,
)

_TRUE = "true"
_FALSE = "false"


class StorageError(Exception):
    """Raised when the state file cannot be written."""


class PersistenceAdapter(Protocol):
    """Synchronous string key-value store."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def batch(self) -> ContextManager[None]:
        """Group several writes so they are flushed together."""
        ...


class MemoryStore:
    """Dict-backed store that lives as long as the process."""

    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)

    def batch(self) -> ContextManager[None]:
        return contextlib.nullcontext()


class JsonFileStore:
    """Store backed by a single JSON object file, guarded with ``fcntl`` locks.

    The file is read once on construction and rewritten after every change,
    or once at the end of a :meth:`batch`.
    """

    def __init__(self, path: Path, logger: Optional[logging.Logger] = None) -> None:
        self._path = path
        self._logger = logger or logging.getLogger("pomodoro_timer.storage")
        self._data: dict[str, str] = self._read()
        self._batch_depth = 0
        self._dirty = False

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._changed()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._changed()

    @contextlib.contextmanager
    def batch(self) -> Iterator[None]:
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
        if self._batch_depth == 0 and self._dirty:
            self._flush()

    # -- private helpers -----------------------------------------------------

    def _changed(self) -> None:
        self._dirty = True
        if self._batch_depth == 0:
            self._flush()

    def _flush(self) -> None:
        """Write the whole store to a sibling temp file, then swap it into place.

        Readers see either the previous file or the new one, never a
        truncated one.
        """
        tmp_name: Optional[str] = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                fcntl.flock(f, fcntl.LOCK_EX)
                json.dump(self._data, f)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            raise StorageError(f"Cannot write {self._path}: {exc.strerror or exc}") from exc
        self._dirty = False

    def _read(self) -> dict[str, str]:
        """Load the store from disk; anything unreadable counts as empty."""
        if not self._path.exists():
            return {}

        try:
            with open(self._path) as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                data = json.load(f)
        except (OSError, ValueError) as exc:
            self._logger.warning("Ignoring unreadable state file %s: %s", self._path, exc)
            return {}

        if not isinstance(data, dict):
            self._logger.warning("Ignoring state file %s: not a JSON object", self._path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}


# -- snapshot encoding -------------------------------------------------------


def _parse_count(raw: Optional[str]) -> Optional[int]:
    """Parse a non-negative decimal integer, or return ``None``."""
    if raw is None:
        return None
    text = raw.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def _parse_saved_durations(raw: Optional[str]) -> dict[TimerMode, int]:
    durations = dict(DEFAULT_DURATIONS)
    if raw is None:
        return durations
    try:
        decoded = json.loads(raw)
    except ValueError:
        return durations
    if not isinstance(decoded, dict):
        return durations

    for key, value in decoded.items():
        mode = coerce_mode(key)
        if mode is None:
            continue
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            durations[mode] = min(value, default_duration(mode))
    return durations


def load_initial_state(store: PersistenceAdapter) -> SessionState:
    """Build a :class:`SessionState` from *store*, substituting defaults.

    Missing or malformed values never propagate: each is replaced with the
    value a fresh timer would have.
    """
    mode = coerce_mode(store.get(KEY_MODE)) or TimerMode.WORK
    saved_durations = _parse_saved_durations(store.get(KEY_SAVED_DURATIONS))
    duration = saved_durations[mode]

    remaining = _parse_count(store.get(KEY_REMAINING_SECONDS))
    if remaining is None:
        remaining = duration
    remaining = min(remaining, duration)

    completed = _parse_count(store.get(KEY_COMPLETED_WORK_SESSIONS)) or 0
    running = store.get(KEY_RUNNING) == _TRUE

    return SessionState(
        mode=mode,
        remaining_seconds=remaining,
        running=running,
        completed_work_sessions=completed,
        saved_durations=saved_durations,
    )


def save_state(store: PersistenceAdapter, state: SessionState) -> None:
    """Write every field of *state* to *store* as one batch."""
    durations = {mode.value: seconds for mode, seconds in state.saved_durations.items()}
    with store.batch():
        store.set(KEY_MODE, state.mode.value)
        store.set(KEY_REMAINING_SECONDS, str(state.remaining_seconds))
        store.set(KEY_RUNNING, _TRUE if state.running else _FALSE)
        store.set(KEY_COMPLETED_WORK_SESSIONS, str(state.completed_work_sessions))
        store.set(KEY_SAVED_DURATIONS, json.dumps(durations, sort_keys=True))


def clear_state(store: PersistenceAdapter) -> None:
    """Remove every timer key from *store*."""
    with store.batch():
        for key in STATE_KEYS:
            store.remove(key)
