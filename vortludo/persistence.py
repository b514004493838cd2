"""Storing game sessions as JSON files on disk."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from datetime import timedelta
from pathlib import Path

from .models import MAX_GUESSES, GameState

log = logging.getLogger(__name__)

SESSIONS_DIRECTORY = os.path.join("data", "sessions")
SESSIONS_DIR_PERM = 0o750
SESSION_FILE_PERM = 0o600

_DASH_POSITIONS = {8, 13, 18, 23}
_HEX = set("0123456789abcdefABCDEF")


class InvalidSessionIDError(ValueError):
    """A session ID that may not be used to name a file."""


def is_valid_session_id(session_id: str) -> bool:
    """Return True for a UUID-shaped session ID."""
    if len(session_id) != 36:
        return False
    for i, ch in enumerate(session_id):
        if i in _DASH_POSITIONS:
            if ch != "-":
                return False
        elif ch not in _HEX:
            return False
    return True


def secure_session_path(
    session_id: str, sessions_dir: str | os.PathLike = SESSIONS_DIRECTORY
) -> str:
    """Return the file path for a session, refusing anything unsafe."""
    if not is_valid_session_id(session_id):
        raise InvalidSessionIDError("invalid session ID format")
    directory = os.fspath(sessions_dir)
    filename = f"{session_id}.json"
    path = os.path.normpath(os.path.join(directory, filename))
    abs_dir = os.path.normpath(os.path.abspath(directory)) + os.sep
    abs_path = os.path.abspath(path)
    if not abs_path.startswith(abs_dir):
        raise InvalidSessionIDError("session path would escape sessions directory")
    actual = os.path.basename(abs_path)
    if actual != filename:
        raise InvalidSessionIDError(
            f"session filename mismatch: expected {filename}, got {actual}"
        )
    return path


class SessionStorage:
    """Session files in one directory, with expiry and write throttling."""

    def __init__(
        self,
        directory: str | os.PathLike = SESSIONS_DIRECTORY,
        session_timeout: timedelta = timedelta(hours=2),
        save_interval: timedelta = timedelta(seconds=1),
        max_guesses: int = MAX_GUESSES,
    ) -> None:
        self.directory = os.fspath(directory)
        self.session_timeout = session_timeout
        self.save_interval = save_interval
        self.max_guesses = max_guesses
        self._last_saves: dict[str, float] = {}
        self._lock = threading.Lock()

    def path_for(self, session_id: str) -> str:
        return secure_session_path(session_id, self.directory)

    def save(self, session_id: str, game: GameState) -> bool:
        """Write a session; return False if skipped because of a recent write."""
        if not is_valid_session_id(session_id):
            log.warning("Rejected save attempt with invalid session ID: %r", session_id)
            raise InvalidSessionIDError("invalid session ID format")

        with self._lock:
            now = time.monotonic()
            last = self._last_saves.get(session_id)
            if last is not None and now - last < self.save_interval.total_seconds():
                return False
            self._last_saves[session_id] = now

        path = self.path_for(session_id)
        os.makedirs(self.directory, mode=SESSIONS_DIR_PERM, exist_ok=True)
        game.touch()
        payload = json.dumps(game.to_dict(), indent=2)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SESSION_FILE_PERM)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        log.info("Saved session file: %s", path)
        return True

    def _discard(self, path: str, reason: str) -> None:
        log.info("Removing %s session file: %s", reason, path)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.warning("Failed to remove %s session file: %s", reason, exc)

    def load(self, session_id: str) -> GameState:
        """Read a session; raise FileNotFoundError if it is missing or unusable."""
        try:
            path = self.path_for(session_id)
        except InvalidSessionIDError as exc:
            raise FileNotFoundError(f"no session file for {session_id!r}") from exc

        info = os.stat(path)
        if time.time() - info.st_mtime > self.session_timeout.total_seconds():
            self._discard(path, "expired")
            raise FileNotFoundError(f"session file expired: {path}")

        data = Path(path).read_bytes()
        try:
            game = GameState.from_dict(json.loads(data))
        except ValueError as exc:
            self._discard(path, "corrupted")
            raise FileNotFoundError(f"session file corrupted: {path}") from exc

        game.touch()
        if len(game.guesses) != self.max_guesses or not game.session_word:
            self._discard(path, "invalid")
            raise FileNotFoundError(f"session file invalid: {path}")
        return game

    def remove(self, session_id: str) -> bool:
        """Delete a session's file; return True if one was removed."""
        try:
            path = self.path_for(session_id)
        except InvalidSessionIDError:
            return False
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            log.warning("Failed to remove session file: %s", exc)
            return False
        return True

    def cleanup(self, max_age: timedelta) -> int:
        """Remove session files older than max_age; return how many went."""
        abs_dir = os.path.abspath(self.directory)
        try:
            entries = list(os.scandir(self.directory))
        except FileNotFoundError:
            log.info("Sessions directory doesn't exist, skipping cleanup")
            return 0

        cutoff = time.time() - max_age.total_seconds()
        removed = errors = 0
        for entry in entries:
            if entry.is_dir():
                continue
            name = entry.name
            if ".." in name or "/" in name or "\\" in name:
                log.warning("Skipping file with suspicious name: %s", name)
                continue
            try:
                mtime = entry.stat().st_mtime
            except OSError as exc:
                log.warning("Failed to stat session file %s: %s", name, exc)
                errors += 1
                continue
            if mtime >= cutoff:
                continue
            path = os.path.join(self.directory, name)
            abs_path = os.path.abspath(path)
            if not (abs_path + os.sep).startswith(abs_dir + os.sep):
                log.warning("Skipping file outside sessions directory: %s", abs_path)
                continue
            try:
                os.remove(path)
            except OSError as exc:
                log.warning("Failed to remove old session file %s: %s", path, exc)
                errors += 1
            else:
                removed += 1
        log.info("Session cleanup completed: removed %d files, %d errors", removed, errors)
        return removed