"""In-memory game sessions backed by optional file storage."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone

from .game import WordBank
from .models import MAX_GUESSES, WORD_LENGTH, GameState
from .persistence import SessionStorage, is_valid_session_id

log = logging.getLogger(__name__)


class SessionManager:
    """Keeps each player's game, loading and saving it through storage."""

    def __init__(
        self,
        bank: WordBank,
        storage: SessionStorage | None = None,
        *,
        production: bool = False,
        session_timeout: timedelta = timedelta(hours=2),
    ) -> None:
        self.bank = bank
        self.storage = storage
        self.production = production
        self.session_timeout = session_timeout
        self._games: dict[str, GameState] = {}
        self._lock = threading.RLock()

    def get(self, session_id: str) -> GameState:
        """Return the session's game, loading or creating it as needed."""
        with self._lock:
            game = self._games.get(session_id)
            if game is not None:
                game.touch()
                return game

        if not self.production:
            log.info("Development mode: creating fresh game for session: %s", session_id)
            return self.create(session_id)

        if self.storage is not None and len(session_id) > 10:
            try:
                loaded = self.storage.load(session_id)
            except OSError as exc:
                log.info("Failed to load game state for session %s: %s", session_id, exc)
            else:
                if loaded.session_word and len(loaded.guesses) == MAX_GUESSES:
                    with self._lock:
                        self._games[session_id] = loaded
                    return loaded
                log.info("Loaded game state for session %s was invalid", session_id)

        return self.create(session_id)

    def create(self, session_id: str) -> GameState:
        """Start a new game with a random word for the session."""
        entry = self.bank.random_entry()
        log.info("New game created for session %s with word: %s", session_id, entry.word)
        game = GameState.fresh(entry.word, MAX_GUESSES, WORD_LENGTH)
        with self._lock:
            self._games[session_id] = game
        return game

    def save(self, session_id: str, game: GameState) -> None:
        """Keep the game in memory and write it to storage when the ID allows."""
        with self._lock:
            self._games[session_id] = game
            game.touch()

        if self.storage is None:
            return
        if not is_valid_session_id(session_id):
            log.warning("Refused to save session to file: invalid ID %r", session_id)
            return
        try:
            self.storage.save(session_id, game)
        except OSError as exc:
            log.warning("Failed to save session %s to file: %s", session_id, exc)

    def discard(self, session_id: str) -> None:
        """Forget a session in memory and on disk."""
        with self._lock:
            self._games.pop(session_id, None)
        if self.storage is not None:
            self.storage.remove(session_id)

    def retry(self, session_id: str) -> GameState:
        """Restart the session's game with the same word."""
        with self._lock:
            game = self._games.get(session_id)
            if game is None:
                return self.create(session_id)
            fresh = GameState.fresh(game.session_word, MAX_GUESSES, WORD_LENGTH)
            self._games[session_id] = fresh
        if self.storage is not None:
            self.storage.remove(session_id)
        return fresh

    def purge_expired(self, now: datetime | None = None) -> int:
        """Drop games idle longer than the timeout; return how many went."""
        if now is None:
            now = datetime.now(timezone.utc)
        with self._lock:
            expired = [
                session_id
                for session_id, game in self._games.items()
                if game.last_access_time is None
                or now - game.last_access_time > self.session_timeout
            ]
            for session_id in expired:
                del self._games[session_id]
        if expired:
            log.info("In-memory session cleanup removed %d sessions.", len(expired))
        return len(expired)

    def count(self) -> int:
        with self._lock:
            return len(self._games)