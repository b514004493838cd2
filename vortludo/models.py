"""Game state data types and their JSON form."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

MAX_GUESSES = 6
WORD_LENGTH = 5

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_ZERO_TIME_TEXT = "0001-01-01T00:00:00Z"
_TIME_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})?$"
)


class LetterStatus(str, Enum):
    """Evaluation of a single guessed letter."""

    CORRECT = "correct"
    PRESENT = "present"
    ABSENT = "absent"
    INVALID = "invalid"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(moment: datetime | None) -> str:
    if moment is None:
        return _ZERO_TIME_TEXT
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("lastAccessTime must be a string")
    match = _TIME_RE.match(value)
    if match is None:
        raise ValueError(f"invalid timestamp {value!r}")
    base, fraction, zone = match.groups()
    text = base
    if fraction:
        text += "." + fraction[:6].ljust(6, "0")
    if zone and zone != "Z":
        text += zone
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if moment == _ZERO_TIME:
        return None
    return moment


def _get(data: dict, key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default
    if kind is int and isinstance(value, bool):
        raise ValueError(f"field {key!r} has the wrong type")
    if not isinstance(value, kind):
        raise ValueError(f"field {key!r} has the wrong type")
    return value


@dataclass
class GuessResult:
    """One letter of a guess and how it scored."""

    letter: str = ""
    status: LetterStatus | None = None

    def to_dict(self) -> dict[str, str]:
        return {
            "letter": self.letter,
            "status": self.status.value if self.status is not None else "",
        }

    @classmethod
    def from_dict(cls, data: Any) -> GuessResult:
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("guess result must be an object")
        letter = _get(data, "letter", str, "")
        status_text = _get(data, "status", str, "")
        status = LetterStatus(status_text) if status_text else None
        return cls(letter=letter, status=status)


@dataclass
class WordEntry:
    """A word that can be the answer, with its hint."""

    word: str
    hint: str = ""


@dataclass
class GameState:
    """A player's game session."""

    guesses: list[list[GuessResult]] = field(default_factory=list)
    current_row: int = 0
    game_over: bool = False
    won: bool = False
    target_word: str = ""
    session_word: str = ""
    guess_history: list[str] = field(default_factory=list)
    last_access_time: datetime | None = None

    @classmethod
    def fresh(cls, session_word: str, max_guesses: int, word_length: int) -> GameState:
        """Start a game with empty rows for the given answer."""
        return cls(
            guesses=[
                [GuessResult() for _ in range(word_length)] for _ in range(max_guesses)
            ],
            session_word=session_word,
            last_access_time=_now(),
        )

    def touch(self) -> None:
        """Record that the session was just used."""
        self.last_access_time = _now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "guesses": [[cell.to_dict() for cell in row] for row in self.guesses],
            "currentRow": self.current_row,
            "gameOver": self.game_over,
            "won": self.won,
            "targetWord": self.target_word,
            "sessionWord": self.session_word,
            "guessHistory": list(self.guess_history),
            "lastAccessTime": _format_time(self.last_access_time),
        }

    @classmethod
    def from_dict(cls, data: Any) -> GameState:
        """Build a game from its JSON form; raise ValueError if malformed."""
        if not isinstance(data, dict):
            raise ValueError("game state must be an object")
        rows = _get(data, "guesses", list, [])
        guesses = []
        for row in rows:
            if row is None:
                guesses.append([])
            elif isinstance(row, list):
                guesses.append([GuessResult.from_dict(cell) for cell in row])
            else:
                raise ValueError("each guess row must be a list")
        history = _get(data, "guessHistory", list, [])
        if not all(isinstance(word, str) for word in history):
            raise ValueError("guessHistory must hold strings")
        return cls(
            guesses=guesses,
            current_row=_get(data, "currentRow", int, 0),
            game_over=_get(data, "gameOver", bool, False),
            won=_get(data, "won", bool, False),
            target_word=_get(data, "targetWord", str, ""),
            session_word=_get(data, "sessionWord", str, ""),
            guess_history=list(history),
            last_access_time=_parse_time(data.get("lastAccessTime")),
        )