"""Word lists and the rules of a round."""

from __future__ import annotations

import json
import logging
import os
import secrets
from dataclasses import dataclass, field
from datetime import timedelta

from .models import MAX_GUESSES, WORD_LENGTH, GameState, GuessResult, LetterStatus, WordEntry

log = logging.getLogger(__name__)


class GameError(Exception):
    """A guess that cannot be played."""


class GameOverError(GameError):
    def __init__(self, message: str = "game is over") -> None:
        super().__init__(message)


class InvalidLengthError(GameError):
    def __init__(self, message: str = "word must be 5 letters") -> None:
        super().__init__(message)


class NoMoreGuessesError(GameError):
    def __init__(self, message: str = "no more guesses allowed") -> None:
        super().__init__(message)


def check_guess(guess: str, target: str) -> list[GuessResult]:
    """Score each letter of a guess against the target."""
    if len(guess) < WORD_LENGTH or len(target) < WORD_LENGTH:
        raise ValueError(f"guess and target need at least {WORD_LENGTH} letters")
    guess = guess[:WORD_LENGTH]
    remaining: list[str | None] = list(target[:WORD_LENGTH])
    result = [GuessResult() for _ in guess]

    for i, (letter, wanted) in enumerate(zip(guess, target)):
        if letter == wanted:
            result[i] = GuessResult(letter, LetterStatus.CORRECT)
            remaining[i] = None

    for i, letter in enumerate(guess):
        if result[i].status is not None:
            continue
        if letter in remaining:
            remaining[remaining.index(letter)] = None
            result[i] = GuessResult(letter, LetterStatus.PRESENT)
        else:
            result[i] = GuessResult(letter, LetterStatus.ABSENT)
    return result


def normalize_guess(text: str) -> str:
    return text.strip().upper()


def update_game_state(
    game: GameState,
    guess: str,
    target_word: str,
    result: list[GuessResult],
    is_invalid: bool,
) -> None:
    """Record a scored guess and settle win or loss."""
    if game.current_row >= MAX_GUESSES:
        return
    game.guesses[game.current_row] = list(result)
    game.guess_history.append(guess)
    game.touch()

    if not is_invalid and guess == target_word:
        game.won = True
        game.game_over = True
        log.info("Player won! Target word was: %s", target_word)
    else:
        game.current_row += 1
        if game.current_row >= MAX_GUESSES:
            game.game_over = True
            log.info("Player lost. Target word was: %s", target_word)

    if game.game_over:
        game.target_word = target_word


def get_target_word(game: GameState, bank: WordBank) -> str:
    """Return the session's word, drawing one if it has none."""
    if not game.session_word:
        game.session_word = bank.random_entry().word
        log.warning("Session word was empty, assigned random word: %s", game.session_word)
    return game.session_word


def plural(n: int) -> str:
    """The suffix a unit takes for a count of n."""
    if n == 1:
        return ""
    return "s"


def format_uptime(seconds: float | timedelta) -> str:
    if isinstance(seconds, timedelta):
        seconds = seconds.total_seconds()
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return (
            f"{hours} hour{plural(hours)}, {minutes} minute{plural(minutes)}, "
            f"{secs} second{plural(secs)}"
        )
    if minutes > 0:
        return f"{minutes} minute{plural(minutes)}, {secs} second{plural(secs)}"
    return f"{secs} second{plural(secs)}"


@dataclass
class WordBank:
    """Answer words with hints, and the words accepted as guesses."""

    entries: list[WordEntry] = field(default_factory=list)
    accepted: set[str] = field(default_factory=set)
    words: set[str] = field(init=False)

    def __post_init__(self) -> None:
        self.entries = list(self.entries)
        self.accepted = set(self.accepted)
        self.words = {entry.word for entry in self.entries}

    @classmethod
    def load(cls, words_path: str | os.PathLike, accepted_path: str | os.PathLike) -> WordBank:
        bank = cls()
        bank.load_words(words_path)
        bank.load_accepted_words(accepted_path)
        return bank

    def load_words(self, path: str | os.PathLike) -> None:
        """Load answer words, keeping only those of the right length."""
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError("word list must be an object")
        raw = data.get("words") or []
        if not isinstance(raw, list):
            raise ValueError("'words' must be a list")
        entries = []
        for item in raw:
            if not isinstance(item, dict):
                raise ValueError("word entries must be objects")
            word = item.get("word") or ""
            hint = item.get("hint") or ""
            if not isinstance(word, str) or not isinstance(hint, str):
                raise ValueError("word and hint must be strings")
            if len(word.encode("utf-8")) == WORD_LENGTH:
                entries.append(WordEntry(word, hint))
            else:
                log.info("Skipping word %r: not %d letters", word, WORD_LENGTH)
        self.entries = entries
        self.words = {entry.word for entry in entries}

    def load_accepted_words(self, path: str | os.PathLike) -> None:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        if data is None:
            data = []
        if not isinstance(data, list) or not all(isinstance(w, str) for w in data):
            raise ValueError("accepted words must be a list of strings")
        self.accepted = {word.upper() for word in data}

    def random_entry(self) -> WordEntry:
        if not self.entries:
            raise LookupError("word list is empty")
        return secrets.choice(self.entries)

    def hint_for(self, word: str) -> str:
        if not word:
            return ""
        for entry in self.entries:
            if entry.word == word:
                return entry.hint
        log.warning("Hint not found for word: %s", word)
        return ""

    def is_valid(self, word: str) -> bool:
        return word in self.words

    def is_accepted(self, word: str) -> bool:
        return word in self.accepted