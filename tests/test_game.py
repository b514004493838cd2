import json
from datetime import timedelta

import pytest

from vortludo.game import (
    WordBank,
    check_guess,
    format_uptime,
    get_target_word,
    normalize_guess,
    plural,
    update_game_state,
)
from vortludo.models import GameState, GuessResult, LetterStatus, WordEntry

C, P, A = LetterStatus.CORRECT, LetterStatus.PRESENT, LetterStatus.ABSENT


@pytest.mark.parametrize(
    "guess, expected",
    [
        ("APPLE", [("A", C), ("P", C), ("P", C), ("L", C), ("E", C)]),
        ("ALLEY", [("A", C), ("L", P), ("L", A), ("E", P), ("Y", A)]),
        ("ZZZZZ", [("Z", A)] * 5),
    ],
)
def test_check_guess(guess, expected):
    got = check_guess(guess, "APPLE")
    assert got == [GuessResult(letter, status) for letter, status in expected]


def test_check_guess_empty_guess_fails():
    with pytest.raises(ValueError):
        check_guess("", "APPLE")


@pytest.mark.parametrize(
    "text, expected",
    [("apple", "APPLE"), ("  banjo ", "BANJO"), ("PeAch", "PEACH"), ("", "")],
)
def test_normalize_guess(text, expected):
    assert normalize_guess(text) == expected


@pytest.mark.parametrize(
    "word, expected", [("APPLE", True), ("BANJO", True), ("PEACH", False), ("", False)]
)
def test_is_valid(word, expected):
    bank = WordBank([WordEntry("APPLE"), WordEntry("BANJO")])
    assert bank.is_valid(word) is expected


@pytest.mark.parametrize(
    "word, expected", [("APPLE", True), ("BANJO", True), ("PEACH", False), ("", False)]
)
def test_is_accepted(word, expected):
    bank = WordBank(accepted={"APPLE", "BANJO"})
    assert bank.is_accepted(word) is expected


@pytest.mark.parametrize(
    "word, expected",
    [("APPLE", "A fruit"), ("TABLE", "Furniture"), ("GRAPE", ""), ("", "")],
)
def test_hint_for(word, expected):
    bank = WordBank([WordEntry("APPLE", "A fruit"), WordEntry("TABLE", "Furniture")])
    assert bank.hint_for(word) == expected


def _fresh(word="HELLO"):
    return GameState.fresh(word, 6, 5)


def test_update_game_state_win():
    game = _fresh()
    update_game_state(game, "HELLO", "HELLO", check_guess("HELLO", "HELLO"), False)
    assert game.won and game.game_over
    assert game.target_word == "HELLO"
    assert game.current_row == 0


def test_update_game_state_lose():
    game = _fresh()
    for _ in range(6):
        update_game_state(game, "WORLD", "HELLO", check_guess("WORLD", "HELLO"), False)
    assert game.game_over and not game.won
    assert game.target_word == "HELLO"
    assert game.guess_history == ["WORLD"] * 6
    update_game_state(game, "WORLD", "HELLO", check_guess("WORLD", "HELLO"), False)
    assert len(game.guess_history) == 6


def test_update_game_state_invalid_guess():
    game = _fresh()
    update_game_state(game, "XXXXX", "HELLO", check_guess("XXXXX", "HELLO"), True)
    assert not game.won and not game.game_over
    assert game.current_row == 1
    assert game.target_word == ""


def test_invalid_guess_matching_target_does_not_win():
    game = _fresh()
    update_game_state(game, "HELLO", "HELLO", check_guess("HELLO", "HELLO"), True)
    assert not game.won
    assert game.current_row == 1


def test_get_target_word_assigns_missing():
    bank = WordBank([WordEntry("ALPHA")])
    game = GameState()
    assert get_target_word(game, bank) == "ALPHA"
    assert game.session_word == "ALPHA"


def test_get_target_word_keeps_existing():
    game = GameState(session_word="HELLO")
    assert get_target_word(game, WordBank([WordEntry("ALPHA")])) == "HELLO"


def test_plural():
    assert plural(1) == ""
    assert plural(2) == "s"
    assert plural(0) == "s"


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0 seconds"),
        (1, "1 second"),
        (61, "1 minute, 1 second"),
        (125.9, "2 minutes, 5 seconds"),
        (3600, "1 hour, 0 minutes, 0 seconds"),
        (timedelta(hours=2, minutes=1, seconds=2), "2 hours, 1 minute, 2 seconds"),
    ],
)
def test_format_uptime(seconds, expected):
    assert format_uptime(seconds) == expected


def test_load_filters_and_uppercases(tmp_path):
    words = tmp_path / "words.json"
    accepted = tmp_path / "accepted.json"
    words.write_text(
        json.dumps(
            {
                "words": [
                    {"word": "APPLE", "hint": "A fruit"},
                    {"word": "TOOLONG", "hint": "x"},
                    {"word": "TABLE", "hint": "Furniture"},
                ]
            }
        ),
        encoding="utf-8",
    )
    accepted.write_text(json.dumps(["apple", "Table"]), encoding="utf-8")
    bank = WordBank.load(words, accepted)
    assert [e.word for e in bank.entries] == ["APPLE", "TABLE"]
    assert bank.words == {"APPLE", "TABLE"}
    assert bank.accepted == {"APPLE", "TABLE"}


def test_load_rejects_bad_json(tmp_path):
    path = tmp_path / "words.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        WordBank().load_words(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        WordBank().load_accepted_words(tmp_path / "missing.json")


def test_random_entry_from_list():
    entries = [WordEntry("APPLE"), WordEntry("TABLE"), WordEntry("PEACH")]
    bank = WordBank(entries)
    draws = {bank.random_entry().word for _ in range(30)}
    assert draws <= {"APPLE", "TABLE", "PEACH"}
    assert draws


def test_random_entry_empty_fails():
    with pytest.raises(LookupError):
        WordBank().random_entry()