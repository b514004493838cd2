import json
import os
import time
import uuid
from datetime import timedelta

import pytest

from vortludo.models import GameState
from vortludo.persistence import (
    InvalidSessionIDError,
    SessionStorage,
    is_valid_session_id,
    secure_session_path,
)

TIMEOUT = timedelta(hours=2)


@pytest.fixture
def storage(tmp_path):
    directory = tmp_path / "data" / "sessions"
    directory.mkdir(parents=True)
    return SessionStorage(directory, session_timeout=TIMEOUT)


def _write(storage, session_id, payload, age=None):
    path = os.path.join(storage.directory, session_id + ".json")
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(payload)
    if age is not None:
        stamp = time.time() - age.total_seconds()
        os.utime(path, (stamp, stamp))
    return path


def test_valid_session_ids():
    assert is_valid_session_id(str(uuid.uuid4()))
    assert is_valid_session_id("12345678-1234-5678-9ABC-123456789DEF")


@pytest.mark.parametrize(
    "session_id",
    [
        "",
        "short",
        "zzzzzzzz-zzzz-zzzz-zzzz-zzzz-zzzzzzzzzzzz",
        "12345678-1234-1234-1234-12345678901G",
    ],
)
def test_invalid_session_ids(session_id):
    assert not is_valid_session_id(session_id)


@pytest.mark.parametrize(
    "session_id", [str(uuid.uuid4()), "12345678-1234-5678-9ABC-123456789DEF"]
)
def test_secure_session_path_valid(session_id):
    path = secure_session_path(session_id)
    assert path == os.path.join("data", "sessions", session_id + ".json")
    assert os.path.abspath(path).startswith(os.path.abspath(os.path.join("data", "sessions")) + os.sep)


@pytest.mark.parametrize(
    "session_id",
    [
        "short",
        "",
        "../../../etc/passwd",
        "12345678-1234-5678-9ABC-123456789../",
        "/etc/passwd",
        "12345678-1234-5678-9ABC-123456789XYZ",
        "12345678/1234/5678/9ABC/123456789DEF",
        "12345678\\1234\\5678\\9ABC\\123456789DEF",
        "..\\..\\windows\\system32",
        "../session",
        "../../session",
        "/tmp/session",
        "..\\session",
        "../\\session",
        "session\x00.txt",
        "./session",
    ],
)
def test_secure_session_path_rejects(session_id):
    with pytest.raises(InvalidSessionIDError, match="invalid session ID format"):
        secure_session_path(session_id)


def test_load_valid_session(storage):
    session_id = str(uuid.uuid4())
    game = GameState.fresh("LOADED", 6, 5)
    game.last_access_time = None
    _write(storage, session_id, json.dumps(game.to_dict()))
    loaded = storage.load(session_id)
    assert loaded.session_word == "LOADED"
    assert loaded.last_access_time is not None


def test_load_old_file_removed(storage):
    session_id = str(uuid.uuid4())
    game = GameState.fresh("LOADED", 6, 5)
    path = _write(storage, session_id, json.dumps(game.to_dict()), TIMEOUT + timedelta(hours=1))
    with pytest.raises(FileNotFoundError):
        storage.load(session_id)
    assert not os.path.exists(path)


def test_load_corrupt_file_removed(storage):
    session_id = str(uuid.uuid4())
    path = _write(storage, session_id, "this is not json")
    with pytest.raises(FileNotFoundError):
        storage.load(session_id)
    assert not os.path.exists(path)


def test_load_invalid_structure_removed(storage):
    session_id = str(uuid.uuid4())
    game = GameState.fresh("BADSTRUCT", 5, 5)
    path = _write(storage, session_id, json.dumps(game.to_dict()))
    with pytest.raises(FileNotFoundError):
        storage.load(session_id)
    assert not os.path.exists(path)


@pytest.mark.parametrize(
    "session_id",
    ["short", "", "../../../etc/passwd", "/etc/passwd", "12345678-1234-5678-9ABC-123456789XYZ"],
)
def test_load_rejects_invalid_id(storage, session_id):
    with pytest.raises(FileNotFoundError):
        storage.load(session_id)


def test_load_missing_file(storage):
    with pytest.raises(FileNotFoundError):
        storage.load(str(uuid.uuid4()))


@pytest.mark.parametrize(
    "session_id", ["", "short", "../bad", "12345678-1234-1234-1234-12345678901G"]
)
def test_save_rejects_invalid_id(storage, session_id):
    with pytest.raises(InvalidSessionIDError):
        storage.save(session_id, GameState())


def test_save_and_load_round_trip(storage):
    session_id = "12345678-1234-5678-9abc-123456789abc"
    game = GameState.fresh("APPLE", 6, 5)
    assert storage.save(session_id, game) is True
    assert os.path.exists(storage.path_for(session_id))
    loaded = storage.load(session_id)
    assert loaded.session_word == "APPLE"
    assert len(loaded.guesses) == 6


def test_save_is_rate_limited(storage):
    session_id = str(uuid.uuid4())
    game = GameState.fresh("APPLE", 6, 5)
    assert storage.save(session_id, game) is True
    assert storage.save(session_id, game) is False


def test_remove(storage):
    session_id = str(uuid.uuid4())
    storage.save(session_id, GameState.fresh("APPLE", 6, 5))
    assert storage.remove(session_id) is True
    assert not os.path.exists(storage.path_for(session_id))
    assert storage.remove(session_id) is False
    assert storage.remove("short") is False


def test_cleanup_removes_old_files(storage):
    old = _write(storage, "oldsession", "{}", 2 * TIMEOUT)
    fresh = _write(storage, "freshsession", "{}")
    os.mkdir(os.path.join(storage.directory, "subdir"))
    assert storage.cleanup(TIMEOUT) == 1
    assert not os.path.exists(old)
    assert os.path.exists(fresh)


def test_cleanup_missing_directory(tmp_path):
    assert SessionStorage(tmp_path / "absent").cleanup(TIMEOUT) == 0