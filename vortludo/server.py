"""The web application: routes, rate limiting, caching and compression."""

from __future__ import annotations

import argparse
import functools
import gzip
import logging
import os
import signal
import threading
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from flask import Flask, g, jsonify, redirect, render_template, request

from .config import Settings
from .game import (
    WordBank,
    check_guess,
    format_uptime,
    get_target_word,
    normalize_guess,
    update_game_state,
)
from .models import MAX_GUESSES, WORD_LENGTH
from .persistence import SessionStorage
from .sessions import SessionManager

log = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session_id"
TRUSTED_PROXIES = frozenset({"127.0.0.1"})
EXCLUDED_EXTENSIONS = frozenset({".svg", ".ico", ".png", ".jpg", ".jpeg", ".gif"})
EXCLUDED_PATH_PREFIXES = ("/static/fonts",)
_NO_CACHE = "no-store, no-cache, must-revalidate"


class TokenBucket:
    """Allows `rate` events per second with bursts up to `burst`."""

    def __init__(
        self, rate: float, burst: int, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last = clock()
        self._lock = threading.Lock()

    def allow(self) -> bool:
        with self._lock:
            now = self._clock()
            elapsed = max(now - self._last, 0.0)
            self._last = now
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False


class RateLimiters:
    """One token bucket per client key."""

    def __init__(
        self, rps: int, burst: int, clock: Callable[[], float] = time.monotonic
    ) -> None:
        if rps <= 0:
            raise ValueError("rate limit must be a positive number of requests per second")
        self.rps = rps
        self.burst = burst
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> TokenBucket:
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(self.rps, self.burst, self._clock)
                self._buckets[key] = bucket
            return bucket


def _cache_control(path: str, production: bool, static_max_age: timedelta) -> str:
    if production and path.startswith("/static/"):
        return f"public, max-age={int(static_max_age.total_seconds())}"
    return _NO_CACHE


def cache_control_value(path: str, production: bool) -> str:
    """Cache-Control header for a path, using the default static cache age."""
    return _cache_control(path, production, Settings().static_cache_age)


def should_compress(path: str) -> bool:
    """Whether a response for this path may be gzip-encoded."""
    if os.path.splitext(path)[1] in EXCLUDED_EXTENSIONS:
        return False
    return not path.startswith(EXCLUDED_PATH_PREFIXES)


def dir_exists(path: str | os.PathLike) -> bool:
    return os.path.isdir(path)


def _has_prefix(text: str, prefix: str) -> bool:
    return text.startswith(prefix)


def _client_ip() -> str:
    remote = request.remote_addr or ""
    if remote in TRUSTED_PROXIES:
        forwarded = request.headers.get("X-Forwarded-For", "")
        for candidate in reversed([part.strip() for part in forwarded.split(",")]):
            if candidate and candidate not in TRUSTED_PROXIES:
                return candidate
    return remote


def create_app(
    settings: Settings | None = None,
    bank: WordBank | None = None,
    storage: SessionStorage | None = None,
    template_folder: str | os.PathLike = "templates",
    static_folder: str | os.PathLike = "static",
) -> Flask:
    """Build the application around a word bank and session storage."""
    settings = settings or Settings()
    bank = bank if bank is not None else WordBank()
    if storage is None:
        storage = SessionStorage(session_timeout=settings.session_timeout)
    manager = SessionManager(
        bank,
        storage,
        production=settings.production,
        session_timeout=settings.session_timeout,
    )
    limiters = RateLimiters(settings.rate_limit_rps, settings.rate_limit_burst)
    started = time.monotonic()
    env_name = "production" if settings.production else "development"

    app = Flask(
        __name__,
        template_folder=os.path.abspath(template_folder),
        static_folder=os.path.abspath(static_folder),
        static_url_path="/static",
    )
    app.jinja_env.globals["hasPrefix"] = _has_prefix
    app.extensions["vortludo.sessions"] = manager
    app.extensions["vortludo.bank"] = bank

    def current_session_id() -> str:
        pending = g.get("session_cookie")
        if pending:
            return pending
        session_id = request.cookies.get(SESSION_COOKIE_NAME, "")
        if len(session_id) < 10:
            session_id = str(uuid.uuid4())
            g.session_cookie = session_id
            log.info("Created new session: %s", session_id)
        return session_id

    def rate_limited(view):
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            if not limiters.get(_client_ip()).allow():
                response = jsonify({"error": "too many requests"})
                response.status_code = 429
                if request.headers.get("HX-Request") == "true":
                    response.headers["HX-Trigger"] = "rate-limit-exceeded"
                return response
            return view(*args, **kwargs)

        return wrapper

    def board(game, **extra):
        return render_template("game-board.html", game=game, **extra)

    def home():
        game = manager.get(current_session_id())
        return render_template(
            "index.html",
            title="Vortludo - A Libre Wordle Clone",
            message="Guess the 5-letter word!",
            hint=bank.hint_for(game.session_word),
            game=game,
        )

    def new_game():
        session_id = current_session_id()
        log.info("Creating new game for session: %s", session_id)
        manager.discard(session_id)
        if request.args.get("reset") == "1":
            fresh_id = str(uuid.uuid4())
            g.session_cookie = fresh_id
            log.info("Created new session ID: %s", fresh_id)
            manager.create(fresh_id)
        else:
            manager.create(session_id)
        return redirect("/", code=303)

    def guess():
        session_id = current_session_id()
        game = manager.get(session_id)
        if game.game_over:
            log.info("Session attempted guess on completed game")
            return board(game)

        word = normalize_guess(request.form.get("guess", ""))
        if not bank.is_accepted(word):
            return board(game, notAccepted=True)

        if len(word) != WORD_LENGTH:
            log.info("Session %s submitted invalid length guess: %s", session_id, word)
            return board(game)
        if game.current_row >= MAX_GUESSES:
            log.info("Session %s attempted guess after max guesses", session_id)
            return board(game)

        target = get_target_word(game, bank)
        result = check_guess(word, target)
        update_game_state(game, word, target, result, not bank.is_valid(word))
        manager.save(session_id, game)
        return board(game)

    def game_state():
        game = manager.get(current_session_id())
        return board(game, hint=bank.hint_for(game.session_word))

    def retry_word():
        manager.retry(current_session_id())
        return redirect("/", code=303)

    def health():
        return jsonify(
            {
                "status": "ok",
                "env": env_name,
                "words_loaded": len(bank.entries),
                "accepted_words": len(bank.accepted),
                "sessions_count": manager.count(),
                "uptime": format_uptime(time.monotonic() - started),
                "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            }
        )

    app.add_url_rule("/", "home", home, methods=["GET"])
    app.add_url_rule("/new-game", "new_game", new_game, methods=["GET"])
    app.add_url_rule("/new-game", "new_game_post", rate_limited(new_game), methods=["POST"])
    app.add_url_rule("/guess", "guess", rate_limited(guess), methods=["POST"])
    app.add_url_rule("/game-state", "game_state", game_state, methods=["GET"])
    app.add_url_rule("/retry-word", "retry_word", rate_limited(retry_word), methods=["POST"])
    app.add_url_rule("/health", "health", health, methods=["GET"])

    @app.after_request
    def finish(response):
        pending = g.get("session_cookie")
        if pending:
            response.set_cookie(
                SESSION_COOKIE_NAME,
                pending,
                max_age=int(settings.cookie_max_age.total_seconds()),
                path="/",
                secure=False,
                httponly=True,
                samesite="Strict",
            )

        path = request.path
        response.headers["Cache-Control"] = _cache_control(
            path, settings.production, settings.static_cache_age
        )
        if settings.production and path.startswith("/static/"):
            response.vary.add("Accept-Encoding")

        if (
            should_compress(path)
            and "gzip" in request.headers.get("Accept-Encoding", "")
            and "Content-Encoding" not in response.headers
            and response.status_code not in (204, 304)
        ):
            response.direct_passthrough = False
            response.set_data(gzip.compress(response.get_data()))
            response.headers["Content-Encoding"] = "gzip"
            response.vary.add("Accept-Encoding")
        return response

    return app


def _cleanup_loop(
    manager: SessionManager,
    storage: SessionStorage,
    timeout: timedelta,
    stop: threading.Event,
    interval: float = 3600.0,
) -> None:
    log.info("Session cleanup scheduler started")
    while not stop.wait(interval):
        try:
            storage.cleanup(timeout)
        except OSError as exc:
            log.warning("Failed to cleanup old session files: %s", exc)
        manager.purge_expired()


def main(argv: list[str] | None = None) -> int:
    """Load the word lists and serve the game until interrupted."""
    argparse.ArgumentParser(prog="vortludo", description="Serve the word game.").parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    from dotenv import load_dotenv

    load_dotenv()
    settings = Settings.from_env()
    log.info("Starting Vortludo in %s mode", "production" if settings.production else "development")

    try:
        bank = WordBank.load(
            os.path.join("data", "words.json"), os.path.join("data", "accepted_words.json")
        )
    except (OSError, ValueError) as exc:
        log.error("Failed to load words: %s", exc)
        return 1
    log.info("Loaded %d words and %d accepted words", len(bank.entries), len(bank.accepted))

    storage = SessionStorage(session_timeout=settings.session_timeout)
    try:
        storage.cleanup(settings.session_timeout)
    except OSError as exc:
        log.warning("Failed to cleanup old sessions on startup: %s", exc)

    if settings.production and dir_exists("dist"):
        log.info("Serving assets from dist/ directory")
        templates, static = os.path.join("dist", "templates"), os.path.join("dist", "static")
    else:
        log.info("Serving development assets from source directories")
        templates, static = "templates", "static"

    app = create_app(settings, bank, storage, templates, static)
    stop = threading.Event()
    threading.Thread(
        target=_cleanup_loop,
        args=(app.extensions["vortludo.sessions"], storage, settings.session_timeout, stop),
        daemon=True,
    ).start()

    # SIGTERM shuts down the same way as Ctrl-C.
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    log.info("Server starting on http://localhost:%s", settings.port)
    try:
        app.run(host="0.0.0.0", port=int(settings.port), threaded=True)
    except KeyboardInterrupt:
        log.info("Shutdown signal received, shutting down server")
    finally:
        stop.set()
    log.info("Server shutdown complete")
    return 0