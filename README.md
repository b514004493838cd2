# vortludo

A small web server for a five-letter word guessing game. Each player gets a
session cookie and a secret word and has six tries to find it. After each
guess every letter is marked `correct`, `present` (in the word, wrong place)
or `absent`. A hint is shown for the secret word.

## Installing

    pip install .

For running the tests:

    pip install ".[test]"
    pytest

## Running

The server reads its word lists from the working directory:

- `data/words.json` — an object `{"words": [{"word": "APPLE", "hint": "A fruit"}, ...]}`.
  Only entries whose word is five letters long are kept; these are the
  possible secret words.
- `data/accepted_words.json` — a JSON array of words that may be guessed.
  They are upper-cased on loading, so case does not matter.

Start it with:

    vortludo

It listens on all interfaces, on port 8080 unless `PORT` says otherwise, and
stops on Ctrl-C or SIGTERM. If a word list cannot be read, the command logs
the error and exits with status 1.

## What the package does not include

The package holds no page templates or static assets. The server renders
`index.html` and `game-board.html` from a `templates/` directory and serves
files under `/static` from a `static/` directory, both in the working
directory; you must supply them. In production mode, if a `dist/` directory
exists, `dist/templates` and `dist/static` are used instead.

Templates receive `game` (a `GameState`), and depending on the page `title`,
`message`, `hint` and `notAccepted`. A `hasPrefix(text, prefix)` function is
available in templates.

## Configuration

Settings come from the environment; a `.env` file in the working directory is
read too.

| Variable           | Default | Meaning                                       |
|--------------------|---------|-----------------------------------------------|
| `PORT`             | `8080`  | Port to listen on                             |
| `GIN_MODE`         |         | `release` switches on production mode         |
| `ENV`              |         | `production` switches on production mode      |
| `SESSION_TIMEOUT`  | `2h`    | How long an idle session is kept              |
| `COOKIE_MAX_AGE`   | `2h`    | Lifetime of the session cookie                |
| `STATIC_CACHE_AGE` | `5m`    | Cache lifetime of static files in production  |
| `RATE_LIMIT_RPS`   | `5`     | Requests per second allowed per client        |
| `RATE_LIMIT_BURST` | `10`    | Burst size allowed per client                 |

Durations use forms such as `1h30m`, `90s` or `250ms`. Values that cannot be
read fall back to the default. `RATE_LIMIT_RPS` must be positive.

## Sessions

Games are kept in memory by session. After each guess the game is also
written to `data/sessions/<session id>.json` (at most once a second per
session, and only for UUID-shaped session IDs). In production mode a session
not found in memory is loaded from its file, so a game survives a restart;
in development mode a fresh game is started instead. Session files older than
the session timeout are removed at start-up and every hour after, when idle
in-memory games are dropped as well.

## Endpoints

- `GET /` — the game page.
- `GET /new-game`, `POST /new-game` — start a new word; `?reset=1` also issues
  a fresh session cookie. Redirects (303) to `/`.
- `POST /guess` — form field `guess`; returns the updated board. A word not
  in the accepted list is not counted and the board is rendered with
  `notAccepted` set.
- `GET /game-state` — the current board, with the hint.
- `POST /retry-word` — restart with the same secret word. Redirects (303) to `/`.
- `GET /health` — JSON with `status`, `env`, `words_loaded`,
  `accepted_words`, `sessions_count`, `uptime` and a UTC `timestamp`.

The `POST` routes are rate limited per client address and answer
`429 Too Many Requests` with `{"error": "too many requests"}` when the limit
is exceeded; for requests carrying `HX-Request: true` the response also has
`HX-Trigger: rate-limit-exceeded`.

Responses are gzip-compressed when the client accepts it, except for `.svg`,
`.ico`, `.png`, `.jpg`, `.jpeg` and `.gif` files and paths under
`/static/fonts`. Static files are cacheable in production mode; everything
else is sent with `no-store, no-cache, must-revalidate`.

## Using the pieces

The game logic can be used without the server:

    from vortludo.game import check_guess

    for cell in check_guess("ALLEY", "APPLE"):
        print(cell.letter, cell.status.value)

Other building blocks:

- `vortludo.game.WordBank` — loads the word lists (`WordBank.load(words_path,
  accepted_path)`) and answers `is_valid`, `is_accepted`, `hint_for` and
  `random_entry`.
- `vortludo.game.update_game_state` — records a scored guess and settles a
  win or loss.
- `vortludo.models.GameState` — a game, with `to_dict` / `from_dict` for its
  JSON form.
- `vortludo.persistence.SessionStorage` — session files with expiry and
  cleanup.
- `vortludo.sessions.SessionManager` — in-memory sessions backed by storage.
- `vortludo.server.create_app(settings, bank, storage, template_folder,
  static_folder)` — builds the Flask application.
- `vortludo.config.Settings.from_env()` — reads the settings above.