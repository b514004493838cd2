"""Settings read from the environment."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import timedelta
from fractions import Fraction

log = logging.getLogger(__name__)

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?(ns|us|µs|μs|ms|s|m|h)")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "1h30m" or "300ms"."""
    rest = text
    sign = 1
    if rest and rest[0] in "+-":
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    total = Fraction(0)
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if match is None or not (match.group(1) or match.group(2)):
            raise ValueError(f"invalid duration {text!r}")
        whole, frac, unit = match.groups()
        value = Fraction(int(whole or "0"))
        if frac:
            value += Fraction(int(frac), 10 ** len(frac))
        total += value * _UNITS[unit]
        pos = match.end()
    return timedelta(microseconds=int(sign * total / 1000))


def get_env_duration(key: str, fallback: timedelta) -> timedelta:
    value = os.environ.get(key, "")
    if not value:
        return fallback
    try:
        return parse_duration(value)
    except ValueError as exc:
        log.warning("Invalid duration for %s: %s, using default %s", key, exc, fallback)
        return fallback


def get_env_int(key: str, fallback: int) -> int:
    value = os.environ.get(key, "")
    if not value:
        return fallback
    match = _LEADING_INT.match(value)
    if match is None:
        log.warning("Invalid int for %s: %r, using default %d", key, value, fallback)
        return fallback
    return int(match.group(1))


@dataclass(frozen=True)
class Settings:
    """Server configuration."""

    session_timeout: timedelta = timedelta(hours=2)
    cookie_max_age: timedelta = timedelta(hours=2)
    static_cache_age: timedelta = timedelta(minutes=5)
    rate_limit_rps: int = 5
    rate_limit_burst: int = 10
    production: bool = False
    port: str = "8080"

    @classmethod
    def from_env(cls) -> Settings:
        defaults = cls()
        return cls(
            session_timeout=get_env_duration("SESSION_TIMEOUT", defaults.session_timeout),
            cookie_max_age=get_env_duration("COOKIE_MAX_AGE", defaults.cookie_max_age),
            static_cache_age=get_env_duration("STATIC_CACHE_AGE", defaults.static_cache_age),
            rate_limit_rps=get_env_int("RATE_LIMIT_RPS", defaults.rate_limit_rps),
            rate_limit_burst=get_env_int("RATE_LIMIT_BURST", defaults.rate_limit_burst),
            production=os.environ.get("GIN_MODE") == "release"
            or os.environ.get("ENV") == "production",
            port=os.environ.get("PORT") or defaults.port,
        )