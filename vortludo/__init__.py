"""A five-letter word guessing game served over HTTP with Flask."""

__version__ = "0.1.0"