"""hn-cli: cached, concurrent Hacker News listings for the terminal."""

__version__ = "0.1.0"
