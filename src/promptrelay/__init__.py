"""promptrelay — timed prompt-relay game that grows an HTML mini-game turn by turn."""

__version__ = "0.3.0"
