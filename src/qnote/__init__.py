"""qnote: a personal note manager with a scriptable CLI and a terminal browser."""

__version__ = "0.3.0"
