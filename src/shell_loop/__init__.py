"""UNIX's missing `loop` command: run a shell command repeatedly until told to stop."""

__version__ = "0.4.0"
