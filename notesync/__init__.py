"""Top-level package for NoteSync."""

__author__ = "NoteSync Developers"
__version__ = "1.0.0"
