"""vibecut: composition timeline model and mutation engine for a page-based video editor."""

__version__ = "0.1.0"
