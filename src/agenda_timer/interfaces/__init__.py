"""Data contract between agenda-timer and its consumers."""
