"""Live, queryable index of a mirrored markdown tree with room-based update notifications."""

__version__ = "0.1.0"
