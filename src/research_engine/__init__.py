"""Research Engine API - research listings, student applications and project lifecycle."""

__version__ = "0.1.0"
