"""notectl: collaborative notes and issues for assessment projects."""

__version__ = "0.1.0"
