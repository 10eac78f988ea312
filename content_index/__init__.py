"""Content index generator for volume/chapter Markdown collections."""

__version__ = "0.1.0"
