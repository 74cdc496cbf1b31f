"""sdfscript: a small language for signed-distance-field scenes."""

__version__ = "0.1.0"
