"""termkit - terminal widget toolkit with a plugin host."""

__version__ = "1.0.0"
