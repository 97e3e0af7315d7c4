"""Natural-language LBO modeling: assumption resolution and returns engine."""

__version__ = "0.1.0"
