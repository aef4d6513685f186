"""steamdoc: block-level editing core for STEAM lesson plans."""

__version__ = "0.1.0"
