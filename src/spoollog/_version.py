"""Version information for spoollog."""

__version__ = "0.3.0"
VERSION = __version__
