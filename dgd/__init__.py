"""dgd - desktop chat backend."""

__version__ = "0.2.0"
__logo__ = "◆"
