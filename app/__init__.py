"""Vision Proxy - forwards uploaded images to a cloud vision service."""

__version__ = "0.1.0"
