"""OpenID Connect discovery, redirect callback handling and browser launching."""

__version__ = "0.1.0"
__all__ = ["browser", "callback", "config", "version"]