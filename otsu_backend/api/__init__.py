"""HTTP surface of the binarization service."""

from .app import create_app


__all__ = ["create_app"]
