"""Otsu binarization backend: upload an image, get back its black/white version."""

__version__ = "0.1.0"
