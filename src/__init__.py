# src/__init__.py — v1
"""ctxvector: hybrid dense/lexical search over Chroma collections of code chunks."""

from ctxvector.version import __version__

__all__ = ["__version__"]
