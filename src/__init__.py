# src/__init__.py
"""docreview: staged AI review of product documents with streamed progress."""

from docreview.version import __version__

__all__ = ["__version__"]
