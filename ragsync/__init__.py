"""Connector sync and retrieval pipeline for a RAG assistant."""

from .__version__ import __version__

__all__ = ["__version__"]
