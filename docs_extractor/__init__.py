"""Docs extractor: background documentation extraction served over HTTP."""

__version__ = "0.1.0"
