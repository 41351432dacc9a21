"""
Command line interface for the Thingpedia device adapters.
"""

from .main import app

__all__ = ["app"]
