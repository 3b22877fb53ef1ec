"""
Shared utilities for the market snapshot pipeline.
"""

from . import constants

__all__ = ["constants"]
