# dircol/utils/__init__.py
"""
Shared constants for dircol.
"""

from . import constants


__all__ = ["constants"]
