"""
Utility helpers.
"""

from vedit.utils.fonts import resolve_font

__all__ = ["resolve_font"]
