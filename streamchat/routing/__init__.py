"""
streamchat Routing Module
"""

from .router import ModelRouter, PreparedCall

__all__ = ["ModelRouter", "PreparedCall"]
