"""
streamchat Auth Module

Provider credential resolution.
"""

from .credentials import CredentialStore

__all__ = ["CredentialStore"]
