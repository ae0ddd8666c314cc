"""
HTTP routers for the VaaniAI API.
"""

from . import admin, auth, guest, profile, sessions

__all__ = ["admin", "auth", "guest", "profile", "sessions"]
