"""API routes."""

from . import admin, auth, health, tts, usage

__all__ = ["admin", "auth", "health", "tts", "usage"]
