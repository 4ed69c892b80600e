"""Audiobook TTS gateway API."""
