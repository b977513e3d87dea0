"""Configuration for the moderation service."""

from .settings import ModerationSettings, get_settings, reset_settings

__all__ = ["ModerationSettings", "get_settings", "reset_settings"]
