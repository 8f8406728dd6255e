"""Configuration module for the security extension."""
from .settings import SecuritySettings, load_settings

__all__ = ["SecuritySettings", "load_settings"]
