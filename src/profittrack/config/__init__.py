"""Configuration modules."""
from .settings import AppSettings, app_home, get_settings
from .manager import Config, ConfigManager, looks_like_api_key

__all__ = [
    "AppSettings",
    "app_home",
    "get_settings",
    "Config",
    "ConfigManager",
    "looks_like_api_key",
]
