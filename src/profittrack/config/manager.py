"""Configuration manager for per-install user settings."""
import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from .settings import app_home, get_settings
from ..utils.exceptions import ConfigError

API_KEY_ENV = "GEMINI_API_KEY"
API_KEY_PLACEHOLDER = "your-gemini-api-key"
MIN_API_KEY_LENGTH = 20


@dataclass
class Config:
    """User configuration."""
    gemini_api_key: str
    user_id: str = "local"
    plan: str = "trial"
    log_level: str = "INFO"
    database_path: Optional[str] = None
    sessions_dir: Optional[str] = None


def looks_like_api_key(api_key: Optional[str]) -> bool:
    """False for a missing, placeholder or truncated credential."""
    if not api_key or not api_key.strip():
        return False
    if api_key.strip() == API_KEY_PLACEHOLDER:
        return False
    return len(api_key.strip()) >= MIN_API_KEY_LENGTH


class ConfigManager:
    """Manages user configuration stored as JSON under the app home."""

    def __init__(self):
        self.config_dir = app_home()
        self.config_file = self.config_dir / get_settings().config_file
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load_config(self) -> Optional[Config]:
        """Load configuration from file, applying the API key environment override."""
        env_key = os.getenv(API_KEY_ENV, "").strip()

        if not self.config_file.exists():
            return Config(gemini_api_key=env_key) if env_key else None

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
            config = Config(**config_dict)
        except (OSError, ValueError, TypeError) as e:
            raise ConfigError(f"Failed to load configuration: {e}")

        if env_key:
            config.gemini_api_key = env_key
        return config

    def save_config(self, config: Config) -> None:
        """Save configuration to file."""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(asdict(config), f, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save configuration: {e}")

    def validate_config(self, config: Config) -> tuple[bool, str]:
        """Validate configuration values."""
        if not config.gemini_api_key:
            return False, "Gemini API key is required"

        if not looks_like_api_key(config.gemini_api_key):
            return False, "Gemini API key looks like a placeholder or is too short"

        if not config.user_id:
            return False, "User ID is required"

        if config.plan not in ("trial", "basic", "standard", "ultra", "expired"):
            return False, f"Unknown plan: {config.plan}"

        return True, "Configuration is valid"

    def database_path(self, config: Config) -> Path:
        """Location of the local record database."""
        if config.database_path:
            return Path(config.database_path).expanduser()
        return self.config_dir / get_settings().database_file

    def sessions_dir(self, config: Config) -> Path:
        """Location of persisted chat sessions."""
        if config.sessions_dir:
            return Path(config.sessions_dir).expanduser()
        return self.config_dir / get_settings().sessions_dir
