"""Application settings loader from YAML configuration."""
import os
import yaml
from pathlib import Path
from dataclasses import dataclass


def app_home() -> Path:
    """Directory holding user config, logs, sessions and the local database."""
    return Path(os.getenv("PROFITTRACK_HOME", "~/.profittrack")).expanduser()


@dataclass
class AppSettings:
    """Application-wide settings loaded from config.yaml."""

    # App info
    app_name: str
    app_version: str

    # Logging
    log_level: str
    log_max_file_size_mb: int
    log_backup_count: int

    # LLM
    llm_model_name: str
    llm_temperature: float
    llm_top_k: int
    llm_top_p: float
    llm_max_output_tokens: int

    # Chat
    chat_max_retries: int
    chat_retry_delay_seconds: float
    chat_history_size: int
    chat_currency_symbol: str
    chat_default_plan: str

    # Paths (relative to app_home())
    config_file: str
    logs_dir: str
    log_file: str
    sessions_dir: str
    database_file: str

    @classmethod
    def load(cls, config_path: Path = None) -> "AppSettings":
        """Load settings from YAML file."""
        if config_path is None:
            config_path = Path(__file__).resolve().parent.parent / "config.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        return cls(
            app_name=config["app"]["name"],
            app_version=config["app"]["version"],
            log_level=config["logging"]["level"],
            log_max_file_size_mb=config["logging"]["max_file_size_mb"],
            log_backup_count=config["logging"]["backup_count"],
            llm_model_name=config["llm"]["model_name"],
            llm_temperature=float(config["llm"]["temperature"]),
            llm_top_k=config["llm"]["top_k"],
            llm_top_p=float(config["llm"]["top_p"]),
            llm_max_output_tokens=config["llm"]["max_output_tokens"],
            chat_max_retries=config["chat"]["max_retries"],
            chat_retry_delay_seconds=float(config["chat"]["retry_delay_seconds"]),
            chat_history_size=config["chat"]["history_size"],
            chat_currency_symbol=config["chat"]["currency_symbol"],
            chat_default_plan=config["chat"]["default_plan"],
            config_file=config["paths"]["config_file"],
            logs_dir=config["paths"]["logs_dir"],
            log_file=config["paths"]["log_file"],
            sessions_dir=config["paths"]["sessions_dir"],
            database_file=config["paths"]["database_file"],
        )


# Global settings instance
_settings: AppSettings = None


def get_settings() -> AppSettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings.load()
    return _settings
