"""Tests for configuration manager."""
import os
import unittest
import tempfile
import shutil
from pathlib import Path
from unittest import mock

from profittrack.config import AppSettings, ConfigManager, Config
from profittrack.utils.exceptions import ConfigError

VALID_KEY = "AIzaSyTEST-0123456789abcdef"


class TestConfigManager(unittest.TestCase):
    """Test ConfigManager functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.test_dir = Path(tempfile.mkdtemp())
        env = mock.patch.dict(os.environ, {"PROFITTRACK_HOME": str(self.test_dir)})
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop("GEMINI_API_KEY", None)
        self.config_manager = ConfigManager()

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_save_and_load_config(self):
        """Test saving and loading configuration."""
        config = Config(gemini_api_key=VALID_KEY, user_id="fleet42", plan="standard")

        self.config_manager.save_config(config)
        loaded_config = self.config_manager.load_config()

        self.assertEqual(self.config_manager.config_file, self.test_dir / "config.json")
        self.assertEqual(loaded_config.gemini_api_key, config.gemini_api_key)
        self.assertEqual(loaded_config.user_id, "fleet42")
        self.assertEqual(loaded_config.plan, "standard")

    def test_missing_file(self):
        """Test no file and no environment key gives no config."""
        self.assertIsNone(self.config_manager.load_config())

    def test_environment_key_overrides_file(self):
        """Test GEMINI_API_KEY wins over the stored key."""
        self.config_manager.save_config(Config(gemini_api_key="stored-key-0123456789"))

        with mock.patch.dict(os.environ, {"GEMINI_API_KEY": VALID_KEY}):
            loaded_config = self.config_manager.load_config()

        self.assertEqual(loaded_config.gemini_api_key, VALID_KEY)

    def test_corrupt_file(self):
        """Test unreadable JSON raises ConfigError."""
        self.config_manager.config_file.write_text("{broken")

        with self.assertRaises(ConfigError):
            self.config_manager.load_config()

    def test_validate_config_valid(self):
        """Test validation with valid config."""
        is_valid, message = self.config_manager.validate_config(Config(gemini_api_key=VALID_KEY))
        self.assertTrue(is_valid)

    def test_validate_config_missing_key(self):
        """Test validation with missing API key."""
        is_valid, message = self.config_manager.validate_config(Config(gemini_api_key=""))
        self.assertFalse(is_valid)
        self.assertIn("API key", message)

    def test_validate_config_placeholder_key(self):
        """Test the template placeholder is refused."""
        is_valid, message = self.config_manager.validate_config(Config(gemini_api_key="your-gemini-api-key"))
        self.assertFalse(is_valid)

    def test_validate_config_unknown_plan(self):
        """Test plans outside the plan table."""
        is_valid, message = self.config_manager.validate_config(Config(gemini_api_key=VALID_KEY, plan="gold"))
        self.assertFalse(is_valid)
        self.assertIn("gold", message)

    def test_default_paths(self):
        """Test database and session locations under the app home."""
        config = Config(gemini_api_key=VALID_KEY)

        self.assertEqual(self.config_manager.database_path(config), self.test_dir / "profittrack.db")
        self.assertEqual(self.config_manager.sessions_dir(config), self.test_dir / "sessions")


class TestAppSettings(unittest.TestCase):
    """Test packaged settings."""

    def test_packaged_defaults(self):
        """Test values from config.yaml."""
        settings = AppSettings.load()

        self.assertEqual(settings.chat_max_retries, 2)
        self.assertEqual(settings.chat_retry_delay_seconds, 2.0)
        self.assertEqual(settings.chat_history_size, 5)
        self.assertEqual(settings.chat_currency_symbol, "₹")
        self.assertEqual(settings.llm_max_output_tokens, 1024)


if __name__ == "__main__":
    unittest.main()
