"""Tests for configuration loading and validation."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
import unittest
from unittest.mock import patch

from event_pool.config import (
    CONFIG_ENV_VAR,
    CONFIG_PATH,
    DEFAULT_CONFIG,
    default_config_path,
    load_config,
)


class ConfigTests(unittest.TestCase):
    """Validate config merge and fallback behavior."""

    def test_missing_config_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config = load_config(config_path=Path(temp_dir) / "config.toml")
            self.assertEqual(config, DEFAULT_CONFIG)
            self.assertEqual(config["pool"]["handler_errors"], "raise")
            self.assertEqual(config["pool"]["reclaimed_label"], "[reclaimed]")

    def test_partial_config_overrides_selected_values(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[pool]
handler_errors = " LOG "

[logging]
level = "debug"
                """.strip(),
                encoding="utf-8",
            )
            config = load_config(config_path=config_path)
            self.assertEqual(config["pool"]["handler_errors"], "log")
            self.assertEqual(config["logging"]["level"], "DEBUG")
            self.assertEqual(
                config["pool"]["reclaimed_label"],
                DEFAULT_CONFIG["pool"]["reclaimed_label"],
            )
            self.assertEqual(
                config["logging"]["structured"], DEFAULT_CONFIG["logging"]["structured"]
            )

    def test_invalid_values_fallback_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[pool]
handler_errors = "swallow"
reclaimed_label = ""

[logging]
level = "LOUD"
                """.strip(),
                encoding="utf-8",
            )
            with self.assertLogs("event_pool.config", level="WARNING"):
                config = load_config(config_path=config_path)
            self.assertEqual(config, DEFAULT_CONFIG)

    def test_unparseable_toml_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text("[pool\nhandler_errors = ", encoding="utf-8")
            with self.assertLogs("event_pool.config", level="WARNING"):
                config = load_config(config_path=config_path)
            self.assertEqual(config, DEFAULT_CONFIG)

    def test_env_var_overrides_default_path(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "custom.toml"
            config_path.write_text(
                '[pool]\nreclaimed_label = "gone"\n', encoding="utf-8"
            )
            with patch.dict(os.environ, {CONFIG_ENV_VAR: str(config_path)}):
                self.assertEqual(default_config_path(), config_path)
                config = load_config()
            self.assertEqual(config["pool"]["reclaimed_label"], "gone")

    def test_default_path_without_env_var(self) -> None:
        with patch.dict(os.environ, {CONFIG_ENV_VAR: ""}):
            self.assertEqual(default_config_path(), CONFIG_PATH)


if __name__ == "__main__":
    unittest.main()
