"""Unit tests for the app_config module."""
import os
from unittest.mock import patch, mock_open, MagicMock

import pytest
import yaml

from locsync.app_config import AppConfig, load_app_config
from locsync.errors import ConfigError
from locsync.locale_catalog import DEFAULT_SUPPORTED_LOCALES


def _write_config(directory, data):
    path = directory / "config.yaml"
    path.write_text(yaml.dump(data), encoding="utf-8")
    return str(path)


class TestAppConfig:
    """Test cases for the AppConfig dataclass."""

    def test_app_config_creation(self):
        config = AppConfig(
            config_dir="/test/root",
            resources_subdir="src/Localization",
            override_config_path="/test/root/config.json",
            output_dir="/test/out",
            resource_extension=".resx",
            supported_locales=["en", "de"],
            dry_run=False,
            handoff_file_prefix="StringResources",
        )

        assert config.config_dir == "/test/root"
        assert config.provider_settings == {}
        assert config.log_level == "INFO"
        assert config.log_file_path is None


class TestLoadAppConfig:
    """Test cases for the load_app_config function."""

    def test_load_config_with_valid_yaml_file(self, in_tmp_cwd):
        config_path = _write_config(in_tmp_cwd, {
            "resources_subdir": "src/DDTech.Localization",
            "resource_extension": "properties",
            "supported_locales": [
                {"code": "en", "name": "English"},
                {"code": "de", "name": "German"},
                "es-419",
            ],
            "override_config_path": "overrides/config.json",
            "dry_run": True,
            "provider": {"name": "openai", "model_name": "gpt-4o-mini"},
            "logging": {"log_level": "warning", "log_to_console": False},
        })

        with patch("locsync.app_config.setup_logger") as mock_logger:
            mock_logger.return_value = MagicMock()
            config = load_app_config(config_path)

        assert config.resources_subdir == "src/DDTech.Localization"
        assert config.resource_extension == ".properties"
        assert config.supported_locales == ["en", "de", "es-419"]
        assert config.override_config_path == os.path.join(str(in_tmp_cwd), "overrides", "config.json")
        assert config.dry_run is True
        assert config.provider_settings == {"name": "openai", "model_name": "gpt-4o-mini"}
        mock_logger.assert_called_once_with("WARNING", None, False)

    def test_load_config_with_missing_file_uses_defaults(self, in_tmp_cwd, capsys):
        with patch("locsync.app_config.setup_logger") as mock_logger:
            mock_logger.return_value = MagicMock()
            config = load_app_config(str(in_tmp_cwd / "absent.yaml"))

        assert config.supported_locales == DEFAULT_SUPPORTED_LOCALES
        assert config.resource_extension == ".resx"
        assert config.resources_subdir == "."
        assert config.dry_run is False
        assert config.handoff_file_prefix == "StringResources"
        assert "not found" in capsys.readouterr().err

    def test_config_file_from_environment(self, in_tmp_cwd):
        config_path = _write_config(in_tmp_cwd, {"handoff_file_prefix": "RPlusStringResources"})

        with patch("locsync.app_config.setup_logger"):
            with patch.dict(os.environ, {"LOCSYNC_CONFIG_FILE": config_path}):
                config = load_app_config()

        assert config.handoff_file_prefix == "RPlusStringResources"

    def test_verbose_forces_debug(self, in_tmp_cwd):
        config_path = _write_config(in_tmp_cwd, {"logging": {"log_level": "ERROR"}})

        with patch("locsync.app_config.setup_logger") as mock_logger:
            config = load_app_config(config_path, verbose=True)

        assert config.log_level == "DEBUG"
        assert mock_logger.call_args.args[0] == "DEBUG"

    @patch("locsync.app_config.load_dotenv")
    def test_invalid_yaml_is_a_config_error(self, _mock_load_dotenv):
        with patch("builtins.open", mock_open(read_data="supported_locales: [en, de")):
            with patch("os.path.exists", return_value=True):
                with pytest.raises(ConfigError, match="Invalid YAML"):
                    load_app_config("/custom/config.yaml")

    @patch("locsync.app_config.load_dotenv")
    def test_non_mapping_yaml_is_a_config_error(self, _mock_load_dotenv):
        with patch("builtins.open", mock_open(read_data=yaml.dump(["en", "de"]))):
            with patch("os.path.exists", return_value=True):
                with pytest.raises(ConfigError, match="YAML dictionary"):
                    load_app_config("/custom/config.yaml")

    @pytest.mark.parametrize("locales", [[{"name": "German"}], [""], [42]])
    def test_invalid_locale_entries(self, in_tmp_cwd, locales):
        config_path = _write_config(in_tmp_cwd, {"supported_locales": locales})

        with patch("locsync.app_config.setup_logger"):
            with pytest.raises(ConfigError, match="supported_locales"):
                load_app_config(config_path)

    def test_dotenv_file_is_loaded(self, in_tmp_cwd):
        config_path = _write_config(in_tmp_cwd, {})
        (in_tmp_cwd / ".env").write_text("TRANSLATOR_API_KEY=from-dotenv\n", encoding="utf-8")

        with patch("locsync.app_config.setup_logger"):
            with patch("locsync.app_config.load_dotenv") as mock_load_dotenv:
                load_app_config(config_path)

        mock_load_dotenv.assert_called_once_with(os.path.join(str(in_tmp_cwd), ".env"))

    def test_absolute_override_path_is_kept(self, in_tmp_cwd):
        absolute = os.path.join(str(in_tmp_cwd), "elsewhere", "config.json")
        config_path = _write_config(in_tmp_cwd, {"override_config_path": absolute})

        with patch("locsync.app_config.setup_logger"):
            config = load_app_config(config_path)

        assert config.override_config_path == absolute
