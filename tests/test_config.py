"""
Tests for the configuration module.
"""

import tempfile
from pathlib import Path

import pytest
import yaml

from envault.config import ConfigurationError, EnvaultConfig


class TestEnvaultConfig:
    """Tests for the EnvaultConfig class."""

    def test_empty_config(self):
        """Test the default values."""
        config = EnvaultConfig()

        assert config.dotenv == ".env"
        assert config.vault_path == ""
        assert config.verbose is False

    def test_load_nonexistent_file(self):
        """Test loading a nonexistent file returns the defaults."""
        config = EnvaultConfig.load("/nonexistent/path/config.yaml")

        assert config == EnvaultConfig()

    def test_load_valid_config(self, temp_dir):
        """Test loading a valid configuration file."""
        config_path = temp_dir / ".envault.yaml"
        config_path.write_text(
            """
dotenv: .env.local
vault_path: kvv2/my-app/dev/env
verbose: true
"""
        )

        config = EnvaultConfig.load(str(config_path))

        assert config.dotenv == ".env.local"
        assert config.vault_path == "kvv2/my-app/dev/env"
        assert config.verbose is True

    def test_null_dotenv_disables_file(self, temp_dir):
        """Test that an explicit null dotenv becomes an empty path."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text("dotenv:\n")

        config = EnvaultConfig.load(config_path)

        assert config.dotenv == ""

    def test_finds_config_in_working_directory(self, temp_dir, monkeypatch):
        """Test the search for .envault.yaml."""
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HOME", str(temp_dir / "home"))
        (temp_dir / ".envault.yaml").write_text("vault_path: kvv2/found\n")

        config = EnvaultConfig.load()

        assert config.vault_path == "kvv2/found"

    def test_load_invalid_yaml(self, temp_dir):
        """Test that invalid YAML raises an error."""
        config_path = temp_dir / "invalid.yaml"
        config_path.write_text("invalid: yaml: content: [[[")

        with pytest.raises(ConfigurationError):
            EnvaultConfig.load(str(config_path))

    def test_load_empty_yaml(self, temp_dir):
        """Test loading an empty YAML file."""
        config_path = temp_dir / "empty.yaml"
        config_path.write_text("")

        config = EnvaultConfig.load(str(config_path))

        assert config == EnvaultConfig()

    def test_non_mapping_document(self, temp_dir):
        """Test that a list document is rejected."""
        config_path = temp_dir / "list.yaml"
        config_path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            EnvaultConfig.load(str(config_path))

    def test_unknown_option(self, temp_dir):
        """Test that unknown keys are rejected."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text("strict: true\n")

        with pytest.raises(ConfigurationError) as exc_info:
            EnvaultConfig.load(str(config_path))

        assert "strict" in str(exc_info.value)

    def test_wrong_type(self, temp_dir):
        """Test that wrongly typed values are rejected."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text("verbose: 2\n")

        with pytest.raises(ConfigurationError):
            EnvaultConfig.load(str(config_path))

    def test_bool_option_types(self, temp_dir):
        """Test that verbose takes booleans only and the paths take strings only."""
        config_path = temp_dir / "config.yaml"

        config_path.write_text("verbose: false\n")
        assert EnvaultConfig.load(config_path).verbose is False

        config_path.write_text("verbose: \"true\"\n")
        with pytest.raises(ConfigurationError):
            EnvaultConfig.load(config_path)

        config_path.write_text("vault_path: true\n")
        with pytest.raises(ConfigurationError):
            EnvaultConfig.load(config_path)

    def test_invalid_yaml_keeps_cause(self, temp_dir):
        """Test that the YAML error is chained."""
        config_path = temp_dir / "invalid.yaml"
        config_path.write_text("verbose: [[[")

        with pytest.raises(ConfigurationError) as exc_info:
            EnvaultConfig.load(config_path)

        assert isinstance(exc_info.value.__cause__, yaml.YAMLError)

    def test_unreadable_config(self, temp_dir):
        """Test that a config path that cannot be read is reported."""
        with pytest.raises(ConfigurationError) as exc_info:
            EnvaultConfig.load(temp_dir)

        assert isinstance(exc_info.value.__cause__, OSError)

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)
