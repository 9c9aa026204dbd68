"""
Test suite for configuration loading.
Tests .env and config.yaml parsing, environment overrides and validation.
"""

import os

import pytest
import yaml
from pathlib import Path
from dotenv import dotenv_values

from cipherhunt.config import (
    CONTRACT_ADDRESS_ENV,
    DEFAULT_CONFIG_PATH,
    LOG_LEVEL_ENV,
    GameConfig,
    load_config,
)
from cipherhunt.core.errors import ConfigError


DEPLOYED = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
OVERRIDE = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"


@pytest.fixture
def clean_env():
    """Remove CipherHunt variables for the test and drop anything it set."""
    saved = {name: os.environ.pop(name) for name in (CONTRACT_ADDRESS_ENV, LOG_LEVEL_ENV) if name in os.environ}
    yield
    for name in (CONTRACT_ADDRESS_ENV, LOG_LEVEL_ENV):
        os.environ.pop(name, None)
    os.environ.update(saved)


def _write_config(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return path


class TestConfigurationFiles:
    """Test configuration file structure and parsing."""

    @pytest.fixture(autouse=True)
    def setup(self):
        """Set up test environment."""
        self.project_root = Path(__file__).parent.parent
        self.env_example_path = self.project_root / ".env.example"
        self.config_yaml_path = self.project_root / "config.yaml"

    def test_env_example_has_required_keys(self):
        """Test that .env.example lists every supported override."""
        values = dotenv_values(self.env_example_path)

        assert CONTRACT_ADDRESS_ENV in values
        assert LOG_LEVEL_ENV in values

    def test_config_yaml_parses_correctly(self):
        """Test that config.yaml can be parsed by PyYAML."""
        with open(self.config_yaml_path, 'r') as f:
            config = yaml.safe_load(f)

        assert isinstance(config, dict), "config.yaml should parse to a dictionary"
        for key in ['contract_address', 'event_id_prefix', 'status', 'map', 'players', 'logging']:
            assert key in config, f"Required key '{key}' not found in config.yaml"

    def test_default_path_points_at_project_config(self):
        assert DEFAULT_CONFIG_PATH.resolve() == self.config_yaml_path.resolve()

    def test_project_config_is_valid(self, clean_env, tmp_path):
        config = load_config(self.config_yaml_path, env_file=tmp_path / "missing.env")

        assert config.contract_address == DEPLOYED
        assert config.event_id_prefix == "event-"
        assert config.status.success_dismiss_sec == 2
        assert config.status.error_dismiss_sec == 3
        assert config.map.zoom == 15


class TestLoadConfig:
    """Test load_config() behavior."""

    def test_minimal_config_uses_defaults(self, clean_env, tmp_path):
        path = _write_config(tmp_path, f'contract_address: "{DEPLOYED}"\n')

        config = load_config(path)

        assert config.event_category == "Game Event"
        assert config.handler_timeout_sec == 120.0
        assert config.history_size == 200
        assert config.players.active_window_sec == 86400
        assert config.logging.level == "INFO"

    def test_missing_file(self, clean_env, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, clean_env, tmp_path):
        path = _write_config(tmp_path, "")

        with pytest.raises(ConfigError, match="empty"):
            load_config(path)

    def test_non_mapping(self, clean_env, tmp_path):
        path = _write_config(tmp_path, "- one\n- two\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_invalid_yaml(self, clean_env, tmp_path):
        path = _write_config(tmp_path, "contract_address: [unclosed\n")

        with pytest.raises(ConfigError, match="parse"):
            load_config(path)

    def test_missing_contract_address(self, clean_env, tmp_path):
        path = _write_config(tmp_path, 'event_id_prefix: "event-"\n')

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_non_positive_delay_rejected(self, clean_env, tmp_path):
        path = _write_config(tmp_path, f'contract_address: "{DEPLOYED}"\nstatus:\n  error_dismiss_sec: 0\n')

        with pytest.raises(ConfigError):
            load_config(path)

    def test_environment_overrides(self, clean_env, tmp_path):
        path = _write_config(tmp_path, f'contract_address: "{DEPLOYED}"\n')
        os.environ[CONTRACT_ADDRESS_ENV] = OVERRIDE
        os.environ[LOG_LEVEL_ENV] = "debug"

        config = load_config(path)

        assert config.contract_address == OVERRIDE
        assert config.logging.level == "DEBUG"

    def test_env_file_next_to_config(self, clean_env, tmp_path):
        path = _write_config(tmp_path, f'contract_address: "{DEPLOYED}"\n')
        (tmp_path / ".env").write_text(f"{CONTRACT_ADDRESS_ENV}={OVERRIDE}\n")

        config = load_config(path)

        assert config.contract_address == OVERRIDE

    def test_existing_environment_wins_over_env_file(self, clean_env, tmp_path):
        path = _write_config(tmp_path, f'contract_address: "{DEPLOYED}"\n')
        (tmp_path / ".env").write_text(f"{LOG_LEVEL_ENV}=ERROR\n")
        os.environ[LOG_LEVEL_ENV] = "WARNING"

        config = load_config(path)

        assert config.logging.level == "WARNING"

    def test_game_config_direct(self):
        config = GameConfig(contract_address=DEPLOYED, logging={"level": "warning", "file": None})

        assert config.logging.level == "WARNING"
        assert config.logging.file is None
