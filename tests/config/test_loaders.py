"""
Unit tests for config.loaders module.

Tests cover:
- Config file lookup (explicit path, HERMES_CONFIG, working directory, user config dir)
- YAML loading with environment variable expansion
- Error handling (missing files, invalid YAML)
"""

import pytest
import yaml

from hermes_voice.config.loaders import (
    candidate_config_paths,
    find_config_file,
    load_yaml_with_env_expansion,
    user_config_dir,
)


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    """No HERMES_CONFIG, an empty working directory and a private XDG dir."""
    monkeypatch.delenv("HERMES_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return tmp_path


class TestFindConfigFile:
    """Tests for config file lookup."""

    def test_explicit_path_relative_to_cwd(self, clean_env):
        """A relative --config path is taken from the working directory."""
        (clean_env / "work" / "mine.yaml").write_text("voice: {}\n")

        assert find_config_file("mine.yaml") == (clean_env / "work" / "mine.yaml").resolve()

    def test_explicit_missing_path_does_not_fall_back(self, clean_env):
        (clean_env / "work" / "config").mkdir()
        (clean_env / "work" / "config" / "hermes.yaml").write_text("voice: {}\n")

        assert find_config_file("absent.yaml") is None

    def test_env_var(self, clean_env, monkeypatch):
        target = clean_env / "elsewhere.yaml"
        target.write_text("voice: {}\n")
        monkeypatch.setenv("HERMES_CONFIG", str(target))

        assert find_config_file() == target.resolve()

    def test_working_directory_before_user_dir(self, clean_env):
        local = clean_env / "work" / "config" / "hermes.yaml"
        local.parent.mkdir()
        local.write_text("voice: {}\n")
        user = user_config_dir() / "hermes.yaml"
        user.parent.mkdir(parents=True)
        user.write_text("voice: {}\n")

        assert find_config_file().resolve() == local.resolve()

    def test_user_config_dir(self, clean_env):
        user = clean_env / "xdg" / "hermes-voice" / "hermes.yaml"
        user.parent.mkdir(parents=True)
        user.write_text("voice: {}\n")

        assert find_config_file() == user

    def test_nothing_found(self, clean_env):
        assert find_config_file() is None
        assert len(candidate_config_paths()) == 2


class TestLoadYamlWithEnvExpansion:
    """Tests for load_yaml_with_env_expansion function."""

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        """Should expand ${VAR} and $VAR references before parsing."""
        monkeypatch.setenv("TEST_VAULT", "/data/vault")
        monkeypatch.setenv("TEST_VOICE", "Puck")
        config_file = tmp_path / "test.yaml"
        config_file.write_text("vault:\n  root: ${TEST_VAULT}\nvoice:\n  voice_name: $TEST_VOICE\n")

        result = load_yaml_with_env_expansion(str(config_file))

        assert result["vault"]["root"] == "/data/vault"
        assert result["voice"]["voice_name"] == "Puck"

    def test_missing_env_var_left_unchanged(self, tmp_path):
        """os.path.expandvars leaves undefined variables untouched."""
        config_file = tmp_path / "test.yaml"
        config_file.write_text("missing: ${HERMES_TEST_NONEXISTENT_VAR}\n")

        result = load_yaml_with_env_expansion(str(config_file))

        assert result["missing"] == "${HERMES_TEST_NONEXISTENT_VAR}"

    def test_empty_file_returns_empty_dict(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_yaml_with_env_expansion(str(config_file)) == {}

    def test_file_not_found_raises_error(self):
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_yaml_with_env_expansion("/nonexistent/path/hermes.yaml")

    def test_non_mapping_rejected(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            load_yaml_with_env_expansion(str(config_file))

    def test_invalid_yaml_raises_error(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("key: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_yaml_with_env_expansion(str(config_file))
