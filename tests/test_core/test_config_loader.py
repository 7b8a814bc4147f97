"""
Tests for the configuration loader module.

Tests working directory resolution, config file parsing, defaults,
and validation errors.
"""

import json
import sys
import pytest
from pathlib import Path

from refman.core.config_loader import (
    Config,
    PathsConfig,
    SearchConfig,
    default_work_directory,
    resolve_work_directory,
    load_config,
    INDEX_FILENAME,
    WORKDIR_ENV_VAR,
)
from refman.core.exceptions import ConfigurationError


def write_config(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestPathsConfig:
    """Tests for PathsConfig dataclass."""

    def test_paths_config_creation(self, temp_dir: Path):
        """Test creating PathsConfig with valid paths."""
        config = PathsConfig(
            work_directory=temp_dir,
            index_path=temp_dir / "index.db",
            logs_directory=temp_dir / "logs"
        )

        assert config.work_directory == temp_dir
        assert config.index_path == temp_dir / "index.db"
        assert config.logs_directory == temp_dir / "logs"

    def test_index_path_has_fixed_name(self, temp_dir: Path):
        """Test that the store lives at a fixed name in the working directory."""
        config = Config.for_work_directory(temp_dir)

        assert config.paths.index_path == temp_dir / INDEX_FILENAME
        assert config.paths.logs_directory is None


class TestWorkDirectory:
    """Tests for working directory resolution."""

    def test_env_var_overrides_default(self, temp_dir: Path):
        """Test that REFMAN_WORKDIR takes precedence."""
        environ = {WORKDIR_ENV_VAR: str(temp_dir / "custom")}

        assert resolve_work_directory(environ) == temp_dir / "custom"

    def test_empty_env_var_is_ignored(self, monkeypatch):
        """Test that an empty override falls back to the default."""
        monkeypatch.setattr(sys, "platform", "linux")
        environ = {WORKDIR_ENV_VAR: "", "XDG_DATA_HOME": "/data"}

        assert resolve_work_directory(environ) == Path("/data/refman")

    def test_xdg_data_home(self, monkeypatch):
        """Test that XDG_DATA_HOME is honoured on POSIX systems."""
        monkeypatch.setattr(sys, "platform", "linux")

        assert default_work_directory({"XDG_DATA_HOME": "/xdg"}) == Path("/xdg/refman")

    def test_posix_default(self, monkeypatch):
        """Test the ~/.local/share fallback."""
        monkeypatch.setattr(sys, "platform", "linux")

        assert default_work_directory({}) == Path.home() / ".local" / "share" / "refman"

    def test_windows_default(self, monkeypatch):
        """Test that APPDATA is used on Windows."""
        monkeypatch.setattr(sys, "platform", "win32")

        result = default_work_directory({"APPDATA": "C:/Users/me/AppData/Roaming"})

        assert result == Path("C:/Users/me/AppData/Roaming") / "refman"

    def test_windows_without_appdata_raises(self, monkeypatch):
        """Test that a missing APPDATA is a configuration error."""
        monkeypatch.setattr(sys, "platform", "win32")

        with pytest.raises(ConfigurationError):
            default_work_directory({})


class TestConfigFromFile:
    """Tests for loading config from file."""

    def test_load_valid_config(self, temp_dir: Path):
        """Test loading a configuration file with overrides."""
        config_path = write_config(temp_dir / "config.json", {
            "paths": {"logs_directory": "logs"},
            "extraction": {"primary_backend": "pdfplumber", "fallback_backend": "pypdf"},
            "search": {"default_limit": 25, "highlight_style": "plain",
                       "field_weights": {"title": 3.0}},
            "logging": {"level": "DEBUG"}
        })

        config = Config.from_file(config_path, temp_dir)

        assert config.extraction.primary_backend == "pdfplumber"
        assert config.search.default_limit == 25
        assert config.search.highlight_style == "plain"
        assert config.search.weight_for("title") == 3.0
        assert config.search.weight_for("author") == 1.5
        assert config.logging.level == "DEBUG"

    def test_relative_logs_directory_resolved_against_workdir(self, temp_dir: Path):
        """Test that relative paths are resolved to absolute paths."""
        config_path = write_config(temp_dir / "config.json", {"paths": {"logs_directory": "logs"}})

        config = Config.from_file(config_path, temp_dir)

        assert config.paths.logs_directory == temp_dir / "logs"
        assert config.paths.logs_directory.is_absolute()

    def test_load_missing_config_raises_error(self, temp_dir: Path):
        """Test that loading a non-existent config raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_file(temp_dir / "nonexistent.json", temp_dir)

        assert "not found" in exc_info.value.message.lower()

    def test_load_invalid_json_raises_error(self, temp_dir: Path):
        """Test that invalid JSON raises ConfigurationError."""
        config_path = temp_dir / "config.json"
        config_path.write_text("{ invalid json }")

        with pytest.raises(ConfigurationError) as exc_info:
            Config.from_file(config_path, temp_dir)

        assert "invalid json" in exc_info.value.message.lower()

    def test_non_object_json_raises_error(self, temp_dir: Path):
        """Test that a JSON list is rejected."""
        config_path = write_config(temp_dir / "config.json", [1, 2, 3])

        with pytest.raises(ConfigurationError):
            Config.from_file(config_path, temp_dir)

    def test_config_default_values(self, temp_dir: Path):
        """Test that missing config values get defaults."""
        config_path = write_config(temp_dir / "config.json", {"paths": {}, "search": {}})

        config = Config.from_file(config_path, temp_dir)

        assert config.extraction.primary_backend == "pypdf"
        assert config.extraction.fallback_backend == "pdfplumber"
        assert config.search.default_limit == 10
        assert config.search.max_expansions == 1024
        assert config.logging.level == "WARNING"


class TestValidation:
    """Tests for out-of-range settings."""

    @pytest.mark.parametrize("data", [
        {"extraction": {"primary_backend": "pypdf2"}},
        {"extraction": {"fallback_backend": "ocr"}},
        {"search": {"highlight_style": "blink"}},
        {"search": {"default_limit": 0}},
        {"search": {"max_expansions": -5}},
        {"search": {"bm25_k1": 0}},
        {"search": {"bm25_b": 1.5}},
        {"search": {"field_weights": {"title": "heavy"}}},
        {"extraction": {"max_file_size_mb": "big"}},
        {"search": []},
        {"paths": "somewhere"},
        {"logging": 3},
        {"search": {"field_weights": [1]}},
        {"paths": {"logs_directory": 7}},
        {"search": {"default_limit": True}},
        {"search": {"max_limit": 2.5}},
        {"search": {"bm25_k1": True}},
        {"search": {"bm25_b": "half"}},
        {"search": {"field_weights": {"title": False}}},
        {"logging": {"level": "CHATTY"}},
        {"logging": {"level": 10}},
        {"logging": {"backup_count": -1}},
    ])
    def test_invalid_values_raise(self, temp_dir: Path, data):
        """Test that invalid settings raise ConfigurationError."""
        config_path = write_config(temp_dir / "config.json", data)

        with pytest.raises(ConfigurationError):
            Config.from_file(config_path, temp_dir)

    def test_null_fallback_disables_it(self, temp_dir: Path):
        """Test that the fallback backend can be switched off."""
        config_path = write_config(temp_dir / "config.json", {"extraction": {"fallback_backend": None}})

        config = Config.from_file(config_path, temp_dir)

        assert config.extraction.fallback_backend is None


class TestSearchConfig:
    """Tests for SearchConfig helpers."""

    def test_unlisted_field_weight_is_one(self):
        """Test the default weight of fields without an override."""
        assert SearchConfig().weight_for("journal") == 1.0

    def test_default_weights_favour_title(self):
        """Test the built-in field weights."""
        config = SearchConfig()

        assert config.weight_for("title") > config.weight_for("text")


class TestLoadConfig:
    """Tests for the load_config entry point."""

    def test_creates_work_directory(self, temp_dir: Path):
        """Test that an absent working directory is created."""
        work = temp_dir / "a" / "b"

        config = load_config(work_directory=work)

        assert work.is_dir()
        assert config.paths.index_path == work / INDEX_FILENAME

    def test_uses_environment(self, temp_dir: Path):
        """Test that the working directory comes from REFMAN_WORKDIR."""
        work = temp_dir / "from_env"

        config = load_config(environ={WORKDIR_ENV_VAR: str(work)})

        assert config.paths.work_directory == work

    def test_reads_config_json_in_work_directory(self, temp_dir: Path):
        """Test that config.json in the working directory is picked up."""
        write_config(temp_dir / "config.json", {"search": {"default_limit": 3}})

        config = load_config(work_directory=temp_dir)

        assert config.search.default_limit == 3

    def test_explicit_config_path_must_exist(self, temp_dir: Path):
        """Test that a missing --config file is an error."""
        with pytest.raises(ConfigurationError):
            load_config(work_directory=temp_dir, config_path=temp_dir / "missing.json")

    def test_unwritable_work_directory_raises(self, temp_dir: Path):
        """Test that a working directory blocked by a file is an error."""
        blocker = temp_dir / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(ConfigurationError):
            load_config(work_directory=blocker / "refman")
