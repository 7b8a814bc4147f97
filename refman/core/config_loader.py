"""
Configuration loader for refman.

Resolves the working directory (REFMAN_WORKDIR or a platform default),
reads an optional config.json from it, and returns a typed Config.
The Config is built once at startup and handed to every component.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from .exceptions import ConfigurationError


WORKDIR_ENV_VAR = "REFMAN_WORKDIR"
INDEX_FILENAME = "index.db"
CONFIG_FILENAME = "config.json"

KNOWN_BACKENDS = ("pypdf", "pdfplumber")
HIGHLIGHT_STYLES = ("ansi", "html", "plain")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_FIELD_WEIGHTS = {
    "text": 1.0,
    "title": 2.0,
    "author": 1.5,
}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class PathsConfig:
    """Configuration for file system paths."""
    work_directory: Path
    index_path: Path
    logs_directory: Optional[Path] = None


@dataclass
class ExtractionConfig:
    """Configuration for PDF extraction settings."""
    primary_backend: str = "pypdf"
    fallback_backend: Optional[str] = "pdfplumber"
    max_file_size_mb: int = 500


@dataclass
class SearchConfig:
    """Configuration for query evaluation and result rendering."""
    default_limit: int = 10
    max_limit: int = 500
    snippet_length: int = 200
    highlight_style: str = "ansi"
    field_weights: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_FIELD_WEIGHTS)
    )
    bm25_k1: float = 1.2
    bm25_b: float = 0.75
    max_expansions: int = 1024

    def weight_for(self, field_name: str) -> float:
        """Return the scoring weight for a field, 1.0 when unlisted."""
        return self.field_weights.get(field_name, 1.0)


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""
    level: str = "WARNING"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """
    Main configuration container holding all config sections.

    Built by load_config() and passed explicitly to the store,
    the query engine, and the ingestion pipeline.
    """
    paths: PathsConfig
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def for_work_directory(cls, work_directory: Path) -> "Config":
        """Build a default configuration rooted at a working directory."""
        work_directory = Path(work_directory)
        return cls(
            paths=PathsConfig(
                work_directory=work_directory,
                index_path=work_directory / INDEX_FILENAME
            )
        )

    @classmethod
    def from_file(cls, config_path: Path, work_directory: Path) -> "Config":
        """
        Load configuration overrides from a JSON file.

        Args:
            config_path: Path to the config.json file.
            work_directory: Working directory the index lives in.

        Returns:
            Populated Config instance.

        Raises:
            ConfigurationError: If file is missing or invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                {"path": str(config_path)}
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {e}",
                {"path": str(config_path)}
            )
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read config file: {e}",
                {"path": str(config_path)}
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Config file must contain a JSON object",
                {"path": str(config_path)}
            )

        return cls._parse_config(data, Path(work_directory))

    @staticmethod
    def _section(data: dict, key: str, name: str = None) -> dict:
        """Return a nested JSON object, empty when absent."""
        section = data.get(key, {})
        if not isinstance(section, dict):
            raise ConfigurationError(
                f"Config section {name or key!r} must be a JSON object",
                {"found": type(section).__name__}
            )
        return section

    @classmethod
    def _parse_config(cls, data: dict, work_directory: Path) -> "Config":
        """Parse raw config dict into typed Config object."""
        paths_data = cls._section(data, "paths")
        logs_directory = paths_data.get("logs_directory")
        if logs_directory is not None and not isinstance(logs_directory, str):
            raise ConfigurationError(f"paths.logs_directory must be a string, got {logs_directory!r}")
        paths = PathsConfig(
            work_directory=work_directory,
            index_path=work_directory / INDEX_FILENAME,
            logs_directory=cls._resolve_path(logs_directory, work_directory) if logs_directory else None
        )

        ext_data = cls._section(data, "extraction")
        extraction = ExtractionConfig(
            primary_backend=ext_data.get("primary_backend", "pypdf"),
            fallback_backend=ext_data.get("fallback_backend", "pdfplumber"),
            max_file_size_mb=ext_data.get("max_file_size_mb", 500)
        )

        search_data = cls._section(data, "search")
        weights = dict(DEFAULT_FIELD_WEIGHTS)
        weights.update(cls._section(search_data, "field_weights", "search.field_weights"))
        search = SearchConfig(
            default_limit=search_data.get("default_limit", 10),
            max_limit=search_data.get("max_limit", 500),
            snippet_length=search_data.get("snippet_length", 200),
            highlight_style=search_data.get("highlight_style", "ansi"),
            field_weights=weights,
            bm25_k1=search_data.get("bm25_k1", 1.2),
            bm25_b=search_data.get("bm25_b", 0.75),
            max_expansions=search_data.get("max_expansions", 1024)
        )

        log_data = cls._section(data, "logging")
        logging_cfg = LoggingConfig(
            level=log_data.get("level", "WARNING"),
            format=log_data.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            max_file_size_mb=log_data.get("max_file_size_mb", 10),
            backup_count=log_data.get("backup_count", 5)
        )

        config = cls(
            paths=paths,
            extraction=extraction,
            search=search,
            logging=logging_cfg
        )
        config.validate()
        return config

    def validate(self) -> None:
        """
        Check value ranges and enumerations.

        Raises:
            ConfigurationError: If any setting is out of range.
        """
        if self.extraction.primary_backend not in KNOWN_BACKENDS:
            raise ConfigurationError(
                f"Unknown extraction backend: {self.extraction.primary_backend}",
                {"known": list(KNOWN_BACKENDS)}
            )
        fallback = self.extraction.fallback_backend
        if fallback is not None and fallback not in KNOWN_BACKENDS:
            raise ConfigurationError(
                f"Unknown extraction backend: {fallback}",
                {"known": list(KNOWN_BACKENDS)}
            )
        if self.search.highlight_style not in HIGHLIGHT_STYLES:
            raise ConfigurationError(
                f"Unknown highlight style: {self.search.highlight_style}",
                {"known": list(HIGHLIGHT_STYLES)}
            )

        level = self.logging.level
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {level!r}", {"known": list(LOG_LEVELS)})
        if not isinstance(self.logging.format, str):
            raise ConfigurationError(f"logging.format must be a string, got {self.logging.format!r}")

        integers = {
            "search.default_limit": self.search.default_limit,
            "search.max_limit": self.search.max_limit,
            "search.snippet_length": self.search.snippet_length,
            "search.max_expansions": self.search.max_expansions,
            "logging.backup_count": self.logging.backup_count,
        }
        for name, value in integers.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")
            if value == 0 and name != "logging.backup_count":
                raise ConfigurationError(f"{name} must be positive, got {value!r}")

        positive = {
            "extraction.max_file_size_mb": self.extraction.max_file_size_mb,
            "search.bm25_k1": self.search.bm25_k1,
            "logging.max_file_size_mb": self.logging.max_file_size_mb,
        }
        for name, value in positive.items():
            if not _is_number(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive number, got {value!r}")

        if not _is_number(self.search.bm25_b) or not 0 <= self.search.bm25_b <= 1:
            raise ConfigurationError(f"search.bm25_b must be between 0 and 1, got {self.search.bm25_b!r}")
        for name, weight in self.search.field_weights.items():
            if not _is_number(weight) or weight < 0:
                raise ConfigurationError(f"Invalid weight for field {name!r}: {weight!r}")

    @staticmethod
    def _resolve_path(path_str: str, base: Path) -> Path:
        """Resolve a path string, making relative paths absolute."""
        path = Path(path_str).expanduser()
        if path.is_absolute():
            return path
        return base / path


def default_work_directory(environ: Mapping[str, str] = None) -> Path:
    """
    Return the platform default data directory for refman.

    Args:
        environ: Environment mapping, defaults to os.environ.

    Returns:
        %APPDATA%/refman on Windows, $XDG_DATA_HOME/refman when set,
        otherwise ~/.local/share/refman.
    """
    environ = os.environ if environ is None else environ

    if sys.platform.startswith("win"):
        appdata = environ.get("APPDATA")
        if not appdata:
            raise ConfigurationError("APPDATA is not set, cannot locate data directory")
        return Path(appdata) / "refman"

    xdg_data_home = environ.get("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home) / "refman"

    return Path.home() / ".local" / "share" / "refman"


def resolve_work_directory(environ: Mapping[str, str] = None) -> Path:
    """Return the REFMAN_WORKDIR override, or the platform default."""
    environ = os.environ if environ is None else environ

    override = environ.get(WORKDIR_ENV_VAR)
    if override:
        return Path(override).expanduser()

    return default_work_directory(environ)


def load_config(
    work_directory: Path = None,
    config_path: Path = None,
    environ: Mapping[str, str] = None
) -> Config:
    """
    Build the configuration for one invocation.

    Creates the working directory if absent. An explicit config_path must
    exist; otherwise config.json in the working directory is read when
    present and defaults are used when it is not.

    Args:
        work_directory: Explicit working directory; resolved from the
                        environment when omitted.
        config_path: Optional path to a config.json file.
        environ: Environment mapping, defaults to os.environ.

    Returns:
        Config instance.

    Raises:
        ConfigurationError: If the working directory cannot be created or
                            the config file is invalid.
    """
    if work_directory is None:
        work_directory = resolve_work_directory(environ)
    work_directory = Path(work_directory)

    try:
        work_directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(
            f"Cannot create working directory {work_directory}: {e}",
            {"path": str(work_directory)}
        )

    if config_path is not None:
        return Config.from_file(config_path, work_directory)

    default_file = work_directory / CONFIG_FILENAME
    if default_file.exists():
        return Config.from_file(default_file, work_directory)

    return Config.for_work_directory(work_directory)
