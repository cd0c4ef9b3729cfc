"""Configuration loading from an optional YAML file over built-in defaults."""

import copy
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
VALID_LOG_LEVELS = ("debug", "info", "warning", "error")

CONFIG_SEARCH_PATHS = (
    Path("configs") / "collector.yaml",
    Path.home() / ".session-collector" / "config.yaml",
    Path("/etc/session-collector/config.yaml"),
)


def expand_path(path: str) -> str:
    """Expand a leading ~ to the user's home directory."""
    if not path or not path.startswith("~"):
        return path
    return os.path.expanduser(path)


@dataclass
class SourceConfig:
    """Where one source keeps its data and which files to pick up."""

    config_dir: str = ""
    session_dir: str = ""
    history_file: str = ""
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    timeout: float = DEFAULT_TIMEOUT

    def expanded(self) -> "SourceConfig":
        """Copy with every ~-relative path expanded."""
        return SourceConfig(
            config_dir=expand_path(self.config_dir),
            session_dir=expand_path(self.session_dir),
            history_file=expand_path(self.history_file),
            include_patterns=list(self.include_patterns),
            exclude_patterns=list(self.exclude_patterns),
            timeout=self.timeout,
        )


DEFAULT_SOURCES: dict[str, SourceConfig] = {
    "claude_code": SourceConfig(
        config_dir="~/.claude",
        session_dir="~/.claude/projects",
        history_file="~/.claude/history.jsonl",
        include_patterns=["*.json", "*.jsonl", "*.md", "*.log"],
        exclude_patterns=["*.tmp", "*.cache"],
    ),
    "gemini_cli": SourceConfig(
        config_dir="~/.gemini",
        session_dir="~/.gemini/tmp",
        history_file="~/.gemini/history.jsonl",
        exclude_patterns=["*.tmp"],
    ),
    "amazon_q": SourceConfig(
        config_dir="~/.aws/amazonq",
        session_dir="~/.aws/amazonq/history",
        history_file="~/.aws/amazonq/history.jsonl",
        exclude_patterns=["*.tmp"],
    ),
}


@dataclass
class OutputSettings:
    data_dir: str = ".session-collector/data"
    default_template: str = "comprehensive"


@dataclass
class Config:
    """Application-wide settings."""

    sources: dict[str, SourceConfig] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_SOURCES)
    )
    output: OutputSettings = field(default_factory=OutputSettings)
    log_level: str = "info"
    path: Optional[Path] = None

    def source(self, name: str) -> Optional[SourceConfig]:
        """Expanded settings for a source, or None if it is not configured."""
        cfg = self.sources.get(name)
        return cfg.expanded() if cfg else None

    def validate(self) -> None:
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigError(f"invalid log level: {self.log_level}")
        for name, cfg in self.sources.items():
            if cfg.timeout <= 0:
                raise ConfigError(f"timeout for source '{name}' must be greater than 0")

    def to_dict(self) -> dict:
        return {
            "collection_settings": {name: asdict(cfg) for name, cfg in self.sources.items()},
            "output_settings": asdict(self.output),
            "log_level": self.log_level,
        }


def _source_from_dict(name: str, data: dict) -> SourceConfig:
    base = DEFAULT_SOURCES.get(name, SourceConfig())
    merged = asdict(base)
    for key, value in (data or {}).items():
        if key not in merged:
            logger.warning(f"Ignoring unknown setting '{key}' for source '{name}'")
            continue
        merged[key] = value
    try:
        merged["timeout"] = float(merged["timeout"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"timeout for source '{name}' is not a number") from e
    return SourceConfig(**merged)


def config_from_dict(data: dict) -> Config:
    """Build a Config from parsed YAML, filling gaps from the defaults."""
    config = Config()
    collection = data.get("collection_settings") or {}
    if not isinstance(collection, dict):
        raise ConfigError("collection_settings must be a mapping")
    for name, source_data in collection.items():
        config.sources[name] = _source_from_dict(name, source_data)

    output = data.get("output_settings") or {}
    config.output = OutputSettings(
        data_dir=output.get("data_dir", config.output.data_dir),
        default_template=output.get("default_template", config.output.default_template),
    )
    config.log_level = str(data.get("log_level", config.log_level)).lower()
    config.validate()
    return config


def find_config_file() -> Optional[Path]:
    """Return the first existing config file in the search path."""
    for candidate in CONFIG_SEARCH_PATHS:
        if candidate.exists():
            return candidate
    return None


def load_config(path: Optional[str] = None) -> Config:
    """Load settings from path (or the search path); defaults if none exists."""
    config_path = Path(expand_path(path)) if path else find_config_file()
    if config_path is None:
        logger.debug("No config file found, using defaults")
        return Config()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"config file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_path} must contain a mapping")

    config = config_from_dict(data)
    config.path = config_path
    logger.info(f"Loaded config from {config_path}")
    return config


def default_config_yaml() -> str:
    """Render the built-in defaults as YAML for `config init`."""
    return yaml.safe_dump(Config().to_dict(), sort_keys=False)
