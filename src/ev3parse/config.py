"""Configuration management for ev3parse using Pydantic models."""

import json
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CONFIG_FILE_NAME = ".ev3parse.json"


class FileErrorPolicy(str, Enum):
    """What to do when one program file in a project fails to parse."""
    ABORT = "abort"
    SKIP = "skip"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"


class ParserConfig(BaseModel):
    """Parser configuration section."""
    ignore_unknown_tags: bool = Field(alias="ignoreUnknownTags", default=False)

    model_config = ConfigDict(populate_by_name=True)


class ProjectConfig(BaseModel):
    """Project loading configuration section."""
    on_file_error: FileErrorPolicy = Field(alias="onFileError", default=FileErrorPolicy.ABORT)
    program_suffix: str = Field(alias="programSuffix", default=".ev3p")

    @field_validator("program_suffix")
    @classmethod
    def validate_program_suffix(cls, v):
        if not v.startswith("."):
            raise ValueError(f"program_suffix must start with '.', got: {v}")
        return v

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN

    model_config = ConfigDict(use_enum_values=True)


class Ev3ParseConfig(BaseModel):
    """Complete ev3parse configuration model."""
    parser: ParserConfig = Field(default_factory=ParserConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")


def load_config(config_path: str | Path | None = None) -> Ev3ParseConfig:
    """Load configuration from file with fallback to defaults.

    Args:
        config_path: Optional path to configuration file. If None, searches
                    current directory and parents for .ev3parse.json

    Returns:
        Ev3ParseConfig: Loaded and validated configuration

    Raises:
        ValueError: If configuration is invalid
    """
    if config_path is None:
        config_path = find_config_file()
    else:
        config_path = Path(config_path)

    if config_path and config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = json.load(f)
            return Ev3ParseConfig.model_validate(config_data)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {e}") from e
        except (OSError, ValidationError) as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}") from e
    else:
        return create_default_config()


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find .ev3parse.json by searching up the directory tree.

    Args:
        start_dir: Directory to start search from (default: current directory)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = Path(start_dir).resolve()

    while True:
        config_file = current / CONFIG_FILE_NAME
        if config_file.exists():
            return config_file

        parent = current.parent
        if parent == current:  # Reached root directory
            break
        current = parent

    return None


def create_default_config() -> Ev3ParseConfig:
    """Create default configuration: strict parsing, abort on first bad file."""
    return Ev3ParseConfig()
