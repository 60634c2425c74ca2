"""
Configuration Management

Centralized configuration management with YAML file support
and environment variable overrides.
"""

import os
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, field

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load .env file if it exists
load_dotenv()


@dataclass
class DatabaseConfig:
    """Database configuration settings."""
    url: str = "sqlite:///database/exams.db"
    echo: bool = False
    pool_size: int = 5


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    console_level: str = "WARNING"  # Separate level for console output
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str = "logs/exam_grader.log"
    max_size: str = "10MB"
    backup_count: int = 5


@dataclass
class GradingConfig:
    """Grading leniency and qualification settings."""
    fuzzy_threshold: float = 0.70
    keyword_overlap_threshold: float = 0.50
    min_keyword_length: int = 4
    qualification_threshold: float = 70.0
    # Free-text verdicts stay provisional until a reviewer grades them
    require_manual_review: bool = True
    # Reject questions whose declared type disagrees with their answer shape
    strict_question_schema: bool = False


@dataclass
class AttemptConfig:
    """Re-attempt cooldown configuration."""
    cooldown_days: float = 10


@dataclass
class ReviewConfig:
    """Result visibility configuration for reviewer approval."""
    visibility_delay_minutes: int = 60


@dataclass
class AppConfig:
    """Main application configuration."""
    name: str = "Exam Grader"
    version: str = "1.0.0"
    environment: str = "production"
    debug: bool = False

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    grading: GradingConfig = field(default_factory=GradingConfig)
    attempts: AttemptConfig = field(default_factory=AttemptConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check value ranges that would silently break grading."""
        grading = self.grading
        for name in ('fuzzy_threshold', 'keyword_overlap_threshold'):
            value = getattr(grading, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(
                    f"grading.{name} must be between 0 and 1",
                    {'value': value}
                )
        if grading.min_keyword_length < 1:
            raise ConfigurationError(
                "grading.min_keyword_length must be at least 1",
                {'value': grading.min_keyword_length}
            )
        if not 0.0 <= grading.qualification_threshold <= 100.0:
            raise ConfigurationError(
                "grading.qualification_threshold must be a percentage between 0 and 100",
                {'value': grading.qualification_threshold}
            )
        if self.attempts.cooldown_days < 0:
            raise ConfigurationError(
                "attempts.cooldown_days cannot be negative",
                {'value': self.attempts.cooldown_days}
            )
        if self.review.visibility_delay_minutes < 0:
            raise ConfigurationError(
                "review.visibility_delay_minutes cannot be negative",
                {'value': self.review.visibility_delay_minutes}
            )

    @classmethod
    def from_yaml(cls, config_path: Path) -> "AppConfig":
        """Load configuration from YAML file."""
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> "AppConfig":
        """Build configuration from a plain dictionary."""
        config_data = cls._apply_env_overrides(dict(config_data))

        # Handle nested app configuration structure
        if 'app' in config_data:
            app_config = config_data.pop('app')
            config_data.update(app_config)

        sections = {
            'database': DatabaseConfig,
            'logging': LoggingConfig,
            'grading': GradingConfig,
            'attempts': AttemptConfig,
            'review': ReviewConfig,
        }

        try:
            for key, section_cls in sections.items():
                if key in config_data and isinstance(config_data[key], dict):
                    config_data[key] = section_cls(**config_data[key])
            return cls(**config_data)
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

    @staticmethod
    def _apply_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            'DATABASE_URL': (['database', 'url'], str),
            'LOG_LEVEL': (['logging', 'level'], str),
            'DEBUG': (['debug'], _parse_bool),
            'ENVIRONMENT': (['environment'], str),
            'EXAM_COOLDOWN_DAYS': (['attempts', 'cooldown_days'], float),
            'EXAM_QUALIFICATION_THRESHOLD': (['grading', 'qualification_threshold'], float),
        }

        for env_var, (config_path, cast) in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value:
                try:
                    value = cast(env_value)
                except ValueError as e:
                    raise ConfigurationError(
                        f"Invalid value for {env_var}: {env_value}"
                    ) from e
                current = config_data
                for key in config_path[:-1]:
                    current = current.setdefault(key, {})
                current[config_path[-1]] = value

        return config_data


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config(config_path: Optional[Path] = None) -> AppConfig:
    """Get the application configuration instance."""
    global _config

    if _config is None:
        if config_path is None:
            config_path = Path("config/default.yaml")

        if config_path.exists():
            _config = AppConfig.from_yaml(config_path)
        else:
            # Use default configuration if file doesn't exist
            _config = AppConfig.from_dict({})

    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Set the global configuration instance (useful for testing)."""
    global _config
    _config = config


def reload_config(config_path: Optional[Path] = None) -> AppConfig:
    """Reload configuration from file."""
    global _config
    _config = None
    return get_config(config_path)
