"""
Configuration settings for the attendance system.
Values come from dataclass defaults, overridden by environment variables.
"""
import os
import logging
from dataclasses import dataclass, field
from typing import List
from pathlib import Path

logger = logging.getLogger(__name__)

DESCRIPTOR_LENGTH = 128
STORAGE_BACKENDS = ("memory", "sqlite")


@dataclass
class FaceConfig:
    """Face descriptor matching configuration."""
    tolerance: float = 0.6
    descriptor_length: int = DESCRIPTOR_LENGTH


@dataclass
class StorageConfig:
    """Document store configuration."""
    backend: str = "memory"  # memory or sqlite
    db_path: str = "attendance.db"


@dataclass
class SessionConfig:
    """Capture session limits."""
    max_open_sessions: int = 64


@dataclass
class LoggingConfig:
    """Logging configuration."""
    log_level: str = "INFO"
    output_dir: str = "attendance_output"
    log_to_file: bool = True
    max_attendance_events: int = 1000


@dataclass
class ApiConfig:
    """HTTP API settings."""
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


class Config:
    """Main configuration class with validation."""

    def __init__(self):
        self.face = FaceConfig()
        self.storage = StorageConfig()
        self.session = SessionConfig()
        self.logging = LoggingConfig()
        self.api = ApiConfig()

        self._load_environment_variables()
        self._validate_configuration()
        self._create_directories()

    def _load_environment_variables(self):
        """Load configuration from environment variables."""
        try:
            self.face.tolerance = float(os.getenv("FACE_TOLERANCE", self.face.tolerance))
        except ValueError as e:
            logger.warning(f"Invalid face tolerance, using default: {e}")

        backend = os.getenv("STORAGE_BACKEND", self.storage.backend).lower()
        if backend in STORAGE_BACKENDS:
            self.storage.backend = backend
        else:
            logger.warning(f"Unknown storage backend: {backend}, using {self.storage.backend}")
        self.storage.db_path = os.getenv("ATTENDANCE_DB_PATH", self.storage.db_path)

        try:
            self.session.max_open_sessions = int(
                os.getenv("MAX_OPEN_SESSIONS", self.session.max_open_sessions)
            )
        except ValueError as e:
            logger.warning(f"Invalid session limit, using default: {e}")

        log_level = os.getenv("LOG_LEVEL", self.logging.log_level).upper()
        if log_level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            self.logging.log_level = log_level
        else:
            logger.warning(f"Invalid log level: {log_level}, using default")
        self.logging.output_dir = os.getenv("OUTPUT_DIR", self.logging.output_dir)
        self.logging.log_to_file = os.getenv("LOG_TO_FILE", "true").lower() == "true"

        self.api.host = os.getenv("API_HOST", self.api.host)
        try:
            self.api.port = int(os.getenv("API_PORT", self.api.port))
        except ValueError as e:
            logger.warning(f"Invalid API port, using default: {e}")
        origins = os.getenv("CORS_ORIGINS")
        if origins:
            self.api.cors_origins = [o.strip() for o in origins.split(",") if o.strip()]

    def _validate_configuration(self):
        """Validate configuration values."""
        errors = []

        if not 0.0 < self.face.tolerance <= 2.0:
            errors.append("Face tolerance must be in (0.0, 2.0]")

        if self.face.descriptor_length != DESCRIPTOR_LENGTH:
            errors.append(f"Descriptor length must be {DESCRIPTOR_LENGTH}")

        if self.storage.backend == "sqlite" and not self.storage.db_path:
            errors.append("SQLite backend requires a database path")

        if self.session.max_open_sessions <= 0:
            errors.append("Max open sessions must be positive")

        if not 0 < self.api.port < 65536:
            errors.append("API port must be between 1 and 65535")

        if errors:
            error_msg = "Configuration validation errors:\n" + "\n".join(f"- {error}" for error in errors)
            logger.error(error_msg)
            raise ValueError(error_msg)

        logger.debug("Configuration validation passed")

    def _create_directories(self):
        """Create the log directory when file logging is on."""
        if not self.logging.log_to_file:
            return
        try:
            Path(self.logging.output_dir, "logs").mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Could not create directory {self.logging.output_dir}: {e}")

    def get_effective_config(self) -> dict:
        """Get complete effective configuration as dictionary."""
        return {
            'face': {
                'tolerance': self.face.tolerance,
                'descriptor_length': self.face.descriptor_length
            },
            'storage': {
                'backend': self.storage.backend,
                'db_path': self.storage.db_path
            },
            'session': {
                'max_open_sessions': self.session.max_open_sessions
            },
            'logging': {
                'log_level': self.logging.log_level,
                'output_dir': self.logging.output_dir,
                'log_to_file': self.logging.log_to_file
            },
            'api': {
                'host': self.api.host,
                'port': self.api.port,
                'cors_origins': list(self.api.cors_origins)
            }
        }


# Global configuration instance
try:
    config = Config()
except Exception as e:
    logger.error(f"Failed to initialize configuration: {e}")
    config = Config.__new__(Config)
    config.face = FaceConfig()
    config.storage = StorageConfig()
    config.session = SessionConfig()
    config.logging = LoggingConfig()
    config.api = ApiConfig()
    logger.warning("Using fallback configuration")


def get_config_summary():
    """Get a summary of current configuration."""
    return {
        'face_tolerance': config.face.tolerance,
        'storage_backend': config.storage.backend,
        'db_path': config.storage.db_path,
        'logging_level': config.logging.log_level,
        'api_port': config.api.port
    }
