"""Application configuration module.

Provides configuration classes for different environments with pathlib-based
paths. Everything can be overridden through environment variables.
"""
import os
from pathlib import Path


# Base directories using pathlib
BASE_DIR = Path(__file__).parent.absolute()
INSTANCE_DIR = BASE_DIR / 'instance'
STORAGE_DIR = BASE_DIR / 'storage'


def _optional_int(name):
    value = os.environ.get(name)
    return int(value) if value else None


class Config:
    """Base configuration with common settings."""

    # Flask secret key
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    SQLALCHEMY_DATABASE_URI = f"sqlite:///{INSTANCE_DIR / 'photodater.db'}"
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {
            'check_same_thread': False,
            'timeout': 5.0
        }
    }
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Storage directories (using pathlib.Path)
    UPLOAD_FOLDER = Path(os.environ['UPLOAD_DIR']) if os.environ.get('UPLOAD_DIR') else STORAGE_DIR / 'uploads'

    # Upload size limit
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_UPLOAD_MB', 512)) * 1024 * 1024

    # Metadata decoding
    EXIFTOOL_PATH = os.environ.get('EXIFTOOL_PATH', 'exiftool')
    WORKER_THREADS = _optional_int('WORKER_THREADS')  # None = auto-detect CPU count

    # Reject lastModified dates before this year (None = accept 1970 onwards)
    FILESYSTEM_MIN_YEAR = _optional_int('FILESYSTEM_MIN_YEAR')

    @classmethod
    def validate_min_year(cls):
        """Validate FILESYSTEM_MIN_YEAR is inside the supported date range."""
        year = cls.FILESYSTEM_MIN_YEAR
        if year is not None and not 1970 <= year <= 2100:
            raise ValueError(f"Invalid FILESYSTEM_MIN_YEAR '{year}': must be 1970-2100")
        return True


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_ECHO = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False


class TestingConfig(Config):
    """Test configuration: in-memory database, no real uploads folder."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WORKER_THREADS = 1


# Configuration dictionary for easy lookup
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
