import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator, field_validator
from typing import Optional

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DEFAULT_DB_URI = f'sqlite:///{os.path.join(BASE_DIR, "booksansar.db")}'


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',  # Ignore extra fields from .env
    )

    # Security configuration
    SECRET_KEY: str

    # Database
    DATABASE_URL: str = DEFAULT_DB_URI
    SQLALCHEMY_DATABASE_URI: Optional[str] = None
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}

    @model_validator(mode='after')
    def set_database_config(self) -> 'Config':
        """Set SQLALCHEMY_DATABASE_URI from DATABASE_URL and configure engine options"""
        self.SQLALCHEMY_DATABASE_URI = self.DATABASE_URL

        if 'mysql' in self.DATABASE_URL or 'mariadb' in self.DATABASE_URL:
            self.SQLALCHEMY_ENGINE_OPTIONS = {
                'pool_size': 10,
                'pool_recycle': 3600,
                'pool_pre_ping': True,
                'max_overflow': 20,
                'connect_args': {
                    'charset': 'utf8mb4',
                }
            }

        return self

    # Internationalization
    LANGUAGES: list = ['en']
    BABEL_DEFAULT_LOCALE: str = 'en'
    BABEL_DEFAULT_TIMEZONE: str = 'UTC'
    BABEL_TRANSLATION_DIRECTORIES: str = os.path.join(BASE_DIR, 'translations')

    # Public addresses.
    # PUBLIC_ORIGIN overrides the request host when resolving relative PDF URLs
    # (useful behind a proxy). API_BASE_URL is where the streaming endpoint lives
    # when the API is served from another host than the pages.
    PUBLIC_ORIGIN: Optional[str] = None
    API_BASE_URL: Optional[str] = None
    # Without PUBLIC_ORIGIN the request host is used only when listed here
    # (a leading dot also matches subdomains). Other hosts leave relative
    # URLs relative, and those are never requested server-side.
    PDF_TRUSTED_HOSTS: list = ['localhost', '127.0.0.1']

    # PDF delivery
    PDF_STREAM_PATH: str = '/api/books/pdf-stream/{book_id}'
    LOCAL_PDF_PREFIX: str = '/books/'
    # Relative pdf_url values are resolved against this directory
    PDF_PUBLIC_ROOT: str = BASE_DIR
    # Files served for the title-derived fallback URL
    LOCAL_PDF_DIR: str = os.path.join(BASE_DIR, 'public/books')
    DOWNLOAD_DIR: str = os.path.join(BASE_DIR, 'downloads')

    # Seconds before the chain escalates to the next strategy / candidate
    PDF_EMBED_TIMEOUT: float = 3.0
    PDF_IFRAME_TIMEOUT: float = 5.0

    # Reachability probes
    PDF_PROBE_TIMEOUT: float = 5.0
    PDF_PROBE_RANGE_BYTES: int = 1024

    @field_validator('PUBLIC_ORIGIN', 'API_BASE_URL', mode='before')
    def _strip_trailing_slash(cls, v):
        """Empty values in .env mean "not set"; otherwise drop the trailing slash."""
        if v is None:
            return v
        v = str(v).strip()
        if not v:
            return None
        return v.rstrip('/')

    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_FORMAT: str = 'text'  # 'text' or 'json'
    LOG_FILE: Optional[str] = None
    LOG_BACKUP_COUNT: int = 7

    @field_validator('LOG_LEVEL', 'LOG_FORMAT', mode='before')
    def _normalise_log_options(cls, v, info):
        """Allow values like ' debug  # verbose' in .env files."""
        if v is None:
            return v
        v = str(v).split('#', 1)[0].strip()
        if info.field_name == 'LOG_LEVEL':
            return v.upper() or 'INFO'
        return v.lower() or 'text'

    # Application environment: development | staging | production
    APP_ENV: str = os.getenv('FLASK_ENV', 'development')
