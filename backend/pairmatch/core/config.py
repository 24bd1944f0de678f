"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py is at: backend/pairmatch/core/config.py
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent.parent
_project_root = _backend_dir.parent
ENV_FILE = _project_root / ".env"
# Fallback: try in backend/ directory if not found in project root
if not ENV_FILE.exists():
    ENV_FILE = _backend_dir / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=False)


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "PairMatch"
    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(
        default="http://localhost:5173",
        description="Allowed CORS origins (comma-separated)"
    )

    # Logging
    log_sqlalchemy: bool = Field(default=False, description="Enable SQLAlchemy query logging")
    log_uvicorn_access: bool = Field(default=False, description="Enable Uvicorn access logging")
    log_module_levels: Optional[str] = Field(
        default=None,
        description='Module-specific log levels (JSON string, e.g., {"pairmatch.services": "DEBUG"})'
    )
    log_format: str = Field(
        default="json",
        description="Log format: 'json' for structured logging, 'text' for plain text"
    )
    log_file_enabled: bool = Field(default=False, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/pairmatch.log",
        description="Path to log file (relative to project root)"
    )
    log_file_retention: int = Field(default=14, ge=1, description="Number of days to keep log files")
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (API keys, tokens) - NOT RECOMMENDED"
    )

    # Database
    database_dsn: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the POSTGRES_* settings when set"
    )
    postgres_host: Optional[str] = Field(default=None, description="PostgreSQL host")
    postgres_db: str = Field(default="pairmatch", description="PostgreSQL database name")
    postgres_user: str = Field(default="pairmatch", description="PostgreSQL user")
    postgres_password: str = Field(default="", description="PostgreSQL password")
    postgres_port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")
    database_pool_size: int = Field(default=10, ge=1, description="Database pool size")
    database_max_overflow: int = Field(default=10, ge=0, description="Database max overflow")

    # Generation service (OpenAI-compatible chat completions, Groq by default)
    groq_api_key: Optional[str] = Field(default=None, description="API key for the generation service")
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1/chat/completions",
        description="Chat completions endpoint"
    )
    groq_model: str = Field(default="llama-3.3-70b-versatile", description="Model name")
    generation_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Upper bound for a single generation request (seconds)"
    )
    generation_max_attempts: int = Field(default=3, ge=1, le=10, description="Total attempts on rate limiting")
    generation_base_delay_seconds: float = Field(default=1.0, ge=0, description="Initial backoff delay")
    generation_backoff_multiplier: float = Field(default=2.0, ge=1.0, description="Backoff multiplier")

    # README fetching for sprint reviews
    github_raw_base_url: str = Field(
        default="https://raw.githubusercontent.com",
        description="Base URL for raw repository content"
    )
    readme_timeout_seconds: float = Field(default=10.0, gt=0, le=60, description="README fetch timeout")

    # Matching
    default_complexity: int = Field(default=2, ge=1, le=5, description="Complexity used when nobody set a difficulty")
    project_duration_days: int = Field(default=7, ge=1, le=60, description="Length of an assignment in days")
    claim_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How often a match request re-evaluates after losing a race on its own queue entry"
    )
    seed_catalog_on_startup: bool = Field(default=True, description="Seed archetypes and themes at startup")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only json and text formats are supported"""
        if v.lower() not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v.lower()

    @property
    def database_url(self) -> str:
        """Construct database URL"""
        if self.database_dsn:
            return self.database_dsn
        if self.postgres_host:
            return (
                f"postgresql://{self.postgres_user}:{self.postgres_password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
            )
        return f"sqlite:///{_backend_dir / 'pairmatch.db'}"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
