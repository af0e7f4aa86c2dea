"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API can be started locally without any setup.  Values that operators
may want to change while the service is running (commission rate,
tax rate, registration switches) are not kept here; they live in the
``settings`` table and are managed by ``SettingsService``.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Home Bonzenga API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Access tokens live for a week and refresh tokens for thirty days,
    # matching the lifetimes the web client expects.
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))
    refresh_token_expire_minutes: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 30)))

    # Path or connection string for the SQLite database.  If a relative
    # path is provided, it will be resolved relative to the package root
    # by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "bonzenga.db")

    # Comma‑separated list of origins allowed by the CORS middleware.
    cors_origins: str = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Bootstrap staff accounts created by ``init_db`` when missing.  The
    # passwords are only used on first start; change them afterwards
    # with ``reset_password.py``.
    admin_email: str = os.getenv("ADMIN_EMAIL", "admin@homebonzenga.com")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "Admin@123")
    manager_email: str = os.getenv("MANAGER_EMAIL", "manager@homebonzenga.com")
    manager_password: str = os.getenv("MANAGER_PASSWORD", "Manager@123")

    currency: str = os.getenv("CURRENCY", "CDF")

    # Seconds the simulated payment gateway waits before answering.
    payment_simulation_delay: float = float(os.getenv("PAYMENT_SIMULATION_DELAY", "0"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# should be set before importing this module.
settings = Settings()
