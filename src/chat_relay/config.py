"""
Runtime configuration.

Settings come from environment variables. Secrets can also be mounted as
files under '/secrets/<NAME>', which take precedence over the environment:

    STORE_BACKEND                 'memory' (default) or 'firebase'
    FIREBASE_DATABASE_URL         Realtime Database URL, required for 'firebase'
    FIREBASE_CREDENTIALS          service-account JSON path (secret); application default otherwise
    FIREBASE_API_KEY              Web API key used for password login (secret)
    SMTP_HOST, SMTP_PORT          mail relay, default localhost:587
    SMTP_USERNAME, SMTP_PASSWORD  relay login (secrets), optional
    SMTP_SENDER                   From address
    RECONCILE_INTERVAL_SECONDS    summary reconciliation period, 0 disables
    LOG_LEVEL                     loguru level, default INFO
    HOST, PORT                    server bind address
"""

import os
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

SECRETS_DIR = Path("/secrets")


class StoreBackend(StrEnum):
    MEMORY = "memory"
    FIREBASE = "firebase"


def get_secret(name: str, default: str | None = None, secrets_dir: Path = SECRETS_DIR) -> str | None:
    """Load a secret from '<secrets_dir>/<name>', then from the environment variable of the same name."""
    secret_file = secrets_dir / name
    if secret_file.exists():
        return secret_file.read_text().strip()
    return os.environ.get(name) or default


class Settings(BaseModel):
    store_backend: StoreBackend = StoreBackend.MEMORY
    firebase_database_url: str | None = None
    firebase_credentials: str | None = None
    firebase_api_key: str | None = None
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_sender: str = "no-reply@localhost"
    reconcile_interval_seconds: float = Field(default=0, ge=0)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080


def load_settings(secrets_dir: Path = SECRETS_DIR) -> Settings:
    """Build 'Settings' from the environment; unset variables keep their defaults."""
    values = {
        "store_backend": os.environ.get("STORE_BACKEND"),
        "firebase_database_url": os.environ.get("FIREBASE_DATABASE_URL"),
        "firebase_credentials": get_secret("FIREBASE_CREDENTIALS", secrets_dir=secrets_dir),
        "firebase_api_key": get_secret("FIREBASE_API_KEY", secrets_dir=secrets_dir),
        "smtp_host": os.environ.get("SMTP_HOST"),
        "smtp_port": os.environ.get("SMTP_PORT"),
        "smtp_username": get_secret("SMTP_USERNAME", secrets_dir=secrets_dir),
        "smtp_password": get_secret("SMTP_PASSWORD", secrets_dir=secrets_dir),
        "smtp_sender": os.environ.get("SMTP_SENDER"),
        "reconcile_interval_seconds": os.environ.get("RECONCILE_INTERVAL_SECONDS"),
        "log_level": os.environ.get("LOG_LEVEL"),
        "host": os.environ.get("HOST"),
        "port": os.environ.get("PORT"),
    }
    return Settings(**{key: value for key, value in values.items() if value})
