from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data"


class Settings(BaseSettings):
    """Service configuration, read from the environment (and ``.env``)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_data_dir: Path = DEFAULT_DATA_DIR

    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_exp_minutes: int = 15
    bcrypt_rounds: Optional[int] = None
    # accept X-User-Id instead of a bearer token (demo / tests only)
    allow_header_auth: bool = False

    host: str = "127.0.0.1"
    port: int = 8000
    public_base_url: str = "http://localhost:3000"
    purge_interval_seconds: int = 300
    note_update_retries: int = 3

    log_level: str = "INFO"
