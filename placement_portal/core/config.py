"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

import os
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "placement_portal"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Password hashing / temp passwords
    bcrypt_rounds: int = 12
    temp_password_length: int = 10

    # Default admin (seeded on startup if missing)
    admin_email: str = "admin@placement.edu"
    admin_password: str = "admin12345"
    admin_name: str = "Placement Admin"

    # Uploads
    upload_dir: str = os.path.join(os.getcwd(), "public", "temp")
    max_upload_size_bytes: int = 1 * 1024 * 1024
    allowed_upload_types: List[str] = ["application/pdf"]

    # Placement rules
    max_student_choices: int = 3

    # App
    debug: bool = True
    log_level: str = "INFO"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
