"""
Configuration settings for the EquipTrack inventory and service-lifecycle backend
"""

import os
import sys
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    # Required secrets - no defaults allowed
    jwt_secret_key: str
    database_url: str

    # Configuration
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Reminder scheduling (lead time before the due date)
    rental_reminder_lead_days: int = 3
    calibration_reminder_lead_days: int = 30
    calibration_validity_days: int = 365
    maintenance_followup_days: int = 30
    maintenance_reminder_lead_days: int = 7
    schedule_reminder_lead_days: int = 1

    # Reminder sweep worker
    reminder_sweep_enabled: bool = True
    reminder_sweep_interval_seconds: int = 3600
    reminder_sweep_min_interval_seconds: int = 300

    # Post-commit side effects
    post_commit_max_retries: int = 3
    post_commit_retry_base_delay: float = 0.5

    # E-mail channel for reminders
    reminder_email_enabled: bool = False
    notification_email_from: str = "noreply@equiptrack.local"

    # Do NOT use .env file in production
    model_config = SettingsConfigDict(env_file=None)

    @field_validator('jwt_secret_key')
    @classmethod
    def validate_secret_strength(cls, v: str, info) -> str:
        """Enforce minimum 32-character secret keys"""
        if len(v) < 32:
            raise ValueError(
                f"{info.field_name} must be at least 32 characters "
                f"(current: {len(v)}). Generate with: openssl rand -hex 32"
            )
        return v

    @field_validator(
        'rental_reminder_lead_days',
        'calibration_reminder_lead_days',
        'maintenance_reminder_lead_days',
        'schedule_reminder_lead_days',
    )
    @classmethod
    def validate_lead_days(cls, v: int, info) -> int:
        if v < 0:
            raise ValueError(f"{info.field_name} cannot be negative")
        return v

    @classmethod
    def load_and_validate(cls):
        """Load settings and fail fast if secrets missing"""
        jwt_secret_key = os.getenv("JWT_SECRET_KEY", "")
        database_url = os.getenv("DATABASE_URL", "")

        if not jwt_secret_key:
            print("ERROR: JWT_SECRET_KEY not configured")
            sys.exit(1)
        if not database_url:
            print("ERROR: DATABASE_URL not configured")
            sys.exit(1)

        return cls(jwt_secret_key=jwt_secret_key, database_url=database_url)


settings = Settings.load_and_validate()
