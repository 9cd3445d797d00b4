"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    The payment webhook secret is optional at the type level only so that a
    missing value can be reported (fail-closed) instead of crashing imports.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated list. Empty = default list in app.main.
    cors_origins: str = ""
    # Used as a fallback for class join links in emails.
    app_base_url: str = "https://lmv-academy.lovable.app"

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_connect_timeout: int = 5
    db_statement_timeout_ms: int = 5000

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str = "redis://localhost:6379/0"
    celery_broker_url: str = "redis://localhost:6379/1"
    celery_result_backend: str = "redis://localhost:6379/2"

    # ===========================================
    # PAYMENT WEBHOOK (Lenco)
    # ===========================================
    payment_webhook_secret: str | None = None
    payment_signature_header: str = "X-Lenco-Signature"
    # Overall processing budget for one delivery; exceeding it answers 503.
    webhook_deadline_seconds: float = 10.0

    # ===========================================
    # ENTITLEMENTS
    # ===========================================
    subscription_plan: str = "pro"
    subscription_period_months: int = 1
    enrollment_period_months: int = 1

    # ===========================================
    # EMAIL (Resend)
    # ===========================================
    resend_api_key: str | None = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from_address: str = "onboarding@resend.dev"
    email_from_name: str = "LMV Academy"

    # ===========================================
    # NOTIFICATION OUTBOX
    # ===========================================
    outbox_max_attempts: int = 6
    outbox_retry_base_seconds: int = 30
    outbox_sweep_batch_size: int = 50

    # ===========================================
    # INTERNAL SERVICES
    # ===========================================
    http_client_timeout: float = 10.0

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("payment_webhook_secret")
    @classmethod
    def validate_webhook_secret(cls, v: str | None) -> str | None:
        """Blank means unset; a set secret must not be a placeholder."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if v in ("changeme", "secret", "password", "whsec_test_changeme"):
            raise ValueError("payment_webhook_secret is too weak, please change it")
        return v

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in ("prod", "production")

    @property
    def email_sender(self) -> str:
        """Sender identity in RFC 5322 form: 'LMV Academy <onboarding@resend.dev>'."""
        return f"{self.email_from_name} <{self.email_from_address}>"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
