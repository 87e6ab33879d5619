"""Application configuration via environment variables."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Pilot access routing
    pilot_to_email: str = ""
    pilot_from_email: str = ""
    pilot_send_confirmation: bool = True

    # Email transport
    email_transport: Literal["resend", "smtp"] = "resend"
    email_timeout_seconds: float = 10.0

    # Resend
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"

    # SMTP relay
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_starttls: bool = True

    # Notification retry (1 = single attempt)
    notification_max_attempts: int = 1
    notification_retry_delay_seconds: float = 0.5

    # Branding used in email bodies
    brand_name: str = "Enthalpy"
    site_url: str = "https://enthalpy.site"
    contact_email: str = "contact@enthalpy.site"

    # HTTP
    cors_allowed_origins: list[str] = []

    # App
    log_level: str = "INFO"
    environment: str = "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def missing_email_settings(self) -> list[str]:
        """Names of settings the pilot handler needs but are empty."""
        required = {
            "pilot_to_email": self.pilot_to_email,
            "pilot_from_email": self.pilot_from_email,
        }
        if self.email_transport == "smtp":
            required["smtp_host"] = self.smtp_host
        else:
            required["resend_api_key"] = self.resend_api_key
        return [name for name, value in required.items() if not value.strip()]


settings = Settings()
